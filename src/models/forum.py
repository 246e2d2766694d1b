"""Forum database models.

Categories belong to a course, threads to a category, posts to a thread
(optionally replying to another post of the same thread) and reactions to a
post, one per user.
"""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from .base import Base


class ForumCategoryModel(Base):
    __tablename__ = "forum_categories"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True, default="")
    created_at = Column(String, nullable=False)


class ForumThreadModel(Base):
    __tablename__ = "forum_threads"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(
        Integer,
        ForeignKey("forum_categories.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    author_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    view_count = Column(Integer, nullable=False, default=0)
    reply_count = Column(Integer, nullable=False, default=0)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)
    last_reply_at = Column(String, nullable=False)


class ForumPostModel(Base):
    __tablename__ = "forum_posts"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(
        Integer, ForeignKey("forum_threads.id", ondelete="CASCADE"), index=True, nullable=False
    )
    author_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    content = Column(Text, nullable=False)
    parent_id = Column(
        Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), index=True, nullable=True
    )
    is_answer = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)


class ForumReactionModel(Base):
    __tablename__ = "forum_reactions"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_forum_reactions_post_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(
        Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    reaction_type = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
