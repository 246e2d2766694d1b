"""Course content models.

Content items are the lessons of a course, shown in ``display_order``.
A completion row records that one student finished one item.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from .base import Base


class CourseContentModel(Base):
    __tablename__ = "course_contents"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    content_type = Column(String, nullable=False)  # "text" or "link"
    body = Column(Text, nullable=True)
    link_url = Column(String, nullable=True)
    duration = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class ContentCompletionModel(Base):
    __tablename__ = "content_completions"
    __table_args__ = (
        UniqueConstraint(
            "content_id",
            "student_id",
            name="uq_content_completions_content_student",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(
        Integer,
        ForeignKey("course_contents.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    student_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    completed_at = Column(String, nullable=False)
