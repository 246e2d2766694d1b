from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text
from .base import Base


class BlogModel(Base):
    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    featured_image = Column(String, nullable=True)
    tags = Column(JSON, default=list)
    read_time = Column(Integer, nullable=False, default=5)  # minutes
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
