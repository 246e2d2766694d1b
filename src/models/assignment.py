from sqlalchemy import Column, ForeignKey, Integer, String, Text
from .base import Base


class AssignmentModel(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(String, nullable=True)  # UTC ISO format string
    max_points = Column(Integer, nullable=False)
    assignment_type = Column(String, nullable=False, default="assignment")
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
