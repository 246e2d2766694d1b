from sqlalchemy import Column, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from .base import Base


class SubmissionModel(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint(
            "assignment_id", "student_id", name="uq_submissions_assignment_student"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    student_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    submission_text = Column(Text, nullable=True)
    file_url = Column(String, nullable=True)
    file_public_id = Column(String, nullable=True)
    grade = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="submitted")  # submitted/graded
    submitted_at = Column(String, nullable=False)
    graded_at = Column(String, nullable=True)
    graded_by = Column(String, ForeignKey("users.user_id"), nullable=True)
