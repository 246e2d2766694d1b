"""User database model.

Users are either teachers, who own courses, or students, who enroll in them.
"""

from sqlalchemy import CheckConstraint, Column, String
from .base import Base


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('teacher', 'student')", name="ck_users_role"),
    )

    user_id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    created_at = Column(String, nullable=False)  # UTC ISO string
