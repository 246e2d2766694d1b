"""Ownership and enrollment checks.

Each guard is a single existence query, evaluated on every protected
operation without caching.
"""

from sqlalchemy.orm import Session

from models.course import CourseModel
from models.enrollment import EnrollmentModel


def course_owned_by_teacher(db: Session, course_id: int, teacher_id: str) -> bool:
    """Return True if ``teacher_id`` is the owning teacher of the course."""
    query = db.query(CourseModel.id).filter(
        CourseModel.id == course_id,
        CourseModel.teacher_id == teacher_id,
    )
    return db.query(query.exists()).scalar()


def student_enrolled_in_course(db: Session, student_id: str, course_id: int) -> bool:
    """Return True if the student has an enrollment row for the course."""
    query = db.query(EnrollmentModel.id).filter(
        EnrollmentModel.student_id == student_id,
        EnrollmentModel.course_id == course_id,
    )
    return db.query(query.exists()).scalar()


def can_access_course(db: Session, user_id: str, course_id: int) -> bool:
    """Owning teacher or enrolled student."""
    return course_owned_by_teacher(db, course_id, user_id) or student_enrolled_in_course(
        db, user_id, course_id
    )
