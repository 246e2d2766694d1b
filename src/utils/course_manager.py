"""Course and enrollment management utilities."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import ENROLLMENT_STATUSES
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.course import CourseModel
from models.enrollment import EnrollmentModel
from models.user import UserModel
from schemas.user import CallerContext
from utils.access_guard import course_owned_by_teacher, student_enrolled_in_course
from utils.converters import model_to_dict

logger = logging.getLogger(__name__)

# Columns a course owner may change through update_course
COURSE_UPDATE_FIELDS = ("title", "description", "duration", "is_published")


class CourseManager:
    """Manages courses and the enrollments that link students to them."""

    def __init__(self, db: Session):
        self.db = db

    def _student_count(self):
        return (
            self.db.query(func.count(EnrollmentModel.id))
            .filter(EnrollmentModel.course_id == CourseModel.id)
            .correlate(CourseModel)
            .scalar_subquery()
        )

    def get_course_model(self, course_id: int) -> CourseModel:
        model = self.db.query(CourseModel).filter(CourseModel.id == course_id).first()
        if not model:
            raise NotFoundError("Course", course_id)
        return model

    def require_owner(self, course_id: int, caller: CallerContext, action: str) -> None:
        """Raise unless the caller is the owning teacher of the course.

        Args:
            course_id: Course to check.
            caller: Calling user.
            action: Phrase completing "You do not have permission to ...".

        Raises:
            NotFoundError: If the course does not exist.
            AuthorizationError: If the caller does not own it.
        """
        if course_owned_by_teacher(self.db, course_id, caller.user_id):
            return
        self.get_course_model(course_id)
        logger.warning(
            "User %s refused to %s on course %s", caller.user_id, action, course_id
        )
        raise AuthorizationError(
            f"You do not have permission to {action}",
            course_id=course_id,
            user_id=caller.user_id,
        )

    def create_course(
        self,
        caller: CallerContext,
        title: Optional[str],
        description: Optional[str],
        duration: Optional[str] = None,
    ) -> CourseModel:
        """Create an unpublished course owned by the calling teacher."""
        if not caller.is_teacher:
            raise AuthorizationError("Only teachers can create courses")
        if not title or not title.strip() or not description or not description.strip():
            raise ValidationError("Title and description are required")

        now = datetime.now(pytz.utc).isoformat()
        model = CourseModel(
            title=title.strip(),
            description=description.strip(),
            duration=duration or None,
            teacher_id=caller.user_id,
            is_published=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created course %s for teacher %s", model.id, caller.user_id)
        return model

    def list_published(self) -> List[Dict[str, Any]]:
        student_count = self._student_count()
        rows = (
            self.db.query(CourseModel, UserModel.name, student_count)
            .join(UserModel, UserModel.user_id == CourseModel.teacher_id)
            .filter(CourseModel.is_published.is_(True))
            .order_by(CourseModel.created_at.desc())
            .all()
        )
        return [
            model_to_dict(course, teacher_name=teacher_name, student_count=count)
            for course, teacher_name, count in rows
        ]

    def list_for_teacher(self, teacher_id: str) -> List[Dict[str, Any]]:
        student_count = self._student_count()
        rows = (
            self.db.query(CourseModel, student_count)
            .filter(CourseModel.teacher_id == teacher_id)
            .order_by(CourseModel.created_at.desc())
            .all()
        )
        return [model_to_dict(course, student_count=count) for course, count in rows]

    def get_course(self, course_id: int, caller: CallerContext) -> Dict[str, Any]:
        """Course with teacher name and the caller's enrollment status."""
        row = (
            self.db.query(CourseModel, UserModel.name)
            .join(UserModel, UserModel.user_id == CourseModel.teacher_id)
            .filter(CourseModel.id == course_id)
            .first()
        )
        if not row:
            raise NotFoundError("Course", course_id)
        course, teacher_name = row
        return model_to_dict(
            course,
            teacher_name=teacher_name,
            is_enrolled=student_enrolled_in_course(self.db, caller.user_id, course_id),
        )

    def update_course(
        self, course_id: int, caller: CallerContext, changes: Dict[str, Any]
    ) -> CourseModel:
        """Apply a partial update restricted to COURSE_UPDATE_FIELDS.

        Args:
            course_id: Course to update.
            caller: Calling teacher, must own the course.
            changes: Field values sent by the client.

        Returns:
            The updated course.
        """
        self.require_owner(course_id, caller, "update this course")

        values = {k: v for k, v in changes.items() if k in COURSE_UPDATE_FIELDS}
        for field in ("title", "description"):
            if field in values:
                if not values[field] or not values[field].strip():
                    raise ValidationError(f"Course {field} cannot be empty")
                values[field] = values[field].strip()
        if "is_published" in values and values["is_published"] is None:
            raise ValidationError("is_published cannot be null")

        if values:
            values["updated_at"] = datetime.now(pytz.utc).isoformat()
            self.db.query(CourseModel).filter(CourseModel.id == course_id).update(
                values, synchronize_session=False
            )
            self.db.commit()
            logger.info("Updated course %s: %s", course_id, sorted(values))
        model = self.get_course_model(course_id)
        self.db.refresh(model)
        return model

    def delete_course(self, course_id: int, caller: CallerContext) -> None:
        """Hard-delete a course; dependent rows go with the foreign keys."""
        self.require_owner(course_id, caller, "delete this course")
        self.db.query(CourseModel).filter(CourseModel.id == course_id).delete(
            synchronize_session=False
        )
        self.db.commit()
        logger.info("Deleted course %s", course_id)

    def enroll(self, caller: CallerContext, course_id: int) -> Dict[str, Any]:
        """Enroll the calling student in a published course.

        Raises:
            AuthorizationError: If the caller is not a student.
            NotFoundError: If the course does not exist.
            ValidationError: If the course is not published.
            ConflictError: If the student is already enrolled.
        """
        if not caller.is_student:
            raise AuthorizationError("Only students can enroll in courses")
        course = self.get_course_model(course_id)
        if not course.is_published:
            raise ValidationError(
                "Course is not available for enrollment", course_id=course_id
            )
        if student_enrolled_in_course(self.db, caller.user_id, course_id):
            raise ConflictError(
                "Student is already enrolled in this course", course_id=course_id
            )

        model = EnrollmentModel(
            student_id=caller.user_id,
            course_id=course_id,
            enrolled_at=datetime.now(pytz.utc).isoformat(),
            status="enrolled",
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(
                "Student is already enrolled in this course", course_id=course_id
            ) from e
        self.db.refresh(model)
        logger.info("Student %s enrolled in course %s", caller.user_id, course_id)
        return model_to_dict(model, course_title=course.title, student_name=caller.name)

    def list_enrollments_for_student(self, student_id: str) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(EnrollmentModel, CourseModel.title, UserModel.name)
            .join(CourseModel, CourseModel.id == EnrollmentModel.course_id)
            .join(UserModel, UserModel.user_id == CourseModel.teacher_id)
            .filter(EnrollmentModel.student_id == student_id)
            .order_by(EnrollmentModel.enrolled_at.desc())
            .all()
        )
        return [
            model_to_dict(enrollment, course_title=title, teacher_name=teacher_name)
            for enrollment, title, teacher_name in rows
        ]

    def list_enrollments_for_course(
        self, course_id: int, caller: CallerContext
    ) -> List[Dict[str, Any]]:
        self.require_owner(course_id, caller, "view enrollments for this course")
        rows = (
            self.db.query(EnrollmentModel, UserModel.name)
            .join(UserModel, UserModel.user_id == EnrollmentModel.student_id)
            .filter(EnrollmentModel.course_id == course_id)
            .order_by(EnrollmentModel.enrolled_at.desc())
            .all()
        )
        return [
            model_to_dict(enrollment, student_name=name) for enrollment, name in rows
        ]

    def update_enrollment_status(
        self, enrollment_id: int, caller: CallerContext, status: str
    ) -> EnrollmentModel:
        if status not in ENROLLMENT_STATUSES:
            raise ValidationError("Invalid enrollment status", status=status)
        model = (
            self.db.query(EnrollmentModel)
            .filter(EnrollmentModel.id == enrollment_id)
            .first()
        )
        if not model:
            raise NotFoundError("Enrollment", enrollment_id)
        self.require_owner(model.course_id, caller, "manage this enrollment")
        model.status = status
        self.db.commit()
        self.db.refresh(model)
        logger.info("Enrollment %s set to %s", enrollment_id, status)
        return model
