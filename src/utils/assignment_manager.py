"""Assignment, submission and grading workflow."""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import pytz
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import DEFAULT_ASSIGNMENT_TYPE
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.assignment import AssignmentModel
from models.course import CourseModel
from models.enrollment import EnrollmentModel
from models.submission import SubmissionModel
from models.user import UserModel
from schemas.user import CallerContext
from utils.access_guard import student_enrolled_in_course
from utils.converters import model_to_dict
from utils.course_manager import CourseManager
from utils.media_storage import MediaStorage, StoredMedia

logger = logging.getLogger(__name__)

# Columns a course owner may change through update_assignment
ASSIGNMENT_UPDATE_FIELDS = (
    "title",
    "description",
    "due_date",
    "max_points",
    "assignment_type",
)

SUBMISSION_FOLDER = "assignments"


def to_utc_iso(value: Union[datetime, str, None]) -> Optional[str]:
    """Normalize a datetime (naive values are taken as UTC) to a UTC ISO string."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = parse_iso(value)
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(pytz.utc).isoformat()


def parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class AssignmentManager:
    """Creates assignments, accepts submissions and records grades."""

    def __init__(self, db: Session, media_storage: Optional[MediaStorage] = None):
        self.db = db
        self.courses = CourseManager(db)
        self.media_storage = media_storage or MediaStorage()

    def get_assignment_model(self, assignment_id: int) -> AssignmentModel:
        model = (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.id == assignment_id)
            .first()
        )
        if not model:
            raise NotFoundError("Assignment", assignment_id)
        return model

    def get_submission_model(self, submission_id: int) -> SubmissionModel:
        model = (
            self.db.query(SubmissionModel)
            .filter(SubmissionModel.id == submission_id)
            .first()
        )
        if not model:
            raise NotFoundError("Submission", submission_id)
        return model

    # --- Assignments ---

    def create_assignment(
        self,
        course_id: int,
        caller: CallerContext,
        title: Optional[str],
        max_points: Optional[int],
        description: Optional[str] = None,
        due_date: Union[datetime, str, None] = None,
        assignment_type: Optional[str] = None,
    ) -> AssignmentModel:
        """Create an assignment in a course owned by the caller.

        Raises:
            AuthorizationError: If the caller does not own the course.
            ValidationError: If title or max_points is missing or invalid.
        """
        self.courses.require_owner(
            course_id, caller, "create assignments for this course"
        )
        if not title or not title.strip() or max_points is None:
            raise ValidationError("Title and max points are required")
        if max_points <= 0:
            raise ValidationError("Max points must be greater than zero")

        now = datetime.now(pytz.utc).isoformat()
        model = AssignmentModel(
            course_id=course_id,
            title=title.strip(),
            description=description.strip() if description else None,
            due_date=to_utc_iso(due_date),
            max_points=max_points,
            assignment_type=assignment_type or DEFAULT_ASSIGNMENT_TYPE,
            created_at=now,
            updated_at=now,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created assignment %s for course %s", model.id, course_id)
        return model

    def list_for_course(self, course_id: int) -> List[AssignmentModel]:
        return (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.course_id == course_id)
            .order_by(AssignmentModel.created_at.desc(), AssignmentModel.id.desc())
            .all()
        )

    def list_for_student_course(
        self, course_id: int, caller: CallerContext
    ) -> List[AssignmentModel]:
        if not student_enrolled_in_course(self.db, caller.user_id, course_id):
            raise AuthorizationError(
                "You are not enrolled in this course", course_id=course_id
            )
        return self.list_for_course(course_id)

    def list_for_enrolled_student(self, student_id: str) -> List[Dict[str, Any]]:
        """Assignments of the student's published courses with their own submission."""
        enrolled_course_ids = select(EnrollmentModel.course_id).where(
            EnrollmentModel.student_id == student_id
        )
        rows = (
            self.db.query(AssignmentModel, CourseModel, UserModel.name, SubmissionModel)
            .join(CourseModel, CourseModel.id == AssignmentModel.course_id)
            .join(UserModel, UserModel.user_id == CourseModel.teacher_id)
            .outerjoin(
                SubmissionModel,
                and_(
                    SubmissionModel.assignment_id == AssignmentModel.id,
                    SubmissionModel.student_id == student_id,
                ),
            )
            .filter(
                AssignmentModel.course_id.in_(enrolled_course_ids),
                CourseModel.is_published.is_(True),
            )
            .order_by(
                AssignmentModel.due_date.is_(None),
                AssignmentModel.due_date.asc(),
                AssignmentModel.created_at.desc(),
            )
            .all()
        )
        results = []
        for assignment, course, teacher_name, submission in rows:
            results.append(
                model_to_dict(
                    assignment,
                    course_title=course.title,
                    teacher_id=course.teacher_id,
                    teacher_name=teacher_name,
                    has_submitted=submission is not None,
                    submission_status=submission.status if submission else None,
                    student_grade=submission.grade if submission else None,
                    submitted_at=submission.submitted_at if submission else None,
                    feedback=submission.feedback if submission else None,
                )
            )
        return results

    def get_assignment(self, assignment_id: int) -> Dict[str, Any]:
        row = (
            self.db.query(AssignmentModel, CourseModel.title)
            .join(CourseModel, CourseModel.id == AssignmentModel.course_id)
            .filter(AssignmentModel.id == assignment_id)
            .first()
        )
        if not row:
            raise NotFoundError("Assignment", assignment_id)
        assignment, course_title = row
        return model_to_dict(assignment, course_title=course_title)

    def update_assignment(
        self, assignment_id: int, caller: CallerContext, changes: Dict[str, Any]
    ) -> AssignmentModel:
        """Apply a partial update restricted to ASSIGNMENT_UPDATE_FIELDS."""
        assignment = self.get_assignment_model(assignment_id)
        self.courses.require_owner(
            assignment.course_id, caller, "update this assignment"
        )

        values = {k: v for k, v in changes.items() if k in ASSIGNMENT_UPDATE_FIELDS}
        if "title" in values:
            if not values["title"] or not values["title"].strip():
                raise ValidationError("Assignment title cannot be empty")
            values["title"] = values["title"].strip()
        if "max_points" in values:
            if values["max_points"] is None or values["max_points"] <= 0:
                raise ValidationError("Max points must be greater than zero")
        if "due_date" in values:
            values["due_date"] = to_utc_iso(values["due_date"])
        if "assignment_type" in values and not values["assignment_type"]:
            values["assignment_type"] = DEFAULT_ASSIGNMENT_TYPE

        if values:
            values["updated_at"] = datetime.now(pytz.utc).isoformat()
            self.db.query(AssignmentModel).filter(
                AssignmentModel.id == assignment_id
            ).update(values, synchronize_session=False)
            self.db.commit()
            logger.info("Updated assignment %s: %s", assignment_id, sorted(values))
        self.db.refresh(assignment)
        return assignment

    def delete_assignment(self, assignment_id: int, caller: CallerContext) -> None:
        assignment = self.get_assignment_model(assignment_id)
        self.courses.require_owner(
            assignment.course_id, caller, "delete this assignment"
        )
        self.db.delete(assignment)
        self.db.commit()
        logger.info("Deleted assignment %s", assignment_id)

    # --- Submissions ---

    def submit(
        self,
        assignment_id: int,
        caller: CallerContext,
        submission_text: Optional[str] = None,
        file_content: Optional[bytes] = None,
        filename: Optional[str] = None,
    ) -> SubmissionModel:
        """Submit an answer for an assignment.

        Checks run in order and stop at the first failure: the assignment
        exists, the caller is enrolled in its course, the due date has not
        passed, no earlier submission exists, and there is text or a file.
        The file is stored before the row is written; if the write fails the
        stored file is removed again.

        Raises:
            NotFoundError: If the assignment does not exist.
            AuthorizationError: If the caller is not enrolled.
            ValidationError: If past due or the submission is empty.
            ConflictError: If the caller already submitted.
            MediaUploadError: If the file cannot be stored.
        """
        assignment = self.get_assignment_model(assignment_id)

        if not student_enrolled_in_course(self.db, caller.user_id, assignment.course_id):
            raise AuthorizationError(
                "You are not enrolled in this course", course_id=assignment.course_id
            )

        if assignment.due_date and datetime.now(pytz.utc) > parse_iso(assignment.due_date):
            raise ValidationError(
                "Assignment submission is past due date", assignment_id=assignment_id
            )

        if self._find_submission(assignment_id, caller.user_id):
            raise ConflictError(
                "You have already submitted this assignment", assignment_id=assignment_id
            )

        stored: Optional[StoredMedia] = None
        if file_content:
            stored = self.media_storage.upload(file_content, filename, SUBMISSION_FOLDER)

        text = submission_text.strip() if submission_text else None
        if not text and stored is None:
            raise ValidationError("Either submission text or file upload is required")

        model = SubmissionModel(
            assignment_id=assignment_id,
            student_id=caller.user_id,
            submission_text=text,
            file_url=stored.url if stored else None,
            file_public_id=stored.public_id if stored else None,
            status="submitted",
            submitted_at=datetime.now(pytz.utc).isoformat(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            self._discard_upload(stored)
            raise ConflictError(
                "You have already submitted this assignment", assignment_id=assignment_id
            ) from e
        except SQLAlchemyError:
            self.db.rollback()
            self._discard_upload(stored)
            raise
        self.db.refresh(model)
        logger.info(
            "Student %s submitted assignment %s (submission %s)",
            caller.user_id,
            assignment_id,
            model.id,
        )
        return model

    def _find_submission(self, assignment_id: int, student_id: str) -> Optional[SubmissionModel]:
        return (
            self.db.query(SubmissionModel)
            .filter(
                SubmissionModel.assignment_id == assignment_id,
                SubmissionModel.student_id == student_id,
            )
            .first()
        )

    def _discard_upload(self, stored: Optional[StoredMedia]) -> None:
        if stored is not None:
            self.media_storage.delete(stored.public_id)

    def list_submissions(
        self, assignment_id: int, caller: CallerContext
    ) -> List[Dict[str, Any]]:
        assignment = self.get_assignment_model(assignment_id)
        self.courses.require_owner(
            assignment.course_id, caller, "view submissions for this assignment"
        )
        rows = (
            self.db.query(SubmissionModel, UserModel.name, UserModel.email)
            .join(UserModel, UserModel.user_id == SubmissionModel.student_id)
            .filter(SubmissionModel.assignment_id == assignment_id)
            .order_by(SubmissionModel.submitted_at.desc())
            .all()
        )
        return [
            model_to_dict(submission, student_name=name, student_email=email)
            for submission, name, email in rows
        ]

    def list_student_submissions(self, student_id: str) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(SubmissionModel, AssignmentModel, CourseModel.title, UserModel.name)
            .join(AssignmentModel, AssignmentModel.id == SubmissionModel.assignment_id)
            .join(CourseModel, CourseModel.id == AssignmentModel.course_id)
            .join(UserModel, UserModel.user_id == CourseModel.teacher_id)
            .filter(SubmissionModel.student_id == student_id)
            .order_by(SubmissionModel.submitted_at.desc())
            .all()
        )
        return [
            model_to_dict(
                submission,
                assignment_title=assignment.title,
                max_points=assignment.max_points,
                due_date=assignment.due_date,
                course_title=course_title,
                teacher_name=teacher_name,
            )
            for submission, assignment, course_title, teacher_name in rows
        ]

    # --- Grading ---

    def grade_submission(
        self,
        submission_id: int,
        caller: CallerContext,
        grade: float,
        feedback: Optional[str] = None,
    ) -> SubmissionModel:
        """Record a grade for a submission in a course the caller owns.

        Raises:
            NotFoundError: If the submission does not exist.
            AuthorizationError: If the caller does not own the course.
            ValidationError: If the grade is negative or above max points.
        """
        submission = self.get_submission_model(submission_id)
        assignment = self.get_assignment_model(submission.assignment_id)
        self.courses.require_owner(
            assignment.course_id, caller, "grade this submission"
        )

        if grade is None:
            raise ValidationError("Grade is required")
        if not math.isfinite(grade):
            raise ValidationError("Grade must be a finite number")
        if grade < 0:
            raise ValidationError("Grade cannot be negative")
        if grade > assignment.max_points:
            raise ValidationError(
                f"Grade cannot exceed maximum points ({assignment.max_points})",
                max_points=assignment.max_points,
            )

        submission.grade = grade
        submission.feedback = feedback
        submission.graded_by = caller.user_id
        submission.graded_at = datetime.now(pytz.utc).isoformat()
        submission.status = "graded"
        self.db.commit()
        self.db.refresh(submission)
        logger.info("Submission %s graded %s by %s", submission_id, grade, caller.user_id)
        return submission

    def student_grade_stats(self, student_id: str) -> Dict[str, Any]:
        """Aggregate the student's grades over their enrolled, published courses."""
        enrolled_course_ids = select(EnrollmentModel.course_id).where(
            EnrollmentModel.student_id == student_id
        )
        (
            total_assignments,
            submitted_assignments,
            graded_assignments,
            average_grade,
            total_possible_points,
            total_earned_points,
        ) = (
            self.db.query(
                func.count(AssignmentModel.id),
                func.count(SubmissionModel.id),
                func.count(SubmissionModel.grade),
                func.avg(SubmissionModel.grade),
                func.sum(AssignmentModel.max_points),
                func.sum(SubmissionModel.grade),
            )
            .select_from(AssignmentModel)
            .join(CourseModel, CourseModel.id == AssignmentModel.course_id)
            .outerjoin(
                SubmissionModel,
                and_(
                    SubmissionModel.assignment_id == AssignmentModel.id,
                    SubmissionModel.student_id == student_id,
                ),
            )
            .filter(
                AssignmentModel.course_id.in_(enrolled_course_ids),
                CourseModel.is_published.is_(True),
            )
            .one()
        )

        possible = float(total_possible_points or 0)
        earned = float(total_earned_points or 0)
        overall_percentage = (earned * 100) / possible if possible > 0 else 0
        return {
            "total_assignments": total_assignments or 0,
            "submitted_assignments": submitted_assignments or 0,
            "graded_assignments": graded_assignments or 0,
            "average_grade": round_half_up(float(average_grade or 0)),
            "total_possible_points": possible,
            "total_earned_points": earned,
            "overall_percentage": round_half_up(overall_percentage),
        }
