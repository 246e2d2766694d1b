"""Course content (lesson) management utilities.

Owners see and edit every item of their course. Enrolled students only see
published items, and an unpublished item is reported as missing to them.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import CONTENT_TYPES
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.course_content import ContentCompletionModel, CourseContentModel
from schemas.user import CallerContext
from utils.access_guard import (
    can_access_course,
    course_owned_by_teacher,
    student_enrolled_in_course,
)
from utils.assignment_manager import round_half_up
from utils.converters import model_to_dict
from utils.course_manager import CourseManager

logger = logging.getLogger(__name__)

# Columns a course owner may change through update_content
CONTENT_UPDATE_FIELDS = (
    "title",
    "description",
    "content_type",
    "body",
    "link_url",
    "duration",
    "display_order",
    "is_published",
)


def check_content_shape(
    content_type: Optional[str], body: Optional[str], link_url: Optional[str]
) -> None:
    """Raise unless the type is known and carries the field it needs."""
    if content_type not in CONTENT_TYPES:
        raise ValidationError(
            f"Content type must be one of: {', '.join(CONTENT_TYPES)}",
            content_type=content_type,
        )
    if content_type == "text" and (not body or not body.strip()):
        raise ValidationError("Body is required for text content")
    if content_type == "link" and (not link_url or not link_url.strip()):
        raise ValidationError("Link URL is required for link content")


class ContentManager:
    """Manages the ordered lessons of a course and student completion."""

    def __init__(self, db: Session):
        self.db = db
        self.courses = CourseManager(db)

    def _require_reader(self, course_id: int, caller: CallerContext) -> bool:
        """Check read access and return True when the caller owns the course."""
        self.courses.get_course_model(course_id)
        if course_owned_by_teacher(self.db, course_id, caller.user_id):
            return True
        if not can_access_course(self.db, caller.user_id, course_id):
            raise AuthorizationError(
                "You do not have access to this course", course_id=course_id
            )
        return False

    def _get_content_model(self, course_id: int, content_id: int) -> CourseContentModel:
        model = (
            self.db.query(CourseContentModel)
            .filter(
                CourseContentModel.id == content_id,
                CourseContentModel.course_id == course_id,
            )
            .first()
        )
        if not model:
            raise NotFoundError("Content", content_id)
        return model

    def create_content(
        self,
        course_id: int,
        caller: CallerContext,
        title: Optional[str],
        content_type: Optional[str],
        description: Optional[str] = None,
        body: Optional[str] = None,
        link_url: Optional[str] = None,
        duration: Optional[str] = None,
        display_order: Optional[int] = None,
        is_published: bool = True,
    ) -> CourseContentModel:
        """Add a lesson to a course owned by the caller.

        Without an explicit ``display_order`` the item goes after the last one.

        Raises:
            AuthorizationError: If the caller does not own the course.
            ValidationError: If the title is missing or the type does not match its fields.
        """
        self.courses.require_owner(course_id, caller, "add content to this course")
        if not title or not title.strip():
            raise ValidationError("Title is required")
        check_content_shape(content_type, body, link_url)

        if display_order is None:
            last = (
                self.db.query(func.max(CourseContentModel.display_order))
                .filter(CourseContentModel.course_id == course_id)
                .scalar()
            )
            display_order = 0 if last is None else last + 1

        now = datetime.now(pytz.utc).isoformat()
        model = CourseContentModel(
            course_id=course_id,
            title=title.strip(),
            description=description.strip() if description else None,
            content_type=content_type,
            body=body.strip() if body else None,
            link_url=link_url.strip() if link_url else None,
            duration=duration or None,
            display_order=display_order,
            is_published=is_published,
            created_at=now,
            updated_at=now,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created content %s for course %s", model.id, course_id)
        return model

    def list_for_course(
        self, course_id: int, caller: CallerContext
    ) -> List[CourseContentModel]:
        is_owner = self._require_reader(course_id, caller)
        query = self.db.query(CourseContentModel).filter(
            CourseContentModel.course_id == course_id
        )
        if not is_owner:
            query = query.filter(CourseContentModel.is_published.is_(True))
        return query.order_by(
            CourseContentModel.display_order.asc(),
            CourseContentModel.created_at.asc(),
            CourseContentModel.id.asc(),
        ).all()

    def get_content(
        self, course_id: int, content_id: int, caller: CallerContext
    ) -> CourseContentModel:
        is_owner = self._require_reader(course_id, caller)
        model = self._get_content_model(course_id, content_id)
        if not model.is_published and not is_owner:
            raise NotFoundError("Content", content_id)
        return model

    def update_content(
        self,
        course_id: int,
        content_id: int,
        caller: CallerContext,
        changes: Dict[str, Any],
    ) -> CourseContentModel:
        """Apply a partial update restricted to CONTENT_UPDATE_FIELDS.

        The type and its body or link are validated on the merged result, so
        switching a text item to a link must send the link in the same call.
        """
        self.courses.require_owner(course_id, caller, "update content of this course")
        model = self._get_content_model(course_id, content_id)

        values = {k: v for k, v in changes.items() if k in CONTENT_UPDATE_FIELDS}
        if "title" in values:
            if not values["title"] or not values["title"].strip():
                raise ValidationError("Content title cannot be empty")
            values["title"] = values["title"].strip()
        for field in ("display_order", "is_published"):
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be null")
        check_content_shape(
            values.get("content_type", model.content_type),
            values.get("body", model.body),
            values.get("link_url", model.link_url),
        )

        if values:
            values["updated_at"] = datetime.now(pytz.utc).isoformat()
            self.db.query(CourseContentModel).filter(
                CourseContentModel.id == content_id
            ).update(values, synchronize_session=False)
            self.db.commit()
            logger.info("Updated content %s: %s", content_id, sorted(values))
        self.db.refresh(model)
        return model

    def delete_content(self, course_id: int, content_id: int, caller: CallerContext) -> None:
        self.courses.require_owner(course_id, caller, "delete content of this course")
        self._get_content_model(course_id, content_id)
        self.db.query(CourseContentModel).filter(
            CourseContentModel.id == content_id
        ).delete(synchronize_session=False)
        self.db.commit()
        logger.info("Deleted content %s from course %s", content_id, course_id)

    def reorder_content(
        self, course_id: int, caller: CallerContext, content_ids: List[int]
    ) -> List[CourseContentModel]:
        """Set display_order to each item's position in ``content_ids``.

        Raises:
            ValidationError: Unless ``content_ids`` lists every item of the course exactly once.
        """
        self.courses.require_owner(course_id, caller, "reorder content of this course")
        existing = {
            row.id
            for row in self.db.query(CourseContentModel.id).filter(
                CourseContentModel.course_id == course_id
            )
        }
        if len(content_ids) != len(set(content_ids)) or set(content_ids) != existing:
            raise ValidationError(
                "Content order must list every item of the course exactly once",
                course_id=course_id,
            )

        now = datetime.now(pytz.utc).isoformat()
        for position, content_id in enumerate(content_ids):
            self.db.query(CourseContentModel).filter(
                CourseContentModel.id == content_id
            ).update(
                {"display_order": position, "updated_at": now},
                synchronize_session=False,
            )
        self.db.commit()
        logger.info("Reordered %d content items of course %s", len(content_ids), course_id)
        return self.list_for_course(course_id, caller)

    def get_content_stats(self, course_id: int, caller: CallerContext) -> Dict[str, Any]:
        """Published item counts, overall and per content type."""
        self._require_reader(course_id, caller)
        rows = (
            self.db.query(CourseContentModel.content_type, func.count(CourseContentModel.id))
            .filter(
                CourseContentModel.course_id == course_id,
                CourseContentModel.is_published.is_(True),
            )
            .group_by(CourseContentModel.content_type)
            .all()
        )
        by_type = {content_type: count for content_type, count in rows}
        return {"total": sum(by_type.values()), "by_type": by_type}

    # --- Progress ---

    def mark_complete(
        self, course_id: int, content_id: int, caller: CallerContext
    ) -> ContentCompletionModel:
        """Record that the calling student finished a lesson; repeating is a no-op."""
        if not student_enrolled_in_course(self.db, caller.user_id, course_id):
            self.courses.get_course_model(course_id)
            raise AuthorizationError(
                "You are not enrolled in this course", course_id=course_id
            )
        self.get_content(course_id, content_id, caller)

        existing = self._find_completion(content_id, caller.user_id)
        if existing:
            return existing
        model = ContentCompletionModel(
            content_id=content_id,
            student_id=caller.user_id,
            completed_at=datetime.now(pytz.utc).isoformat(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            model = self._find_completion(content_id, caller.user_id)
            if model is None:
                raise ConflictError(
                    "Completion changed concurrently, please retry", content_id=content_id
                )
            return model
        self.db.refresh(model)
        logger.info("Student %s completed content %s", caller.user_id, content_id)
        return model

    def _find_completion(
        self, content_id: int, student_id: str
    ) -> Optional[ContentCompletionModel]:
        return (
            self.db.query(ContentCompletionModel)
            .filter(
                ContentCompletionModel.content_id == content_id,
                ContentCompletionModel.student_id == student_id,
            )
            .first()
        )

    def get_progress(self, course_id: int, caller: CallerContext) -> Dict[str, Any]:
        """Completed published lessons of the caller against the course total."""
        self._require_reader(course_id, caller)
        published_ids = select(CourseContentModel.id).where(
            CourseContentModel.course_id == course_id,
            CourseContentModel.is_published.is_(True),
        )
        total = (
            self.db.query(func.count(CourseContentModel.id))
            .filter(CourseContentModel.id.in_(published_ids))
            .scalar()
        )
        completed = (
            self.db.query(func.count(ContentCompletionModel.id))
            .filter(
                ContentCompletionModel.student_id == caller.user_id,
                ContentCompletionModel.content_id.in_(published_ids),
            )
            .scalar()
        )
        percentage = round_half_up(completed * 100 / total) if total else 0
        return {
            "course_id": course_id,
            "completed_lessons": completed,
            "total_lessons": total,
            "percentage": percentage,
        }
