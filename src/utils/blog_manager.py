"""Blog management utilities."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy.orm import Session

from config import DEFAULT_BLOG_READ_TIME
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from models.blog import BlogModel
from models.user import UserModel
from schemas.user import CallerContext
from utils.converters import model_to_dict

logger = logging.getLogger(__name__)


class BlogManager:
    """Publishes teacher-written articles and lists them for every reader."""

    def __init__(self, db: Session):
        self.db = db

    def create_blog(
        self,
        caller: CallerContext,
        title: Optional[str],
        content: Optional[str],
        featured_image: Optional[str] = None,
        tags: Optional[List[str]] = None,
        read_time: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Publish a blog post written by the calling teacher.

        Raises:
            AuthorizationError: If the caller is not a teacher.
            ValidationError: If title or content is missing, or read_time is not positive.
        """
        if not caller.is_teacher:
            raise AuthorizationError("Only teachers can write blogs")
        if not title or not title.strip() or not content or not content.strip():
            raise ValidationError("Title and content are required")
        if read_time is not None and read_time <= 0:
            raise ValidationError("Read time must be greater than zero")

        now = datetime.now(pytz.utc).isoformat()
        model = BlogModel(
            author_id=caller.user_id,
            title=title.strip(),
            content=content.strip(),
            featured_image=featured_image or None,
            tags=[tag.strip() for tag in tags or [] if tag and tag.strip()],
            read_time=read_time or DEFAULT_BLOG_READ_TIME,
            is_published=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Teacher %s published blog %s", caller.user_id, model.id)
        return model_to_dict(model, author_name=caller.name)

    def _with_author(self):
        return self.db.query(BlogModel, UserModel.name).join(
            UserModel, UserModel.user_id == BlogModel.author_id
        )

    def list_published(self) -> List[Dict[str, Any]]:
        rows = (
            self._with_author()
            .filter(BlogModel.is_published.is_(True))
            .order_by(BlogModel.created_at.desc(), BlogModel.id.desc())
            .all()
        )
        return [model_to_dict(blog, author_name=name) for blog, name in rows]

    def list_for_author(self, author_id: str) -> List[Dict[str, Any]]:
        rows = (
            self._with_author()
            .filter(BlogModel.author_id == author_id)
            .order_by(BlogModel.created_at.desc(), BlogModel.id.desc())
            .all()
        )
        return [model_to_dict(blog, author_name=name) for blog, name in rows]

    def get_blog(self, blog_id: int) -> Dict[str, Any]:
        row = self._with_author().filter(BlogModel.id == blog_id).first()
        if not row:
            raise NotFoundError("Blog", blog_id)
        blog, name = row
        return model_to_dict(blog, author_name=name)
