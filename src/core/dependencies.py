"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
Every manager gets the request-scoped DB session.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import assignment_manager
from utils import blog_manager
from utils import content_manager
from utils import course_manager
from utils import forum_manager
from utils import media_storage
from utils import user_manager

# Shared media store; it holds no per-request state
_media_storage_instance: media_storage.MediaStorage = None


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_course_manager(db: Session = Depends(get_db)) -> course_manager.CourseManager:
    """Get CourseManager instance with request-scoped DB session."""
    return course_manager.CourseManager(db)


def get_media_storage() -> media_storage.MediaStorage:
    """Get MediaStorage singleton instance.

    Returns:
        MediaStorage instance (singleton).
    """
    global _media_storage_instance
    if _media_storage_instance is None:
        _media_storage_instance = media_storage.MediaStorage()
    return _media_storage_instance


def get_assignment_manager(
    db: Session = Depends(get_db),
    storage: media_storage.MediaStorage = Depends(get_media_storage),
) -> assignment_manager.AssignmentManager:
    """Get AssignmentManager instance with request-scoped DB session."""
    return assignment_manager.AssignmentManager(db, media_storage=storage)


def get_forum_manager(db: Session = Depends(get_db)) -> forum_manager.ForumManager:
    """Get ForumManager instance with request-scoped DB session."""
    return forum_manager.ForumManager(db)


def get_content_manager(db: Session = Depends(get_db)) -> content_manager.ContentManager:
    """Get ContentManager instance with request-scoped DB session."""
    return content_manager.ContentManager(db)


def get_blog_manager(db: Session = Depends(get_db)) -> blog_manager.BlogManager:
    """Get BlogManager instance with request-scoped DB session."""
    return blog_manager.BlogManager(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[user_manager.UserManager, Depends(get_user_manager)]
CourseManagerDep = Annotated[course_manager.CourseManager, Depends(get_course_manager)]
AssignmentManagerDep = Annotated[
    assignment_manager.AssignmentManager, Depends(get_assignment_manager)
]
ForumManagerDep = Annotated[forum_manager.ForumManager, Depends(get_forum_manager)]
ContentManagerDep = Annotated[
    content_manager.ContentManager, Depends(get_content_manager)
]
BlogManagerDep = Annotated[blog_manager.BlogManager, Depends(get_blog_manager)]
