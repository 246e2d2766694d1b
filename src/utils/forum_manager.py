"""Course forum management utilities.

Threads are open by default and only a moderator locks them; pinning is an
independent flag. Reading a thread counts as a view every time.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from config import DEFAULT_FORUM_CATEGORIES, FORUM_PAGE_SIZE
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.forum import (
    ForumCategoryModel,
    ForumPostModel,
    ForumReactionModel,
    ForumThreadModel,
)
from models.user import UserModel
from schemas.user import CallerContext
from utils.access_guard import can_access_course, course_owned_by_teacher
from utils.converters import model_to_dict
from utils.course_manager import CourseManager

logger = logging.getLogger(__name__)


class ForumManager:
    """Manages categories, threads, posts and reactions of course forums."""

    def __init__(self, db: Session):
        self.db = db
        self.courses = CourseManager(db)

    # --- Lookups ---

    def _get_category_model(self, category_id: int) -> ForumCategoryModel:
        model = (
            self.db.query(ForumCategoryModel)
            .filter(ForumCategoryModel.id == category_id)
            .first()
        )
        if not model:
            raise NotFoundError("Category", category_id)
        return model

    def _get_thread_model(self, thread_id: int) -> ForumThreadModel:
        model = (
            self.db.query(ForumThreadModel)
            .filter(ForumThreadModel.id == thread_id)
            .first()
        )
        if not model:
            raise NotFoundError("Thread", thread_id)
        return model

    def _get_post_model(self, post_id: int) -> ForumPostModel:
        model = self.db.query(ForumPostModel).filter(ForumPostModel.id == post_id).first()
        if not model:
            raise NotFoundError("Post", post_id)
        return model

    def _course_id_for_category(self, category_id: int) -> int:
        return self._get_category_model(category_id).course_id

    def _require_forum_access(self, course_id: int, caller: CallerContext) -> None:
        if not can_access_course(self.db, caller.user_id, course_id):
            raise AuthorizationError(
                "You must be enrolled in this course to post in its forum",
                course_id=course_id,
            )

    # --- Categories ---

    def ensure_default_categories(self, course_id: int) -> None:
        """Create the default categories if the course has none yet."""
        existing = (
            self.db.query(func.count(ForumCategoryModel.id))
            .filter(ForumCategoryModel.course_id == course_id)
            .scalar()
        )
        if existing:
            return
        now = datetime.now(pytz.utc).isoformat()
        for category in DEFAULT_FORUM_CATEGORIES:
            self.db.add(
                ForumCategoryModel(
                    course_id=course_id,
                    title=category["title"],
                    description=category["description"],
                    created_at=now,
                )
            )
        self.db.commit()
        logger.info("Created default forum categories for course %s", course_id)

    def get_categories(self, course_id: int) -> List[Dict[str, Any]]:
        thread_count = (
            self.db.query(func.count(ForumThreadModel.id))
            .filter(ForumThreadModel.category_id == ForumCategoryModel.id)
            .correlate(ForumCategoryModel)
            .scalar_subquery()
        )
        post_count = (
            self.db.query(func.count(ForumPostModel.id))
            .join(ForumThreadModel, ForumThreadModel.id == ForumPostModel.thread_id)
            .filter(ForumThreadModel.category_id == ForumCategoryModel.id)
            .correlate(ForumCategoryModel)
            .scalar_subquery()
        )
        last_activity = (
            self.db.query(func.max(ForumThreadModel.last_reply_at))
            .filter(ForumThreadModel.category_id == ForumCategoryModel.id)
            .correlate(ForumCategoryModel)
            .scalar_subquery()
        )
        rows = (
            self.db.query(ForumCategoryModel, thread_count, post_count, last_activity)
            .filter(ForumCategoryModel.course_id == course_id)
            .order_by(ForumCategoryModel.created_at.asc(), ForumCategoryModel.id.asc())
            .all()
        )
        return [
            model_to_dict(
                category,
                thread_count=threads,
                post_count=posts,
                last_activity=activity,
            )
            for category, threads, posts, activity in rows
        ]

    def get_course_forum(self, course_id: int) -> List[Dict[str, Any]]:
        """Categories of a course forum, bootstrapping the defaults on first use."""
        self.courses.get_course_model(course_id)
        self.ensure_default_categories(course_id)
        return self.get_categories(course_id)

    # --- Threads ---

    def list_threads(
        self, category_id: int, page: int = 1, limit: int = FORUM_PAGE_SIZE
    ) -> List[Dict[str, Any]]:
        """Threads of a category, pinned first, then by latest reply."""
        self._get_category_model(category_id)
        reply = aliased(ForumPostModel)
        reply_author = aliased(UserModel)
        total_replies = (
            self.db.query(func.count(reply.id))
            .filter(reply.thread_id == ForumThreadModel.id)
            .correlate(ForumThreadModel)
            .scalar_subquery()
        )
        last_reply_author = (
            self.db.query(reply_author.name)
            .join(reply, reply.author_id == reply_author.user_id)
            .filter(reply.thread_id == ForumThreadModel.id)
            .order_by(reply.created_at.desc(), reply.id.desc())
            .limit(1)
            .correlate(ForumThreadModel)
            .scalar_subquery()
        )
        last_reply_date = (
            self.db.query(func.max(reply.created_at))
            .filter(reply.thread_id == ForumThreadModel.id)
            .correlate(ForumThreadModel)
            .scalar_subquery()
        )
        rows = (
            self.db.query(
                ForumThreadModel,
                UserModel.name,
                UserModel.role,
                total_replies,
                last_reply_author,
                last_reply_date,
            )
            .join(UserModel, UserModel.user_id == ForumThreadModel.author_id)
            .filter(ForumThreadModel.category_id == category_id)
            .order_by(
                ForumThreadModel.is_pinned.desc(),
                ForumThreadModel.last_reply_at.desc(),
                ForumThreadModel.id.desc(),
            )
            .limit(limit)
            .offset((page - 1) * limit)
            .all()
        )
        return [
            model_to_dict(
                thread,
                author_name=name,
                author_role=role,
                total_replies=replies,
                last_reply_author=last_author,
                last_reply_date=last_date,
            )
            for thread, name, role, replies, last_author, last_date in rows
        ]

    def create_thread(
        self,
        category_id: int,
        caller: CallerContext,
        title: Optional[str],
        content: Optional[str],
    ) -> Dict[str, Any]:
        """Open a new thread in a category.

        The thread's course is resolved through its category so that the
        default categories are bootstrapped for the right course.
        """
        course_id = self._course_id_for_category(category_id)
        self._require_forum_access(course_id, caller)
        if not title or not title.strip() or not content or not content.strip():
            raise ValidationError("Title and content are required")

        now = datetime.now(pytz.utc).isoformat()
        model = ForumThreadModel(
            category_id=category_id,
            author_id=caller.user_id,
            title=title.strip(),
            content=content.strip(),
            view_count=0,
            reply_count=0,
            is_pinned=False,
            is_locked=False,
            created_at=now,
            last_reply_at=now,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        self.ensure_default_categories(course_id)
        logger.info("User %s opened thread %s in category %s", caller.user_id, model.id, category_id)
        return model_to_dict(model, author_name=caller.name, author_role=caller.role)

    def get_thread(self, thread_id: int) -> Dict[str, Any]:
        """Thread with author and category details; counts one view."""
        updated = (
            self.db.query(ForumThreadModel)
            .filter(ForumThreadModel.id == thread_id)
            .update(
                {ForumThreadModel.view_count: ForumThreadModel.view_count + 1},
                synchronize_session=False,
            )
        )
        if not updated:
            self.db.rollback()
            raise NotFoundError("Thread", thread_id)
        self.db.commit()

        thread, name, role, category_title, course_id = (
            self.db.query(
                ForumThreadModel,
                UserModel.name,
                UserModel.role,
                ForumCategoryModel.title,
                ForumCategoryModel.course_id,
            )
            .join(UserModel, UserModel.user_id == ForumThreadModel.author_id)
            .join(ForumCategoryModel, ForumCategoryModel.id == ForumThreadModel.category_id)
            .filter(ForumThreadModel.id == thread_id)
            .one()
        )
        return model_to_dict(
            thread,
            author_name=name,
            author_role=role,
            category_title=category_title,
            course_id=course_id,
        )

    def get_thread_with_posts(self, thread_id: int) -> Dict[str, Any]:
        """Thread, its top-level posts, and one level of replies per post."""
        thread = self.get_thread(thread_id)
        posts = self.get_posts_for_thread(thread_id)
        for post in posts:
            post["replies"] = self.get_replies_to_post(post["id"])
        return {"thread": thread, "posts": posts}

    def search(self, course_id: int, query: Optional[str]) -> List[Dict[str, Any]]:
        """Case-insensitive substring search over thread titles and content."""
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        needle = query.strip().lower()
        rows = (
            self.db.query(ForumThreadModel, UserModel.name, ForumCategoryModel.title)
            .join(UserModel, UserModel.user_id == ForumThreadModel.author_id)
            .join(ForumCategoryModel, ForumCategoryModel.id == ForumThreadModel.category_id)
            .filter(
                ForumCategoryModel.course_id == course_id,
                or_(
                    func.lower(ForumThreadModel.title).contains(needle, autoescape=True),
                    func.lower(ForumThreadModel.content).contains(needle, autoescape=True),
                ),
            )
            .order_by(ForumThreadModel.last_reply_at.desc(), ForumThreadModel.id.desc())
            .all()
        )
        return [
            model_to_dict(thread, author_name=name, category_title=category_title)
            for thread, name, category_title in rows
        ]

    # --- Posts ---

    def get_posts_for_thread(self, thread_id: int) -> List[Dict[str, Any]]:
        """Top-level posts of a thread, oldest first."""
        child = aliased(ForumPostModel)
        reaction_count = (
            self.db.query(func.count(ForumReactionModel.id))
            .filter(ForumReactionModel.post_id == ForumPostModel.id)
            .correlate(ForumPostModel)
            .scalar_subquery()
        )
        reply_count = (
            self.db.query(func.count(child.id))
            .filter(child.parent_id == ForumPostModel.id)
            .correlate(ForumPostModel)
            .scalar_subquery()
        )
        rows = (
            self.db.query(
                ForumPostModel, UserModel.name, UserModel.role, reaction_count, reply_count
            )
            .join(UserModel, UserModel.user_id == ForumPostModel.author_id)
            .filter(
                ForumPostModel.thread_id == thread_id,
                ForumPostModel.parent_id.is_(None),
            )
            .order_by(ForumPostModel.created_at.asc(), ForumPostModel.id.asc())
            .all()
        )
        return [
            model_to_dict(
                post,
                author_name=name,
                author_role=role,
                reaction_count=reactions,
                reply_count=replies,
            )
            for post, name, role, reactions, replies in rows
        ]

    def get_replies_to_post(self, post_id: int) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(ForumPostModel, UserModel.name, UserModel.role)
            .join(UserModel, UserModel.user_id == ForumPostModel.author_id)
            .filter(ForumPostModel.parent_id == post_id)
            .order_by(ForumPostModel.created_at.asc(), ForumPostModel.id.asc())
            .all()
        )
        return [
            model_to_dict(post, author_name=name, author_role=role)
            for post, name, role in rows
        ]

    def create_post(
        self,
        thread_id: int,
        caller: CallerContext,
        content: Optional[str],
        parent_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Reply to a thread, or to a post of that thread.

        The insert and the thread counter bump are committed together, and
        the counter is incremented inside the database so concurrent replies
        are all counted.

        Raises:
            NotFoundError: If the thread (or parent post) does not exist.
            AuthorizationError: If the caller has no access or the thread is locked.
            ValidationError: If content is empty or the parent is in another thread.
        """
        try:
            thread = (
                self.db.query(ForumThreadModel)
                .filter(ForumThreadModel.id == thread_id)
                .with_for_update()
                .first()
            )
            if not thread:
                raise NotFoundError("Thread", thread_id)
            course_id = self._course_id_for_category(thread.category_id)
            self._require_forum_access(course_id, caller)
            if thread.is_locked:
                raise AuthorizationError(
                    "This thread is locked and does not accept new replies",
                    thread_id=thread_id,
                )
            if not content or not content.strip():
                raise ValidationError("Content is required")
            if parent_id is not None:
                parent = self._get_post_model(parent_id)
                if parent.thread_id != thread_id:
                    raise ValidationError(
                        "Parent post belongs to a different thread", parent_id=parent_id
                    )
                # Replies nest one level; answering a reply attaches to its top-level post
                if parent.parent_id is not None:
                    parent_id = parent.parent_id

            now = datetime.now(pytz.utc).isoformat()
            post = ForumPostModel(
                thread_id=thread_id,
                author_id=caller.user_id,
                content=content.strip(),
                parent_id=parent_id,
                is_answer=False,
                created_at=now,
            )
            self.db.add(post)
            self.db.flush()
            self.db.query(ForumThreadModel).filter(ForumThreadModel.id == thread_id).update(
                {
                    ForumThreadModel.reply_count: ForumThreadModel.reply_count + 1,
                    ForumThreadModel.last_reply_at: now,
                },
                synchronize_session=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(post)
        logger.info("User %s replied to thread %s (post %s)", caller.user_id, thread_id, post.id)
        return model_to_dict(post, author_name=caller.name, author_role=caller.role)

    # --- Reactions ---

    def add_reaction(
        self, post_id: int, caller: CallerContext, reaction_type: Optional[str]
    ) -> ForumReactionModel:
        """React to a post; reacting again replaces the earlier reaction."""
        if not reaction_type or not reaction_type.strip():
            raise ValidationError("Reaction type is required")
        self._get_post_model(post_id)
        reaction_type = reaction_type.strip()

        existing = self._find_reaction(post_id, caller.user_id)
        if existing:
            existing.reaction_type = reaction_type
            self.db.commit()
            self.db.refresh(existing)
            return existing

        model = ForumReactionModel(
            post_id=post_id,
            user_id=caller.user_id,
            reaction_type=reaction_type,
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError:
            # Lost a race with another reaction by the same user
            self.db.rollback()
            model = self._find_reaction(post_id, caller.user_id)
            if model is None:
                raise ConflictError(
                    "Reaction changed concurrently, please retry", post_id=post_id
                )
            model.reaction_type = reaction_type
            self.db.commit()
        self.db.refresh(model)
        return model

    def _find_reaction(self, post_id: int, user_id: str) -> Optional[ForumReactionModel]:
        return (
            self.db.query(ForumReactionModel)
            .filter(
                ForumReactionModel.post_id == post_id,
                ForumReactionModel.user_id == user_id,
            )
            .first()
        )

    def remove_reaction(self, post_id: int, caller: CallerContext) -> bool:
        deleted = (
            self.db.query(ForumReactionModel)
            .filter(
                ForumReactionModel.post_id == post_id,
                ForumReactionModel.user_id == caller.user_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0

    def list_reactions(self, post_id: int) -> List[Dict[str, Any]]:
        self._get_post_model(post_id)
        rows = (
            self.db.query(ForumReactionModel, UserModel.name)
            .join(UserModel, UserModel.user_id == ForumReactionModel.user_id)
            .filter(ForumReactionModel.post_id == post_id)
            .order_by(ForumReactionModel.created_at.asc())
            .all()
        )
        return [model_to_dict(reaction, user_name=name) for reaction, name in rows]

    # --- Moderation ---

    def _require_moderator(self, thread: ForumThreadModel, caller: CallerContext, action: str) -> None:
        course_id = self._course_id_for_category(thread.category_id)
        self.courses.require_owner(course_id, caller, action)

    def pin_thread(
        self, thread_id: int, caller: CallerContext, pinned: bool = True
    ) -> ForumThreadModel:
        thread = self._get_thread_model(thread_id)
        self._require_moderator(thread, caller, "pin threads in this course")
        thread.is_pinned = pinned
        self.db.commit()
        self.db.refresh(thread)
        logger.info("Thread %s pinned=%s by %s", thread_id, pinned, caller.user_id)
        return thread

    def lock_thread(
        self, thread_id: int, caller: CallerContext, locked: bool = True
    ) -> ForumThreadModel:
        thread = self._get_thread_model(thread_id)
        self._require_moderator(thread, caller, "lock threads in this course")
        thread.is_locked = locked
        self.db.commit()
        self.db.refresh(thread)
        logger.info("Thread %s locked=%s by %s", thread_id, locked, caller.user_id)
        return thread

    def mark_as_answer(
        self, post_id: int, caller: CallerContext, is_answer: bool = True
    ) -> ForumPostModel:
        """Flag a post as the answer; allowed for the course owner or the thread author."""
        post = self._get_post_model(post_id)
        thread = self._get_thread_model(post.thread_id)
        course_id = self._course_id_for_category(thread.category_id)
        if thread.author_id != caller.user_id and not course_owned_by_teacher(
            self.db, course_id, caller.user_id
        ):
            raise AuthorizationError(
                "Only the course teacher or the thread author can mark answers",
                post_id=post_id,
            )
        post.is_answer = is_answer
        self.db.commit()
        self.db.refresh(post)
        logger.info("Post %s is_answer=%s by %s", post_id, is_answer, caller.user_id)
        return post
