"""Course forum routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.routes.auth import get_current_user
from config import FORUM_PAGE_SIZE
from core.dependencies import ForumManagerDep
from core.responses import api_response
from schemas.forum import (
    AnswerRequest,
    CategoryInfo,
    CreatePostRequest,
    CreateThreadRequest,
    LockRequest,
    PinRequest,
    PostInfo,
    ReactionInfo,
    ReactionRequest,
    ThreadInfo,
)
from schemas.user import CallerContext

router = APIRouter(prefix="/api/forum", tags=["Forum"])


@router.get("/course/{course_id}", summary="List forum categories of a course")
def get_course_forum(
    course_id: int,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    categories = [
        CategoryInfo(**row) for row in forum_manager.get_course_forum(course_id)
    ]
    return api_response(
        "Forum categories retrieved successfully", {"categories": categories}
    )


@router.get("/course/{course_id}/search", summary="Search threads of a course")
def search_threads(
    course_id: int,
    forum_manager: ForumManagerDep,
    q: Optional[str] = Query(default=None, description="Search text"),
    current_user: CallerContext = Depends(get_current_user),
):
    threads = [ThreadInfo(**row) for row in forum_manager.search(course_id, q)]
    return api_response("Search completed successfully", {"threads": threads})


@router.get("/category/{category_id}/threads", summary="List threads of a category")
def list_threads(
    category_id: int,
    forum_manager: ForumManagerDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=FORUM_PAGE_SIZE, ge=1, le=100),
    current_user: CallerContext = Depends(get_current_user),
):
    rows = forum_manager.list_threads(category_id, page=page, limit=limit)
    threads = [ThreadInfo(**row) for row in rows]
    return api_response(
        "Threads retrieved successfully",
        {"threads": threads, "page": page, "limit": limit},
    )


@router.post("/category/{category_id}/threads", summary="Create a thread")
def create_thread(
    category_id: int,
    req: CreateThreadRequest,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    thread = ThreadInfo(
        **forum_manager.create_thread(category_id, current_user, req.title, req.content)
    )
    return api_response(
        "Thread created successfully",
        {"thread": thread},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/thread/{thread_id}", summary="Get a thread with its posts")
def get_thread(
    thread_id: int,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    result = forum_manager.get_thread_with_posts(thread_id)
    return api_response(
        "Thread retrieved successfully",
        {
            "thread": ThreadInfo(**result["thread"]),
            "posts": [PostInfo(**post) for post in result["posts"]],
        },
    )


@router.post("/thread/{thread_id}/posts", summary="Reply to a thread")
def create_post(
    thread_id: int,
    req: CreatePostRequest,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    post = PostInfo(
        **forum_manager.create_post(
            thread_id, current_user, req.content, parent_id=req.parent_id
        )
    )
    return api_response(
        "Post created successfully",
        {"post": post},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/post/{post_id}/reactions", summary="List reactions of a post")
def list_reactions(
    post_id: int,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    reactions = [ReactionInfo(**row) for row in forum_manager.list_reactions(post_id)]
    return api_response("Reactions retrieved successfully", {"reactions": reactions})


@router.post("/post/{post_id}/reactions", summary="React to a post")
def add_reaction(
    post_id: int,
    req: ReactionRequest,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    reaction = forum_manager.add_reaction(post_id, current_user, req.reaction_type)
    return api_response(
        "Reaction added successfully",
        {"reaction": ReactionInfo.model_validate(reaction)},
    )


@router.delete("/post/{post_id}/reactions", summary="Remove the caller's reaction")
def remove_reaction(
    post_id: int,
    forum_manager: ForumManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    removed = forum_manager.remove_reaction(post_id, current_user)
    return api_response("Reaction removed successfully", {"removed": removed})


@router.patch("/thread/{thread_id}/pin", summary="Pin or unpin a thread")
def pin_thread(
    thread_id: int,
    forum_manager: ForumManagerDep,
    req: PinRequest = PinRequest(),
    current_user: CallerContext = Depends(get_current_user),
):
    thread = forum_manager.pin_thread(thread_id, current_user, req.pinned)
    message = "Thread pinned successfully" if req.pinned else "Thread unpinned successfully"
    return api_response(message, {"thread": ThreadInfo.model_validate(thread)})


@router.patch("/thread/{thread_id}/lock", summary="Lock or unlock a thread")
def lock_thread(
    thread_id: int,
    forum_manager: ForumManagerDep,
    req: LockRequest = LockRequest(),
    current_user: CallerContext = Depends(get_current_user),
):
    thread = forum_manager.lock_thread(thread_id, current_user, req.locked)
    message = "Thread locked successfully" if req.locked else "Thread unlocked successfully"
    return api_response(message, {"thread": ThreadInfo.model_validate(thread)})


@router.patch("/post/{post_id}/answer", summary="Mark or unmark a post as the answer")
def mark_as_answer(
    post_id: int,
    forum_manager: ForumManagerDep,
    req: AnswerRequest = AnswerRequest(),
    current_user: CallerContext = Depends(get_current_user),
):
    post = forum_manager.mark_as_answer(post_id, current_user, req.is_answer)
    message = "Post marked as answer" if req.is_answer else "Answer mark removed"
    return api_response(message, {"post": PostInfo.model_validate(post)})
