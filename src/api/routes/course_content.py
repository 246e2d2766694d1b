"""Course content (lesson) routes."""

from fastapi import APIRouter, Depends, status

from api.routes.auth import get_current_user
from core.dependencies import ContentManagerDep
from core.responses import api_response
from schemas.course_content import (
    CompletionInfo,
    ContentInfo,
    ContentStats,
    CourseProgress,
    CreateContentRequest,
    ReorderContentRequest,
    UpdateContentRequest,
)
from schemas.user import CallerContext

router = APIRouter(
    prefix="/api/courses/{course_id}/content", tags=["Course Content"]
)


@router.post("", summary="Add content to a course")
def create_content(
    course_id: int,
    req: CreateContentRequest,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    content = content_manager.create_content(
        course_id,
        current_user,
        req.title,
        req.content_type,
        description=req.description,
        body=req.body,
        link_url=req.link_url,
        duration=req.duration,
        display_order=req.display_order,
        is_published=req.is_published,
    )
    return api_response(
        "Content created successfully",
        {"content": ContentInfo.model_validate(content)},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("", summary="List course content")
def list_content(
    course_id: int,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = content_manager.list_for_course(course_id, current_user)
    content = [ContentInfo.model_validate(row) for row in rows]
    return api_response("Content retrieved successfully", {"content": content})


@router.put("/order", summary="Reorder course content")
def reorder_content(
    course_id: int,
    req: ReorderContentRequest,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = content_manager.reorder_content(course_id, current_user, req.content_ids)
    content = [ContentInfo.model_validate(row) for row in rows]
    return api_response("Content reordered successfully", {"content": content})


@router.get("/stats", summary="Published content counts")
def get_content_stats(
    course_id: int,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    stats = ContentStats(**content_manager.get_content_stats(course_id, current_user))
    return api_response("Content stats retrieved successfully", {"stats": stats})


@router.get("/progress", summary="The caller's lesson progress")
def get_progress(
    course_id: int,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    progress = CourseProgress(**content_manager.get_progress(course_id, current_user))
    return api_response("Progress retrieved successfully", {"progress": progress})


@router.get("/{content_id}", summary="Get a content item")
def get_content(
    course_id: int,
    content_id: int,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    content = content_manager.get_content(course_id, content_id, current_user)
    return api_response(
        "Content retrieved successfully", {"content": ContentInfo.model_validate(content)}
    )


@router.patch("/{content_id}", summary="Update a content item")
def update_content(
    course_id: int,
    content_id: int,
    req: UpdateContentRequest,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    content = content_manager.update_content(
        course_id, content_id, current_user, req.model_dump(exclude_unset=True)
    )
    return api_response(
        "Content updated successfully", {"content": ContentInfo.model_validate(content)}
    )


@router.delete("/{content_id}", summary="Delete a content item")
def delete_content(
    course_id: int,
    content_id: int,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    content_manager.delete_content(course_id, content_id, current_user)
    return api_response("Content deleted successfully")


@router.post("/{content_id}/complete", summary="Mark a lesson as completed")
def mark_complete(
    course_id: int,
    content_id: int,
    content_manager: ContentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    completion = content_manager.mark_complete(course_id, content_id, current_user)
    return api_response(
        "Lesson marked as completed",
        {"completion": CompletionInfo.model_validate(completion)},
    )
