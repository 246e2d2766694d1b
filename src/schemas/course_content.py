"""Course content schema definitions."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateContentRequest(BaseModel):
    title: Optional[str] = None
    content_type: Optional[str] = Field(default=None, description="'text' or 'link'")
    description: Optional[str] = None
    body: Optional[str] = None
    link_url: Optional[str] = None
    duration: Optional[str] = None
    display_order: Optional[int] = None
    is_published: bool = True


class UpdateContentRequest(BaseModel):
    """Partial update; only the fields sent by the client are applied."""

    title: Optional[str] = None
    content_type: Optional[str] = None
    description: Optional[str] = None
    body: Optional[str] = None
    link_url: Optional[str] = None
    duration: Optional[str] = None
    display_order: Optional[int] = None
    is_published: Optional[bool] = None


class ReorderContentRequest(BaseModel):
    content_ids: List[int]


class ContentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    content_type: str
    body: Optional[str] = None
    link_url: Optional[str] = None
    duration: Optional[str] = None
    display_order: int
    is_published: bool
    created_at: str
    updated_at: str


class ContentStats(BaseModel):
    total: int
    by_type: Dict[str, int]


class CompletionInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    student_id: str
    completed_at: str


class CourseProgress(BaseModel):
    course_id: int
    completed_lessons: int
    total_lessons: int
    percentage: int
