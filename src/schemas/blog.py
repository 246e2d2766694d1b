"""Blog schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateBlogRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    featured_image: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    read_time: Optional[int] = Field(default=None, description="Minutes")


class BlogInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: str
    title: str
    content: str
    featured_image: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    read_time: int
    is_published: bool
    created_at: str
    updated_at: str
    author_name: Optional[str] = None
