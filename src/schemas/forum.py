"""Forum schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    created_at: str
    thread_count: int = 0
    post_count: int = 0
    last_activity: Optional[str] = None


class CreateThreadRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class ThreadInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    author_id: str
    title: str
    content: str
    view_count: int
    reply_count: int
    is_pinned: bool
    is_locked: bool
    created_at: str
    last_reply_at: str
    author_name: Optional[str] = None
    author_role: Optional[str] = None
    category_title: Optional[str] = None
    course_id: Optional[int] = None
    total_replies: Optional[int] = None
    last_reply_author: Optional[str] = None
    last_reply_date: Optional[str] = None


class CreatePostRequest(BaseModel):
    content: Optional[str] = None
    parent_id: Optional[int] = None


class PostInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    thread_id: int
    author_id: str
    content: str
    parent_id: Optional[int] = None
    is_answer: bool
    created_at: str
    author_name: Optional[str] = None
    author_role: Optional[str] = None
    reaction_count: Optional[int] = None
    reply_count: Optional[int] = None
    replies: List["PostInfo"] = Field(default_factory=list)


class ReactionRequest(BaseModel):
    reaction_type: str = Field(default="like", min_length=1)


class ReactionInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    user_id: str
    reaction_type: str
    created_at: str
    user_name: Optional[str] = None


class PinRequest(BaseModel):
    pinned: bool = True


class LockRequest(BaseModel):
    locked: bool = True


class AnswerRequest(BaseModel):
    is_answer: bool = True
