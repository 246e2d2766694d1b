"""User schema definitions."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz
from pydantic import BaseModel, Field


class User(BaseModel):
    user_id: str = Field(
        description="The unique identifier for the user.",
        default_factory=lambda: str(uuid.uuid4()),
    )
    username: str
    password_hash: str
    role: str = Field(description="'teacher' or 'student'")
    name: str
    email: Optional[str] = None
    created_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )


@dataclass(frozen=True)
class CallerContext:
    """Identity of the caller, passed explicitly into every manager call."""

    user_id: str
    username: str
    role: str
    name: str

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"

    @property
    def is_student(self) -> bool:
        return self.role == "student"

    @classmethod
    def from_user(cls, user: User) -> "CallerContext":
        return cls(
            user_id=user.user_id,
            username=user.username,
            role=user.role,
            name=user.name,
        )


class UserInfo(BaseModel):
    """User as returned to clients, without the password hash."""

    user_id: str
    username: str
    role: str
    name: str
    email: Optional[str] = None
    created_at: str


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    email: Optional[str] = None
    role: str = Field(description="'teacher' or 'student'")


class LoginRequest(BaseModel):
    username: str
    password: str
