"""Course and enrollment schema definitions."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateCourseRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None


class UpdateCourseRequest(BaseModel):
    """Partial update; only the fields sent by the client are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None
    is_published: Optional[bool] = None


class CourseInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    duration: Optional[str] = None
    teacher_id: str
    is_published: bool
    created_at: str
    updated_at: str
    teacher_name: Optional[str] = None
    student_count: Optional[int] = None
    is_enrolled: Optional[bool] = None


class EnrollmentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: str
    course_id: int
    enrolled_at: str
    status: str
    course_title: Optional[str] = None
    student_name: Optional[str] = None
    teacher_name: Optional[str] = None


class UpdateEnrollmentStatusRequest(BaseModel):
    status: str = Field(description="'enrolled', 'completed' or 'dropped'")
