"""Assignment, submission and grade schema definitions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateAssignmentRequest(BaseModel):
    # Presence of title and max_points is checked by AssignmentManager so that
    # direct callers get the same ValidationError as HTTP clients.
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_points: Optional[int] = None
    assignment_type: Optional[str] = None


class UpdateAssignmentRequest(BaseModel):
    """Partial update; only the fields sent by the client are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_points: Optional[int] = None
    assignment_type: Optional[str] = None


class AssignmentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[str] = None
    max_points: int
    assignment_type: str
    created_at: str
    updated_at: str
    course_title: Optional[str] = None


class StudentAssignmentInfo(AssignmentInfo):
    """Assignment annotated with the calling student's own submission."""

    teacher_id: Optional[str] = None
    teacher_name: Optional[str] = None
    has_submitted: bool = False
    submission_status: Optional[str] = None
    student_grade: Optional[float] = None
    submitted_at: Optional[str] = None
    feedback: Optional[str] = None


class SubmissionInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    student_id: str
    submission_text: Optional[str] = None
    file_url: Optional[str] = None
    grade: Optional[float] = None
    feedback: Optional[str] = None
    status: str
    submitted_at: str
    graded_at: Optional[str] = None
    graded_by: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    assignment_title: Optional[str] = None
    max_points: Optional[int] = None
    due_date: Optional[str] = None
    course_title: Optional[str] = None
    teacher_name: Optional[str] = None


class GradeRequest(BaseModel):
    grade: float = Field(allow_inf_nan=False)
    feedback: Optional[str] = None


class GradeStats(BaseModel):
    total_assignments: int = 0
    submitted_assignments: int = 0
    graded_assignments: int = 0
    average_grade: int = 0
    total_possible_points: float = 0
    total_earned_points: float = 0
    overall_percentage: int = 0
