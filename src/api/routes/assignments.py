"""Assignment, submission and grading routes."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from api.routes.auth import get_current_user
from core.dependencies import AssignmentManagerDep
from core.responses import api_response
from schemas.assignment import (
    AssignmentInfo,
    CreateAssignmentRequest,
    GradeRequest,
    GradeStats,
    StudentAssignmentInfo,
    SubmissionInfo,
    UpdateAssignmentRequest,
)
from schemas.user import CallerContext

router = APIRouter(prefix="/api/assignments", tags=["Assignment"])


@router.post("/courses/{course_id}/assignments", summary="Create an assignment")
def create_assignment(
    course_id: int,
    req: CreateAssignmentRequest,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    assignment = assignment_manager.create_assignment(
        course_id,
        current_user,
        title=req.title,
        max_points=req.max_points,
        description=req.description,
        due_date=req.due_date,
        assignment_type=req.assignment_type,
    )
    return api_response(
        "Assignment created successfully",
        {"assignment": AssignmentInfo.model_validate(assignment)},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/courses/{course_id}/assignments", summary="List course assignments")
def list_course_assignments(
    course_id: int,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    assignments = [
        AssignmentInfo.model_validate(model)
        for model in assignment_manager.list_for_course(course_id)
    ]
    return api_response(
        "Assignments retrieved successfully", {"assignments": assignments}
    )


@router.get(
    "/student/courses/{course_id}/assignments",
    summary="List assignments of an enrolled course",
)
def list_student_course_assignments(
    course_id: int,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    assignments = [
        AssignmentInfo.model_validate(model)
        for model in assignment_manager.list_for_student_course(course_id, current_user)
    ]
    return api_response(
        "Assignments retrieved successfully", {"assignments": assignments}
    )


@router.get("/student/assignments", summary="List assignments across enrolled courses")
def list_student_assignments(
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = assignment_manager.list_for_enrolled_student(current_user.user_id)
    assignments = [StudentAssignmentInfo(**row) for row in rows]
    return api_response(
        "Assignments retrieved successfully", {"assignments": assignments}
    )


@router.get("/student/submissions", summary="List the caller's submissions")
def list_student_submissions(
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = assignment_manager.list_student_submissions(current_user.user_id)
    submissions = [SubmissionInfo(**row) for row in rows]
    return api_response(
        "Submissions retrieved successfully", {"submissions": submissions}
    )


@router.get("/student/grades", summary="Aggregate grade statistics")
def get_student_grades(
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    stats = GradeStats(**assignment_manager.student_grade_stats(current_user.user_id))
    return api_response("Grade statistics retrieved successfully", {"stats": stats})


@router.get("/assignments/{assignment_id}", summary="Get an assignment")
def get_assignment(
    assignment_id: int,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    assignment = AssignmentInfo(**assignment_manager.get_assignment(assignment_id))
    return api_response("Assignment retrieved successfully", {"assignment": assignment})


@router.patch("/assignments/{assignment_id}", summary="Update an assignment")
def update_assignment(
    assignment_id: int,
    req: UpdateAssignmentRequest,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    assignment = assignment_manager.update_assignment(
        assignment_id, current_user, req.model_dump(exclude_unset=True)
    )
    return api_response(
        "Assignment updated successfully",
        {"assignment": AssignmentInfo.model_validate(assignment)},
    )


@router.delete("/assignments/{assignment_id}", summary="Delete an assignment")
def delete_assignment(
    assignment_id: int,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    assignment_manager.delete_assignment(assignment_id, current_user)
    return api_response("Assignment deleted successfully")


@router.post("/assignments/{assignment_id}/submit", summary="Submit an assignment")
async def submit_assignment(
    assignment_id: int,
    assignment_manager: AssignmentManagerDep,
    submission_text: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None, description="Submission file"),
    current_user: CallerContext = Depends(get_current_user),
):
    """Submit text and/or a file for an assignment.

    The request is multipart; the file part is optional. Oversized files are
    rejected before more than the size limit is read into memory.
    """
    file_content = None
    filename = None
    if file is not None:
        storage = assignment_manager.media_storage
        if file.size is not None:
            storage.check_size(file.size)
        file_content = await file.read(storage.max_size + 1)
        storage.check_size(len(file_content))
        filename = file.filename

    submission = assignment_manager.submit(
        assignment_id,
        current_user,
        submission_text=submission_text,
        file_content=file_content,
        filename=filename,
    )
    return api_response(
        "Assignment submitted successfully",
        {"submission": SubmissionInfo.model_validate(submission)},
        status_code=status.HTTP_201_CREATED,
    )


@router.get(
    "/assignments/{assignment_id}/submissions",
    summary="List submissions of an assignment",
)
def list_submissions(
    assignment_id: int,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = assignment_manager.list_submissions(assignment_id, current_user)
    submissions = [SubmissionInfo(**row) for row in rows]
    return api_response(
        "Submissions retrieved successfully", {"submissions": submissions}
    )


@router.post("/submissions/{submission_id}/grade", summary="Grade a submission")
def grade_submission(
    submission_id: int,
    req: GradeRequest,
    assignment_manager: AssignmentManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    submission = assignment_manager.grade_submission(
        submission_id, current_user, req.grade, req.feedback
    )
    return api_response(
        "Submission graded successfully",
        {"submission": SubmissionInfo.model_validate(submission)},
    )
