"""Course and enrollment routes."""

from fastapi import APIRouter, Depends, status

from api.routes.auth import get_current_user
from core.dependencies import CourseManagerDep
from core.responses import api_response
from schemas.course import (
    CourseInfo,
    CreateCourseRequest,
    EnrollmentInfo,
    UpdateCourseRequest,
    UpdateEnrollmentStatusRequest,
)
from schemas.user import CallerContext

router = APIRouter(prefix="/api/courses", tags=["Course"])


@router.post("", summary="Create a course")
def create_course(
    req: CreateCourseRequest,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    course = course_manager.create_course(
        current_user, req.title, req.description, req.duration
    )
    return api_response(
        "Course created successfully",
        {"course": CourseInfo.model_validate(course)},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("", summary="List published courses")
def list_courses(
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    courses = [CourseInfo(**row) for row in course_manager.list_published()]
    return api_response("Courses retrieved successfully", {"courses": courses})


@router.get("/mine", summary="List the caller's own courses")
def list_my_courses(
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = course_manager.list_for_teacher(current_user.user_id)
    courses = [CourseInfo(**row) for row in rows]
    return api_response("Courses retrieved successfully", {"courses": courses})


@router.get("/enrollments/mine", summary="List the caller's enrollments")
def list_my_enrollments(
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = course_manager.list_enrollments_for_student(current_user.user_id)
    enrollments = [EnrollmentInfo(**row) for row in rows]
    return api_response(
        "Enrollments retrieved successfully", {"enrollments": enrollments}
    )


@router.patch("/enrollments/{enrollment_id}", summary="Change an enrollment status")
def update_enrollment_status(
    enrollment_id: int,
    req: UpdateEnrollmentStatusRequest,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    enrollment = course_manager.update_enrollment_status(
        enrollment_id, current_user, req.status
    )
    return api_response(
        "Enrollment updated successfully",
        {"enrollment": EnrollmentInfo.model_validate(enrollment)},
    )


@router.get("/{course_id}", summary="Get a course")
def get_course(
    course_id: int,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    course = CourseInfo(**course_manager.get_course(course_id, current_user))
    return api_response("Course retrieved successfully", {"course": course})


@router.patch("/{course_id}", summary="Update a course")
def update_course(
    course_id: int,
    req: UpdateCourseRequest,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    course = course_manager.update_course(
        course_id, current_user, req.model_dump(exclude_unset=True)
    )
    return api_response(
        "Course updated successfully", {"course": CourseInfo.model_validate(course)}
    )


@router.delete("/{course_id}", summary="Delete a course")
def delete_course(
    course_id: int,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    course_manager.delete_course(course_id, current_user)
    return api_response("Course deleted successfully")


@router.post("/{course_id}/enroll", summary="Enroll in a course")
def enroll(
    course_id: int,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    enrollment = EnrollmentInfo(**course_manager.enroll(current_user, course_id))
    return api_response(
        "Enrolled successfully",
        {"enrollment": enrollment},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{course_id}/enrollments", summary="List enrollments of a course")
def list_course_enrollments(
    course_id: int,
    course_manager: CourseManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    rows = course_manager.list_enrollments_for_course(course_id, current_user)
    enrollments = [EnrollmentInfo(**row) for row in rows]
    return api_response(
        "Enrollments retrieved successfully", {"enrollments": enrollments}
    )
