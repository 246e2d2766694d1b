"""Tests for courses, enrollment and the ownership guards."""

import pytest

from core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.assignment import AssignmentModel
from utils.access_guard import (
    can_access_course,
    course_owned_by_teacher,
    student_enrolled_in_course,
)
from utils.assignment_manager import AssignmentManager
from utils.course_manager import CourseManager


class TestCourseAuthoring:
    def test_teacher_creates_unpublished_course(self, db_session, teacher):
        """Test that a new course starts unpublished and owned by its teacher"""
        course = CourseManager(db_session).create_course(
            teacher, "  Data Science  ", "Pandas and friends"
        )

        assert course.title == "Data Science"
        assert course.teacher_id == teacher.user_id
        assert course.is_published is False

    def test_student_cannot_create_course(self, db_session, student):
        """Test that only teachers can author courses"""
        with pytest.raises(AuthorizationError):
            CourseManager(db_session).create_course(student, "Hack", "Nope")

    @pytest.mark.parametrize("title,description", [(None, "desc"), ("Title", ""), ("  ", "desc")])
    def test_title_and_description_required(self, db_session, teacher, title, description):
        with pytest.raises(ValidationError, match="Title and description are required"):
            CourseManager(db_session).create_course(teacher, title, description)

    def test_partial_update_only_touches_sent_fields(self, db_session, teacher, course):
        """Test that fields absent from the update keep their values"""
        updated = CourseManager(db_session).update_course(
            course.id, teacher, {"duration": "8 weeks", "owner": "ignored"}
        )

        assert updated.duration == "8 weeks"
        assert updated.title == "Python 101"
        assert updated.is_published is True

    def test_update_rejects_empty_title(self, db_session, teacher, course):
        with pytest.raises(ValidationError):
            CourseManager(db_session).update_course(course.id, teacher, {"title": " "})

    def test_update_requires_ownership(self, db_session, other_teacher, course):
        with pytest.raises(AuthorizationError, match="permission to update this course"):
            CourseManager(db_session).update_course(
                course.id, other_teacher, {"title": "Mine now"}
            )

    def test_update_missing_course_is_not_found(self, db_session, teacher):
        with pytest.raises(NotFoundError):
            CourseManager(db_session).update_course(999, teacher, {"title": "x"})

    def test_delete_cascades_to_assignments(self, db_session, teacher, course):
        """Test that deleting a course removes its assignments through the foreign key"""
        AssignmentManager(db_session).create_assignment(
            course.id, teacher, title="HW1", max_points=10
        )
        CourseManager(db_session).delete_course(course.id, teacher)
        db_session.expire_all()

        assert db_session.query(AssignmentModel).count() == 0
        with pytest.raises(NotFoundError):
            CourseManager(db_session).get_course_model(course.id)

    def test_published_listing_includes_teacher_and_count(
        self, db_session, teacher, course, enrollment
    ):
        courses = CourseManager(db_session)
        courses.create_course(teacher, "Draft", "Not yet visible")

        listed = courses.list_published()

        assert [c["title"] for c in listed] == ["Python 101"]
        assert listed[0]["teacher_name"] == "Tina Teacher"
        assert listed[0]["student_count"] == 1

    def test_get_course_reports_caller_enrollment(
        self, db_session, course, student, other_student, enrollment
    ):
        courses = CourseManager(db_session)

        assert courses.get_course(course.id, student)["is_enrolled"] is True
        assert courses.get_course(course.id, other_student)["is_enrolled"] is False


class TestEnrollment:
    def test_student_enrolls_in_published_course(self, db_session, course, student):
        enrollment = CourseManager(db_session).enroll(student, course.id)

        assert enrollment["status"] == "enrolled"
        assert enrollment["course_title"] == "Python 101"
        assert student_enrolled_in_course(db_session, student.user_id, course.id)

    def test_unpublished_course_cannot_be_enrolled(self, db_session, teacher, student):
        courses = CourseManager(db_session)
        draft = courses.create_course(teacher, "Draft", "Hidden")

        with pytest.raises(ValidationError):
            courses.enroll(student, draft.id)

    def test_teacher_cannot_enroll(self, db_session, course, other_teacher):
        with pytest.raises(AuthorizationError):
            CourseManager(db_session).enroll(other_teacher, course.id)

    def test_duplicate_enrollment_conflicts(self, db_session, course, student, enrollment):
        with pytest.raises(ConflictError, match="already enrolled"):
            CourseManager(db_session).enroll(student, course.id)

    def test_enroll_missing_course_is_not_found(self, db_session, student):
        with pytest.raises(NotFoundError):
            CourseManager(db_session).enroll(student, 12345)

    def test_owner_lists_and_updates_enrollments(
        self, db_session, teacher, course, enrollment
    ):
        courses = CourseManager(db_session)

        rows = courses.list_enrollments_for_course(course.id, teacher)
        updated = courses.update_enrollment_status(rows[0]["id"], teacher, "completed")

        assert rows[0]["student_name"] == "Sam Student"
        assert updated.status == "completed"

    def test_invalid_enrollment_status(self, db_session, teacher, enrollment):
        with pytest.raises(ValidationError):
            CourseManager(db_session).update_enrollment_status(
                enrollment["id"], teacher, "graduated"
            )

    def test_student_cannot_list_course_enrollments(
        self, db_session, course, student, enrollment
    ):
        with pytest.raises(AuthorizationError):
            CourseManager(db_session).list_enrollments_for_course(course.id, student)


class TestGuards:
    def test_ownership_guard(self, db_session, teacher, other_teacher, course):
        assert course_owned_by_teacher(db_session, course.id, teacher.user_id)
        assert not course_owned_by_teacher(db_session, course.id, other_teacher.user_id)

    def test_course_access_for_owner_and_enrolled_student(
        self, db_session, teacher, student, other_student, course, enrollment
    ):
        assert can_access_course(db_session, teacher.user_id, course.id)
        assert can_access_course(db_session, student.user_id, course.id)
        assert not can_access_course(db_session, other_student.user_id, course.id)
