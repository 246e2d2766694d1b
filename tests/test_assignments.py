"""Tests for the assignment, submission and grading workflow."""

from datetime import datetime, timedelta

import pytest
import pytz
from sqlalchemy.exc import OperationalError

from core.exceptions import (
    AuthorizationError,
    ConflictError,
    MediaUploadError,
    NotFoundError,
    ValidationError,
)
from utils.assignment_manager import AssignmentManager, round_half_up, to_utc_iso
from utils.course_manager import CourseManager
from utils.media_storage import MediaStorage


@pytest.fixture
def storage(tmp_path):
    return MediaStorage(root=tmp_path, base_url="/uploads")


@pytest.fixture
def manager(db_session, storage):
    return AssignmentManager(db_session, media_storage=storage)


@pytest.fixture
def assignment(manager, teacher, course):
    return manager.create_assignment(
        course.id,
        teacher,
        title="Essay",
        max_points=100,
        description="Write 500 words",
        due_date=datetime.now(pytz.utc) + timedelta(days=7),
    )


class TestCreateAssignment:
    def test_owner_creates_assignment(self, manager, teacher, course):
        model = manager.create_assignment(course.id, teacher, title="Quiz", max_points=20)

        assert model.course_id == course.id
        assert model.assignment_type == "assignment"
        assert model.due_date is None

    def test_non_owner_is_refused(self, manager, other_teacher, course):
        with pytest.raises(AuthorizationError):
            manager.create_assignment(course.id, other_teacher, title="Quiz", max_points=20)

    @pytest.mark.parametrize("title,max_points", [(None, 10), ("", 10), ("Quiz", None)])
    def test_title_and_max_points_required(self, manager, teacher, course, title, max_points):
        with pytest.raises(ValidationError, match="Title and max points are required"):
            manager.create_assignment(course.id, teacher, title=title, max_points=max_points)

    def test_max_points_must_be_positive(self, manager, teacher, course):
        with pytest.raises(ValidationError):
            manager.create_assignment(course.id, teacher, title="Quiz", max_points=0)

    def test_due_date_is_stored_in_utc(self, manager, teacher, course):
        local = pytz.timezone("Europe/Berlin").localize(datetime(2030, 1, 1, 12, 0))
        model = manager.create_assignment(
            course.id, teacher, title="Quiz", max_points=5, due_date=local
        )

        assert model.due_date == "2030-01-01T11:00:00+00:00"

    def test_partial_update_and_delete(self, manager, teacher, assignment):
        updated = manager.update_assignment(
            assignment.id, teacher, {"max_points": 50, "course_id": 999}
        )

        assert updated.max_points == 50
        assert updated.title == "Essay"
        assert updated.course_id == assignment.course_id

        manager.delete_assignment(assignment.id, teacher)
        with pytest.raises(NotFoundError):
            manager.get_assignment(assignment.id)


class TestSubmit:
    def test_enrolled_student_submits_text(self, manager, student, enrollment, assignment):
        """Test that a text-only submission starts as submitted and ungraded"""
        submission = manager.submit(assignment.id, student, submission_text="My essay")

        assert submission.status == "submitted"
        assert submission.grade is None
        assert submission.file_url is None

    def test_missing_assignment(self, manager, student):
        with pytest.raises(NotFoundError):
            manager.submit(404, student, submission_text="x")

    def test_not_enrolled_is_refused(self, manager, other_student, enrollment, assignment):
        with pytest.raises(AuthorizationError, match="not enrolled"):
            manager.submit(assignment.id, other_student, submission_text="x")

    def test_past_due_is_rejected(self, manager, teacher, course, student, enrollment):
        overdue = manager.create_assignment(
            course.id,
            teacher,
            title="Late",
            max_points=10,
            due_date=datetime.now(pytz.utc) - timedelta(minutes=1),
        )
        with pytest.raises(ValidationError, match="past due date"):
            manager.submit(overdue.id, student, submission_text="sorry")

    @pytest.mark.parametrize("second_text", ["different answer", "My essay"])
    def test_second_submission_conflicts(
        self, manager, student, enrollment, assignment, second_text
    ):
        manager.submit(assignment.id, student, submission_text="My essay")

        with pytest.raises(ConflictError, match="already submitted"):
            manager.submit(assignment.id, student, submission_text=second_text)

    def test_empty_submission_is_rejected(self, manager, student, enrollment, assignment):
        with pytest.raises(ValidationError, match="Either submission text or file"):
            manager.submit(assignment.id, student, submission_text="   ")

    def test_file_submission_is_stored(
        self, manager, storage, tmp_path, student, enrollment, assignment
    ):
        submission = manager.submit(
            assignment.id, student, file_content=b"%PDF-1.4", filename="essay final.pdf"
        )

        assert submission.file_url.startswith("/uploads/assignments/")
        assert submission.file_url.endswith("essay_final.pdf")
        assert (tmp_path / submission.file_public_id).read_bytes() == b"%PDF-1.4"

    def test_failed_upload_persists_nothing(
        self, db_session, teacher, student, enrollment, assignment
    ):
        class FailingStorage(MediaStorage):
            def upload(self, content, filename, folder):
                raise MediaUploadError("Failed to upload file. Please try again.")

        manager = AssignmentManager(db_session, media_storage=FailingStorage())
        with pytest.raises(MediaUploadError):
            manager.submit(assignment.id, student, file_content=b"data", filename="a.txt")

        assert manager.list_submissions(assignment.id, teacher) == []

    def test_database_failure_discards_stored_file(
        self, db_session, manager, tmp_path, monkeypatch, student, enrollment, assignment
    ):
        """Test that a file stored before a failed insert is deleted again"""

        def failing_commit():
            raise OperationalError("INSERT INTO submissions", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(OperationalError):
            manager.submit(assignment.id, student, file_content=b"data", filename="a.txt")

        assert list((tmp_path / "assignments").iterdir()) == []

    def test_oversized_upload_is_rejected(
        self, db_session, student, enrollment, assignment, tmp_path
    ):
        manager = AssignmentManager(
            db_session, media_storage=MediaStorage(root=tmp_path, max_size=4)
        )
        with pytest.raises(ValidationError, match="File size exceeds"):
            manager.submit(assignment.id, student, file_content=b"12345", filename="a.txt")


class TestGrading:
    @pytest.fixture
    def submission(self, manager, student, enrollment, assignment):
        return manager.submit(assignment.id, student, submission_text="My essay")

    @pytest.mark.parametrize("grade", [0, 42.5, 100])
    def test_grade_within_bounds_succeeds(self, manager, teacher, submission, grade):
        graded = manager.grade_submission(submission.id, teacher, grade, "Well done")

        assert graded.status == "graded"
        assert graded.grade == grade
        assert graded.graded_by == teacher.user_id
        assert graded.graded_at is not None

    @pytest.mark.parametrize("grade", [100.5, 101, 1000])
    def test_grade_above_max_points_fails(self, manager, teacher, submission, grade):
        with pytest.raises(ValidationError, match=r"maximum points \(100\)"):
            manager.grade_submission(submission.id, teacher, grade)

    def test_negative_grade_fails(self, manager, teacher, submission):
        with pytest.raises(ValidationError):
            manager.grade_submission(submission.id, teacher, -1)

    @pytest.mark.parametrize("grade", [float("nan"), float("inf")])
    def test_non_finite_grade_fails(self, manager, teacher, submission, grade):
        """Test that NaN and infinity never get stored as a grade"""
        with pytest.raises(ValidationError, match="finite"):
            manager.grade_submission(submission.id, teacher, grade)

        assert manager.get_submission_model(submission.id).grade is None

    def test_only_course_owner_grades(self, manager, other_teacher, submission):
        with pytest.raises(AuthorizationError):
            manager.grade_submission(submission.id, other_teacher, 50)

    def test_owner_lists_submissions_with_student(self, manager, teacher, submission):
        rows = manager.list_submissions(submission.assignment_id, teacher)

        assert len(rows) == 1
        assert rows[0]["student_name"] == "Sam Student"
        assert rows[0]["student_email"] == "student@example.com"


class TestStudentViews:
    def test_assignments_annotated_with_own_submission(
        self, manager, teacher, course, student, enrollment, assignment
    ):
        undated = manager.create_assignment(course.id, teacher, title="Reading", max_points=5)
        manager.submit(assignment.id, student, submission_text="done")

        rows = manager.list_for_enrolled_student(student.user_id)

        assert [row["id"] for row in rows] == [assignment.id, undated.id]
        assert rows[0]["has_submitted"] is True
        assert rows[0]["submission_status"] == "submitted"
        assert rows[0]["teacher_name"] == "Tina Teacher"
        assert rows[1]["has_submitted"] is False

    def test_student_course_listing_requires_enrollment(
        self, manager, course, other_student, enrollment
    ):
        with pytest.raises(AuthorizationError):
            manager.list_for_student_course(course.id, other_student)

    def test_student_submissions_include_course(self, manager, student, enrollment, assignment):
        manager.submit(assignment.id, student, submission_text="done")

        rows = manager.list_student_submissions(student.user_id)

        assert rows[0]["assignment_title"] == "Essay"
        assert rows[0]["course_title"] == "Python 101"
        assert rows[0]["max_points"] == 100


class TestGradeStats:
    def test_no_possible_points_gives_zero_percentage(self, manager, student, enrollment):
        stats = manager.student_grade_stats(student.user_id)

        assert stats["total_assignments"] == 0
        assert stats["overall_percentage"] == 0
        assert stats["average_grade"] == 0

    def test_unpublished_courses_are_ignored(
        self, db_session, manager, teacher, course, student, enrollment, assignment
    ):
        CourseManager(db_session).update_course(course.id, teacher, {"is_published": False})

        assert manager.student_grade_stats(student.user_id)["total_assignments"] == 0

    def test_counts_and_rounding(
        self, manager, teacher, course, student, enrollment, assignment
    ):
        second = manager.create_assignment(course.id, teacher, title="Quiz", max_points=200)
        manager.create_assignment(course.id, teacher, title="Open", max_points=100)
        first = manager.submit(assignment.id, student, submission_text="a")
        manager.submit(second.id, student, submission_text="b")
        manager.grade_submission(first.id, teacher, 90)

        stats = manager.student_grade_stats(student.user_id)

        assert stats["total_assignments"] == 3
        assert stats["submitted_assignments"] == 2
        assert stats["graded_assignments"] == 1
        assert stats["average_grade"] == 90
        assert stats["total_possible_points"] == 400
        assert stats["total_earned_points"] == 90
        # 90 / 400 = 22.5% rounds half up
        assert stats["overall_percentage"] == 23


class TestEndToEnd:
    def test_submit_then_grade(self, manager, teacher, student, enrollment, assignment):
        """Test enroll, submit before the due date, grade 85/100 and read the stats"""
        submission = manager.submit(assignment.id, student, submission_text="Answer")
        assert submission.status == "submitted"
        assert submission.grade is None

        graded = manager.grade_submission(submission.id, teacher, 85, "Good")

        assert graded.status == "graded"
        assert manager.student_grade_stats(student.user_id)["overall_percentage"] == 85


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_to_utc_iso_accepts_strings():
    assert to_utc_iso("2030-05-01T08:00:00Z") == "2030-05-01T08:00:00+00:00"
    assert to_utc_iso("2030-05-01T08:00:00") == "2030-05-01T08:00:00+00:00"
    assert to_utc_iso(None) is None
