"""HTTP-level tests: authentication, the response envelope and error mapping."""

from datetime import datetime, timedelta

import pytest
import pytz
from fastapi.testclient import TestClient

import app as app_module
from app import app
from core.dependencies import get_course_manager, get_media_storage
from core.exceptions import MediaUploadError
from utils.media_storage import MediaStorage


def assert_envelope(body, success):
    assert body["success"] is success
    assert isinstance(body["message"], str) and body["message"]
    assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None


class TestAuth:
    def test_register_login_and_me(self, client):
        resp = client.post(
            "/api/auth/register",
            json={
                "username": "newteacher",
                "password": "secret123",
                "name": "New Teacher",
                "email": "New@Example.com",
                "role": "teacher",
            },
        )
        assert resp.status_code == 201
        assert_envelope(resp.json(), True)
        assert "password_hash" not in resp.json()["data"]["user"]

        resp = client.post(
            "/api/auth/login", json={"username": "newteacher", "password": "secret123"}
        )
        assert resp.status_code == 200
        token = resp.json()["data"]["token"]

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        user = resp.json()["data"]["user"]
        assert user["username"] == "newteacher"
        assert user["email"] == "new@example.com"
        assert user["role"] == "teacher"

    def test_duplicate_username_is_a_400_conflict(self, client, student):
        resp = client.post(
            "/api/auth/register",
            json={"username": "student", "password": "secret123", "name": "X", "role": "student"},
        )
        assert resp.status_code == 400
        assert_envelope(resp.json(), False)
        assert "already exists" in resp.json()["message"]

    def test_unknown_role_is_rejected(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"username": "admin", "password": "secret123", "name": "A", "role": "admin"},
        )
        assert resp.status_code == 400

    def test_wrong_password(self, client, student):
        resp = client.post("/api/auth/login", json={"username": "student", "password": "nope"})
        assert resp.status_code == 401
        assert_envelope(resp.json(), False)

    def test_missing_token(self, client):
        resp = client.get("/api/courses")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Authentication required"

    def test_invalid_token(self, client):
        resp = client.get("/api/courses", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestErrorMapping:
    def test_request_validation_is_400_with_errors(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"username": "ab", "password": "123", "name": "X", "role": "student"},
        )
        body = resp.json()
        assert resp.status_code == 400
        assert body["message"] == "Validation failed"
        fields = {tuple(error["loc"])[-1] for error in body["data"]["errors"]}
        assert {"username", "password"} <= fields

    def test_not_found_is_404(self, client, auth_headers, student):
        resp = client.get("/api/courses/999", headers=auth_headers(student))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Course not found"
        assert_envelope(resp.json(), False)

    def test_forbidden_is_403(self, client, auth_headers, student, course):
        resp = client.post(
            f"/api/assignments/courses/{course.id}/assignments",
            json={"title": "Sneaky", "max_points": 10},
            headers=auth_headers(student),
        )
        assert resp.status_code == 403
        assert_envelope(resp.json(), False)

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/api/nowhere")
        assert resp.status_code == 404
        assert_envelope(resp.json(), False)

    def test_upload_failure_is_500(self, client, auth_headers, teacher, student, course, enrollment):
        class FailingStorage(MediaStorage):
            def upload(self, content, filename, folder):
                raise MediaUploadError("Failed to upload file. Please try again.")

        app.dependency_overrides[get_media_storage] = lambda: FailingStorage()
        assignment = client.post(
            f"/api/assignments/courses/{course.id}/assignments",
            json={"title": "Essay", "max_points": 10},
            headers=auth_headers(teacher),
        ).json()["data"]["assignment"]

        resp = client.post(
            f"/api/assignments/assignments/{assignment['id']}/submit",
            files={"file": ("essay.txt", b"hello", "text/plain")},
            headers=auth_headers(student),
        )
        assert resp.status_code == 500
        assert resp.json()["message"] == "Failed to upload file. Please try again."

        submissions = client.get(
            f"/api/assignments/assignments/{assignment['id']}/submissions",
            headers=auth_headers(teacher),
        ).json()["data"]["submissions"]
        assert submissions == []

    def test_oversized_upload_is_rejected_before_storage(
        self, client, tmp_path, auth_headers, teacher, student, course, enrollment
    ):
        class TinyStorage(MediaStorage):
            def upload(self, content, filename, folder):
                raise AssertionError("oversized upload reached storage")

        app.dependency_overrides[get_media_storage] = lambda: TinyStorage(
            root=tmp_path, max_size=4
        )
        assignment = client.post(
            f"/api/assignments/courses/{course.id}/assignments",
            json={"title": "Essay", "max_points": 10},
            headers=auth_headers(teacher),
        ).json()["data"]["assignment"]

        resp = client.post(
            f"/api/assignments/assignments/{assignment['id']}/submit",
            files={"file": ("essay.txt", b"0123456789", "text/plain")},
            headers=auth_headers(student),
        )
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("File size exceeds")

    @pytest.mark.parametrize(
        "production,message", [(True, "Internal server error"), (False, "boom")]
    )
    def test_unexpected_error_message_depends_on_environment(
        self, db_session, monkeypatch, auth_headers, student, production, message
    ):
        class BrokenCourses:
            def list_published(self):
                raise RuntimeError("boom")

        monkeypatch.setattr(app_module, "IS_PRODUCTION", production)
        app.dependency_overrides[get_course_manager] = lambda: BrokenCourses()
        try:
            with TestClient(app, raise_server_exceptions=False) as client:
                resp = client.get("/api/courses", headers=auth_headers(student))
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 500
        assert resp.json()["success"] is False
        assert resp.json()["message"] == message


class TestCourseRoutes:
    def test_course_lifecycle(self, client, auth_headers, teacher, student):
        created = client.post(
            "/api/courses",
            json={"title": "Algorithms", "description": "Sorting and searching"},
            headers=auth_headers(teacher),
        )
        assert created.status_code == 201
        course_id = created.json()["data"]["course"]["id"]
        assert created.json()["data"]["course"]["is_published"] is False

        resp = client.post(f"/api/courses/{course_id}/enroll", headers=auth_headers(student))
        assert resp.status_code == 400

        resp = client.patch(
            f"/api/courses/{course_id}",
            json={"is_published": True},
            headers=auth_headers(teacher),
        )
        assert resp.json()["data"]["course"]["title"] == "Algorithms"

        resp = client.post(f"/api/courses/{course_id}/enroll", headers=auth_headers(student))
        assert resp.status_code == 201
        resp = client.post(f"/api/courses/{course_id}/enroll", headers=auth_headers(student))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Student is already enrolled in this course"

        mine = client.get("/api/courses/enrollments/mine", headers=auth_headers(student))
        assert [e["course_title"] for e in mine.json()["data"]["enrollments"]] == ["Algorithms"]

        detail = client.get(f"/api/courses/{course_id}", headers=auth_headers(student))
        assert detail.json()["data"]["course"]["is_enrolled"] is True

        owned = client.get("/api/courses/mine", headers=auth_headers(teacher))
        assert owned.json()["data"]["courses"][0]["student_count"] == 1

        deleted = client.delete(f"/api/courses/{course_id}", headers=auth_headers(teacher))
        assert deleted.status_code == 200
        assert "data" not in deleted.json()


class TestAssignmentRoutes:
    def test_submit_grade_and_stats(self, client, auth_headers, teacher, student, course, enrollment):
        due = (datetime.now(pytz.utc) + timedelta(days=3)).isoformat()
        resp = client.post(
            f"/api/assignments/courses/{course.id}/assignments",
            json={"title": "Lab 1", "max_points": 100, "due_date": due},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 201
        assignment_id = resp.json()["data"]["assignment"]["id"]

        resp = client.post(
            f"/api/assignments/assignments/{assignment_id}/submit",
            data={"submission_text": "See attachment"},
            files={"file": ("lab1.txt", b"print('hi')", "text/plain")},
            headers=auth_headers(student),
        )
        assert resp.status_code == 201
        submission = resp.json()["data"]["submission"]
        assert submission["status"] == "submitted"
        assert client.get(submission["file_url"]).content == b"print('hi')"

        resp = client.post(
            f"/api/assignments/submissions/{submission['id']}/grade",
            json={"grade": 120},
            headers=auth_headers(teacher),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Grade cannot exceed maximum points (100)"

        resp = client.post(
            f"/api/assignments/submissions/{submission['id']}/grade",
            json={"grade": 85, "feedback": "Nice"},
            headers=auth_headers(teacher),
        )
        assert resp.json()["data"]["submission"]["status"] == "graded"

        resp = client.post(
            f"/api/assignments/submissions/{submission['id']}/grade",
            content='{"grade": NaN}',
            headers={**auth_headers(teacher), "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed"

        stats = client.get("/api/assignments/student/grades", headers=auth_headers(student))
        assert stats.json()["data"]["stats"]["overall_percentage"] == 85

        listed = client.get("/api/assignments/student/assignments", headers=auth_headers(student))
        row = listed.json()["data"]["assignments"][0]
        assert row["student_grade"] == 85
        assert row["feedback"] == "Nice"

    def test_text_only_submission_as_form(self, client, auth_headers, teacher, student, course, enrollment):
        assignment_id = client.post(
            f"/api/assignments/courses/{course.id}/assignments",
            json={"title": "Reflection", "max_points": 10},
            headers=auth_headers(teacher),
        ).json()["data"]["assignment"]["id"]

        resp = client.post(
            f"/api/assignments/assignments/{assignment_id}/submit",
            data={"submission_text": "I learned a lot"},
            headers=auth_headers(student),
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["submission"]["file_url"] is None

        again = client.post(
            f"/api/assignments/assignments/{assignment_id}/submit",
            data={"submission_text": "Second try"},
            headers=auth_headers(student),
        )
        assert again.status_code == 400


class TestForumRoutes:
    def test_thread_flow_with_lock_and_reactions(
        self, client, auth_headers, teacher, student, course, enrollment
    ):
        categories = client.get(f"/api/forum/course/{course.id}", headers=auth_headers(student))
        category_id = categories.json()["data"]["categories"][0]["id"]
        assert len(categories.json()["data"]["categories"]) == 3

        resp = client.post(
            f"/api/forum/category/{category_id}/threads",
            json={"title": "Office hours", "content": "When are they?"},
            headers=auth_headers(student),
        )
        assert resp.status_code == 201
        thread_id = resp.json()["data"]["thread"]["id"]

        resp = client.post(
            f"/api/forum/thread/{thread_id}/posts",
            json={"content": "Tuesdays at 3"},
            headers=auth_headers(teacher),
        )
        post_id = resp.json()["data"]["post"]["id"]

        resp = client.post(
            f"/api/forum/post/{post_id}/reactions",
            json={"reaction_type": "like"},
            headers=auth_headers(student),
        )
        assert resp.json()["data"]["reaction"]["reaction_type"] == "like"

        detail = client.get(f"/api/forum/thread/{thread_id}", headers=auth_headers(student))
        data = detail.json()["data"]
        assert data["thread"]["view_count"] == 1
        assert data["posts"][0]["reaction_count"] == 1
        assert data["posts"][0]["replies"] == []

        resp = client.patch(
            f"/api/forum/thread/{thread_id}/lock",
            json={"locked": True},
            headers=auth_headers(student),
        )
        assert resp.status_code == 403

        resp = client.patch(f"/api/forum/thread/{thread_id}/lock", headers=auth_headers(teacher))
        assert resp.json()["data"]["thread"]["is_locked"] is True

        resp = client.post(
            f"/api/forum/thread/{thread_id}/posts",
            json={"content": "Thanks!"},
            headers=auth_headers(student),
        )
        assert resp.status_code == 403

        found = client.get(
            f"/api/forum/course/{course.id}/search",
            params={"q": "OFFICE"},
            headers=auth_headers(student),
        )
        assert [t["id"] for t in found.json()["data"]["threads"]] == [thread_id]

        missing_q = client.get(f"/api/forum/course/{course.id}/search", headers=auth_headers(student))
        assert missing_q.status_code == 400
