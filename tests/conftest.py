"""Shared fixtures for the LearnHub API tests.

The database location is configured through the environment before any
application module is imported, so the engine binds to a throwaway SQLite file.
"""

import os
import tempfile

_TEST_DATA_DIR = tempfile.mkdtemp(prefix="learnhub-tests-")
os.environ["DATA_DIR"] = _TEST_DATA_DIR
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR}/test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["APP_ENV"] = "development"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from api.routes.auth import create_access_token  # noqa: E402
from app import app  # noqa: E402
from core.database import SessionLocal, engine  # noqa: E402
from models.base import Base  # noqa: E402
from schemas.user import CallerContext  # noqa: E402
from utils.course_manager import CourseManager  # noqa: E402
from utils.user_manager import UserManager  # noqa: E402

TEST_PASSWORD = "secret123"


@pytest.fixture
def db_session():
    """Fresh tables and a session for direct manager calls."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make_user(username: str, role: str, name: str = None) -> CallerContext:
        user = UserManager(db_session).create_user(
            username=username,
            password=TEST_PASSWORD,
            role=role,
            name=name or username.title(),
            email=f"{username}@example.com",
        )
        return CallerContext.from_user(user)

    return _make_user


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", "teacher", "Tina Teacher")


@pytest.fixture
def other_teacher(make_user):
    return make_user("otherteacher", "teacher", "Oscar Other")


@pytest.fixture
def student(make_user):
    return make_user("student", "student", "Sam Student")


@pytest.fixture
def other_student(make_user):
    return make_user("otherstudent", "student", "Olive Other")


@pytest.fixture
def course(db_session, teacher):
    """A published course owned by ``teacher``."""
    courses = CourseManager(db_session)
    model = courses.create_course(teacher, "Python 101", "Intro to Python", "6 weeks")
    return courses.update_course(model.id, teacher, {"is_published": True})


@pytest.fixture
def enrollment(db_session, course, student):
    return CourseManager(db_session).enroll(student, course.id)


@pytest.fixture
def auth_headers():
    def _auth_headers(caller: CallerContext) -> dict:
        token = create_access_token({"sub": caller.username, "role": caller.role})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
