"""Shared fixtures.

Every test runs against a fresh SQLite file in tmp_path with built-in
configuration defaults (the working directory is moved to tmp_path, so
the repository's YAML config is not read). Password hashing uses a low
iteration count to keep the suite fast.
"""

import pytest
from fastapi.testclient import TestClient

from aicademy.auth import provider
from aicademy.config.app_config import clear_config_cache, load_app_config
from aicademy.core.assignments import AssignmentTarget, assign_module
from aicademy.core.modules import LessonDraft, ModuleDraft, QuestionDraft, create_module
from aicademy.db.database import get_db, init_db
from aicademy.db.users_repository import insert_user
from aicademy.web.api import create_app

ADMIN_KEY = "test-admin-key"


@pytest.fixture(autouse=True)
def db(tmp_path, monkeypatch):
    """Isolated database and configuration for each test."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("AICADEMY_DB_PATH", raising=False)
    monkeypatch.delenv("AICADEMY_ADMIN_KEY", raising=False)
    clear_config_cache()

    config = load_app_config()
    config.auth.password_iterations = 1000
    config.demo.admin_key = ADMIN_KEY

    db_path = tmp_path / "test.db"
    init_db(db_path)
    yield db_path
    clear_config_cache()


@pytest.fixture
def make_user():
    """Factory creating an identity plus its profile."""
    counter = {"n": 0}

    def _make(role="student", full_name=None, email=None, grade_level="9", password="secret123"):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@school.test"
        full_name = full_name or f"{role.title()} {counter['n']}"
        with get_db() as conn:
            auth_user = provider.admin_create_user(
                conn,
                email,
                password,
                user_metadata={"full_name": full_name, "role": role},
            )
            return insert_user(
                conn,
                auth_user.id,
                auth_user.email,
                full_name,
                role,
                grade_level if role == "student" else None,
            )

    return _make


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", full_name="Ms. Rivera")


@pytest.fixture
def student(make_user):
    return make_user("student", full_name="Ana Torres", grade_level="10")


@pytest.fixture
def token_for():
    """Open a bearer session for a user and return the Authorization header."""

    def _token(user):
        with get_db() as conn:
            session = provider.create_session(conn, user.id)
        return {"Authorization": f"Bearer {session.access_token}"}

    return _token


@pytest.fixture
def module_draft():
    """Factory for a two-lesson fractions module: a quiz lesson and a reading lesson."""

    def _draft(status="published", title="Fractions"):
        return ModuleDraft(
            title=title,
            subject="Mathematics",
            description="Adding and comparing fractions",
            status=status,
            lessons=[
                LessonDraft(
                    title="Adding Fractions",
                    content="<p>Find a common denominator, then add the numerators.</p>",
                    questions=[
                        QuestionDraft(
                            question="What is 1/2 + 1/4?",
                            options=["3/4", "2/6", "1/8"],
                            correct_index=0,
                        ),
                        QuestionDraft(
                            question="What is 1/3 + 1/3?",
                            options=["1/3", "2/3", "2/6"],
                            correct_index=1,
                        ),
                        QuestionDraft(
                            question="Name the bottom number of a fraction.",
                            type="free_response",
                            correct_answer_text="Denominator",
                        ),
                    ],
                ),
                LessonDraft(
                    title="Fractions in Daily Life",
                    content="<p>Recipes and clocks use fractions.</p>",
                ),
            ],
        )

    return _draft


@pytest.fixture
def fractions(teacher, module_draft):
    """Published fractions module owned by the teacher fixture."""
    return create_module(teacher, module_draft())


@pytest.fixture
def enrolled(teacher, student, fractions):
    """The fractions module assigned directly to the student fixture."""
    assign_module(teacher, fractions.module.id, [AssignmentTarget("student", student.id)])
    return fractions


@pytest.fixture
def client():
    """Test client for a fresh app bound to the test database."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
