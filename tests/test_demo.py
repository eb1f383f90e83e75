"""Tests for demo accounts and demo content."""

import copy

import pytest

from aicademy.auth import provider
from aicademy.core.dashboards import list_completed_modules, list_student_modules
from aicademy.core.demo import (
    DEMO_MODULES,
    cleanup_demo_accounts,
    demo_email,
    demo_login,
    is_demo_email,
    setup_demo_content,
)
from aicademy.core.errors import ValidationError
from aicademy.db.database import get_db
from aicademy.db.modules_repository import (
    FreeResponseQuestion,
    MultipleChoiceQuestion,
    list_lessons,
    list_questions,
)
from aicademy.db.users_repository import get_user_by_id


class TestDemoLogin:
    """Tests for demo_login."""

    def test_same_identity_fresh_session(self):
        first = demo_login("student")
        second = demo_login("student")

        assert first.user.id == second.user.id
        assert first.session.access_token != second.session.access_token
        assert first.redirect_to == "/student"
        assert first.user.email == "demo.student@aicademy.edu"

    def test_teacher_profile(self):
        result = demo_login("teacher")

        assert result.user.role == "teacher"
        assert result.user.full_name == "Demo Teacher"
        assert result.redirect_to == "/teacher"

    def test_invalid_role(self):
        with pytest.raises(ValidationError, match="Invalid role"):
            demo_login("admin")


class TestDemoEmails:
    @pytest.mark.parametrize(
        "email",
        ["demo.student@aicademy.edu", "demo.teacher+1712345678@aicademy.edu", "Demo.Teacher@aicademy.edu"],
    )
    def test_demo_emails(self, email):
        assert is_demo_email(email) is True

    @pytest.mark.parametrize("email", ["student@aicademy.edu", "demo.student@school.test", ""])
    def test_other_emails(self, email):
        assert is_demo_email(email) is False

    def test_demo_email(self):
        assert demo_email("teacher") == "demo.teacher@aicademy.edu"


class TestSetupDemoContent:
    """Tests for setup_demo_content."""

    def test_setup_seeds_content(self):
        result = setup_demo_content()

        assert result.classes_created == 3
        assert result.modules_created == 3
        assert result.assignments_created == 3

        with get_db() as conn:
            student = get_user_by_id(conn, result.student_id)
        titles = {s.module.title for s in list_student_modules(student)}
        assert titles == {"Introduction to Programming", "Advanced Algebra", "Physics Mechanics"}
        [completed] = list_completed_modules(student)
        assert completed.module.title == "Introduction to Programming"

    def test_setup_is_idempotent(self):
        first = setup_demo_content()
        second = setup_demo_content()

        assert (second.classes_created, second.modules_created, second.assignments_created) == (0, 0, 0)
        assert second.class_ids == first.class_ids
        assert second.module_ids == first.module_ids

    def test_setup_stores_questions_without_touching_seeds(self):
        seeds_before = copy.deepcopy(DEMO_MODULES)

        result = setup_demo_content()

        assert DEMO_MODULES == seeds_before
        with get_db() as conn:
            variables, control_flow = list_lessons(conn, result.module_ids[0])
            [choice] = list_questions(conn, variables.id)
            [text] = list_questions(conn, control_flow.id)
        assert isinstance(choice, MultipleChoiceQuestion)
        assert choice.options == ["Integer", "String", "Boolean"]
        assert isinstance(text, FreeResponseQuestion)
        assert text.correct_answer_text == "if"

    def test_setup_reuses_demo_login_identity(self):
        login = demo_login("student")
        result = setup_demo_content()
        assert result.student_id == login.user.id


class TestCleanupDemoAccounts:
    def test_deletes_only_timestamped_accounts(self):
        fixed = demo_login("student").user
        with get_db() as conn:
            provider.admin_create_user(conn, "demo.student+1712345678@aicademy.edu", "demo123")
            provider.admin_create_user(conn, "demo.teacher+1712345679@aicademy.edu", "demo123")
            provider.admin_create_user(conn, "someone@school.test", "secret123")

        assert cleanup_demo_accounts() == 2

        with get_db() as conn:
            emails = {u.email for u in provider.admin_list_users(conn)}
        assert emails == {fixed.email, "someone@school.test"}

    def test_nothing_to_clean(self):
        assert cleanup_demo_accounts() == 0
