"""Tests for classes and memberships."""

import pytest

from aicademy.config.app_config import load_app_config
from aicademy.core import classes
from aicademy.core.assignments import AssignmentTarget, assign_module
from aicademy.core.classes import CODE_ALPHABET, ClassCodeExhaustedError
from aicademy.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


@pytest.fixture
def algebra(teacher):
    return classes.create_class(teacher, "Algebra I", "Period 3")


class TestCreateClass:
    """Tests for classes.create_class."""

    def test_create_class_code(self, teacher):
        cls = classes.create_class(teacher, "  Algebra I ", "Period 3")

        assert cls.name == "Algebra I"
        assert cls.teacher_id == teacher.id
        assert len(cls.code) == 6
        assert all(ch in CODE_ALPHABET for ch in cls.code)

    def test_create_class_requires_name(self, teacher):
        with pytest.raises(ValidationError, match="Class name is required."):
            classes.create_class(teacher, "   ")

    def test_students_cannot_create_classes(self, student):
        with pytest.raises(PermissionDeniedError):
            classes.create_class(student, "My class")

    def test_code_collision_retries(self, teacher, monkeypatch):
        """A taken code is skipped and a new one generated."""
        codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
        monkeypatch.setattr(classes, "generate_class_code", lambda length=None: next(codes))

        first = classes.create_class(teacher, "First")
        second = classes.create_class(teacher, "Second")

        assert first.code == "AAAAAA"
        assert second.code == "BBBBBB"

    def test_code_attempts_exhausted(self, teacher, monkeypatch):
        load_app_config().classes.code_max_attempts = 2
        monkeypatch.setattr(classes, "generate_class_code", lambda length=None: "AAAAAA")
        classes.create_class(teacher, "First")

        with pytest.raises(ClassCodeExhaustedError):
            classes.create_class(teacher, "Second")


class TestJoinByCode:
    """Tests for classes.join_class_by_code."""

    def test_join_creates_pending(self, student, algebra):
        membership = classes.join_class_by_code(student, f"  {algebra.code.lower()} ")

        assert membership.status == "pending"
        assert membership.class_id == algebra.id

    def test_join_empty_code(self, student):
        with pytest.raises(ValidationError, match="Please enter a class code."):
            classes.join_class_by_code(student, "  ")

    def test_join_unknown_code(self, student):
        with pytest.raises(NotFoundError, match="No class found with that code"):
            classes.join_class_by_code(student, "ZZZZZZ")

    def test_join_while_pending(self, student, algebra):
        classes.join_class_by_code(student, algebra.code)
        with pytest.raises(
            ConflictError,
            match="You have already requested to join this class. Please wait for approval.",
        ):
            classes.join_class_by_code(student, algebra.code)

    def test_join_while_approved(self, teacher, student, algebra):
        membership = classes.join_class_by_code(student, algebra.code)
        classes.approve_membership(teacher, membership.id)

        with pytest.raises(ConflictError, match="You are already a member of this class."):
            classes.join_class_by_code(student, algebra.code)

    def test_rejected_student_can_request_again(self, teacher, student, algebra):
        """A rejected membership is reopened rather than duplicated."""
        membership = classes.join_class_by_code(student, algebra.code)
        classes.reject_membership(teacher, membership.id)

        again = classes.join_class_by_code(student, algebra.code)

        assert again.id == membership.id
        assert again.status == "pending"

    def test_teachers_cannot_join(self, teacher, algebra):
        with pytest.raises(PermissionDeniedError):
            classes.join_class_by_code(teacher, algebra.code)


class TestSearchAndRequest:
    """Tests for class search and request_join."""

    def test_search_by_teacher_name(self, student, algebra):
        results = classes.search_classes("rivera")
        assert [(cls.id, name) for cls, name in results] == [(algebra.id, "Ms. Rivera")]

    def test_search_blank_query(self, algebra):
        assert classes.search_classes("  ") == []

    def test_request_join(self, student, algebra):
        membership = classes.request_join(student, algebra.id)
        assert membership.status == "pending"

        with pytest.raises(ConflictError):
            classes.request_join(student, algebra.id)


class TestTeacherRoster:
    """Tests for roster management by the class teacher."""

    def test_add_student_by_email(self, teacher, student, algebra):
        membership = classes.add_student_by_email(teacher, algebra.id, f" {student.email.upper()} ")
        assert membership.status == "pending"
        assert membership.student_id == student.id

    def test_add_student_requires_email(self, teacher, algebra):
        with pytest.raises(ValidationError, match="Student email is required."):
            classes.add_student_by_email(teacher, algebra.id, "")

    def test_add_teacher_email_rejected(self, teacher, algebra):
        with pytest.raises(NotFoundError, match="No student found with that email."):
            classes.add_student_by_email(teacher, algebra.id, teacher.email)

    def test_add_student_twice(self, teacher, student, algebra):
        classes.add_student_by_email(teacher, algebra.id, student.email)
        with pytest.raises(ConflictError):
            classes.add_student_by_email(teacher, algebra.id, student.email)

    def test_approve_only_pending(self, teacher, student, algebra):
        membership = classes.join_class_by_code(student, algebra.code)
        approved = classes.approve_membership(teacher, membership.id)
        assert approved.status == "approved"

        with pytest.raises(ConflictError):
            classes.approve_membership(teacher, membership.id)

    def test_other_teacher_cannot_approve(self, make_user, student, algebra):
        other = make_user("teacher")
        membership = classes.join_class_by_code(student, algebra.code)

        with pytest.raises(NotFoundError):
            classes.approve_membership(other, membership.id)

    def test_list_teacher_classes_splits_roster(self, teacher, make_user, algebra):
        waiting = make_user("student", full_name="Waiting Student")
        member = make_user("student", full_name="Approved Student")
        classes.join_class_by_code(waiting, algebra.code)
        classes.approve_membership(teacher, classes.join_class_by_code(member, algebra.code).id)

        [view] = classes.list_teacher_classes(teacher)

        assert view.cls.id == algebra.id
        assert [m.student_name for m in view.pending] == ["Waiting Student"]
        assert [m.student_name for m in view.approved] == ["Approved Student"]

    def test_remove_membership(self, teacher, student, algebra):
        membership = classes.join_class_by_code(student, algebra.code)
        classes.remove_membership(teacher, membership.id)

        assert classes.list_student_classes(student) == []


class TestStudentClasses:
    """Tests for classes.list_student_classes."""

    def test_lists_status_and_module_count(self, teacher, student, algebra, fractions):
        classes.join_class_by_code(student, algebra.code)
        assign_module(teacher, fractions.module.id, [AssignmentTarget("class", algebra.id)])

        [view] = classes.list_student_classes(student)

        assert view.cls.id == algebra.id
        assert view.teacher_name == "Ms. Rivera"
        assert view.status == "pending"
        assert view.assigned_modules == 1
