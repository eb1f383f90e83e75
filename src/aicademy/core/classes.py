"""Classes and memberships.

Responsibilities:
- Create classes with a random join code (unique, regenerated on collision)
- Students request to join by code or from a class search
- Teachers add students by email, approve / reject / remove memberships

A membership starts pending and leaves that state only through the
class teacher. A rejected student may request again, which re-opens the
same row.
"""

from __future__ import annotations

import secrets
import sqlite3
import string
from dataclasses import dataclass, field

import structlog

from aicademy.config.app_config import load_app_config
from aicademy.core.errors import (
    AicademyError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from aicademy.db import assignments_repository, classes_repository
from aicademy.db.classes_repository import ClassRecord, MembershipRecord
from aicademy.db.database import get_db
from aicademy.db.users_repository import UserRecord, get_user_by_email

logger = structlog.get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


class ClassCodeExhaustedError(AicademyError):
    """No free class code found within the configured attempts."""

    status_code = 503


@dataclass
class ClassMember:
    """A membership with the student's display fields."""

    membership: MembershipRecord
    student_name: str
    student_email: str


@dataclass
class TeacherClassView:
    """A teacher's class with its roster split by status."""

    cls: ClassRecord
    pending: list[ClassMember] = field(default_factory=list)
    approved: list[ClassMember] = field(default_factory=list)


@dataclass
class StudentClassView:
    """A class as seen by one of its (prospective) students."""

    cls: ClassRecord
    teacher_name: str
    status: str
    assigned_modules: int


def generate_class_code(length: int | None = None) -> str:
    """Random uppercase alphanumeric join code."""
    if length is None:
        length = load_app_config().classes.code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _require_teacher(user: UserRecord) -> None:
    if not user.is_teacher:
        raise PermissionDeniedError("Only teachers can manage classes.")


def _require_student(user: UserRecord) -> None:
    if not user.is_student:
        raise PermissionDeniedError("Only students can join classes.")


def _owned_class(conn: sqlite3.Connection, teacher: UserRecord, class_id: str) -> ClassRecord:
    cls = classes_repository.get_class_by_id(conn, class_id)
    if cls is None or cls.teacher_id != teacher.id:
        raise NotFoundError("Class not found.")
    return cls


# =============================================================================
# TEACHER OPERATIONS
# =============================================================================


def create_class(teacher: UserRecord, name: str, description: str | None = None) -> ClassRecord:
    """Create a class with a fresh join code.

    Raises:
        ValidationError: Empty name
        ClassCodeExhaustedError: Every generated code was taken
    """
    _require_teacher(teacher)
    if not (name or "").strip():
        raise ValidationError("Class name is required.")

    settings = load_app_config().classes
    with get_db() as conn:
        for attempt in range(1, settings.code_max_attempts + 1):
            code = generate_class_code(settings.code_length)
            if classes_repository.get_class_by_code(conn, code) is not None:
                logger.warning("classes.code_collision", code=code, attempt=attempt)
                continue
            cls = classes_repository.insert_class(
                conn,
                name=name.strip(),
                code=code,
                teacher_id=teacher.id,
                description=(description or "").strip() or None,
            )
            break
        else:
            raise ClassCodeExhaustedError("Could not generate a unique class code. Please try again.")

    logger.info("classes.created", class_id=cls.id, teacher_id=teacher.id, code=cls.code)
    return cls


def list_teacher_classes(teacher: UserRecord) -> list[TeacherClassView]:
    """A teacher's classes (newest first) with pending and approved members."""
    _require_teacher(teacher)
    views = []
    with get_db() as conn:
        for cls in classes_repository.list_classes_by_teacher(conn, teacher.id):
            view = TeacherClassView(cls=cls)
            for membership, name, email in classes_repository.list_class_members(conn, cls.id):
                member = ClassMember(membership=membership, student_name=name, student_email=email)
                if membership.status == "pending":
                    view.pending.append(member)
                elif membership.status == "approved":
                    view.approved.append(member)
            views.append(view)
    return views


def add_student_by_email(teacher: UserRecord, class_id: str, email: str) -> MembershipRecord:
    """Add a student to a class (as a pending membership).

    Raises:
        ValidationError: Empty email
        NotFoundError: Unknown class or no student with that email
        ConflictError: Student already has a membership row
    """
    _require_teacher(teacher)
    if not (email or "").strip():
        raise ValidationError("Student email is required.")

    with get_db() as conn:
        _owned_class(conn, teacher, class_id)
        student = get_user_by_email(conn, email.strip())
        if student is None or not student.is_student:
            raise NotFoundError("No student found with that email.")
        if classes_repository.get_membership(conn, class_id, student.id) is not None:
            raise ConflictError("Student is already in this class.")
        membership = classes_repository.insert_membership(conn, class_id, student.id, "pending")

    logger.info("classes.student_added", class_id=class_id, student_id=student.id)
    return membership


def _transition(teacher: UserRecord, membership_id: str, status: str) -> MembershipRecord:
    _require_teacher(teacher)
    with get_db() as conn:
        membership = classes_repository.get_membership_by_id(conn, membership_id)
        if membership is None:
            raise NotFoundError("Membership not found.")
        _owned_class(conn, teacher, membership.class_id)
        if membership.status != "pending":
            raise ConflictError(f"Membership is already {membership.status}.")
        classes_repository.update_membership_status(conn, membership_id, status)  # type: ignore[arg-type]
        membership.status = status  # type: ignore[assignment]

    logger.info("classes.membership_" + status, membership_id=membership_id)
    return membership


def approve_membership(teacher: UserRecord, membership_id: str) -> MembershipRecord:
    """Approve a pending membership."""
    return _transition(teacher, membership_id, "approved")


def reject_membership(teacher: UserRecord, membership_id: str) -> MembershipRecord:
    """Reject a pending membership."""
    return _transition(teacher, membership_id, "rejected")


def remove_membership(teacher: UserRecord, membership_id: str) -> None:
    """Delete a membership of one of the teacher's classes."""
    _require_teacher(teacher)
    with get_db() as conn:
        membership = classes_repository.get_membership_by_id(conn, membership_id)
        if membership is None:
            raise NotFoundError("Membership not found.")
        _owned_class(conn, teacher, membership.class_id)
        classes_repository.delete_membership(conn, membership_id)

    logger.info("classes.membership_removed", membership_id=membership_id)


# =============================================================================
# STUDENT OPERATIONS
# =============================================================================


def _request_membership(conn: sqlite3.Connection, student: UserRecord, cls: ClassRecord) -> MembershipRecord:
    existing = classes_repository.get_membership(conn, cls.id, student.id)
    if existing is not None:
        if existing.status == "pending":
            raise ConflictError(
                "You have already requested to join this class. Please wait for approval."
            )
        if existing.status == "approved":
            raise ConflictError("You are already a member of this class.")
        classes_repository.update_membership_status(conn, existing.id, "pending")
        existing.status = "pending"
        logger.info("classes.join_rerequested", class_id=cls.id, student_id=student.id)
        return existing

    membership = classes_repository.insert_membership(conn, cls.id, student.id, "pending")
    logger.info("classes.join_requested", class_id=cls.id, student_id=student.id)
    return membership


def join_class_by_code(student: UserRecord, code: str) -> MembershipRecord:
    """Request to join the class with the given code.

    Raises:
        ValidationError: Empty code
        NotFoundError: No class with that code
        ConflictError: A pending or approved membership already exists
    """
    _require_student(student)
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("Please enter a class code.")

    with get_db() as conn:
        cls = classes_repository.get_class_by_code(conn, normalized)
        if cls is None:
            raise NotFoundError("No class found with that code. Please check and try again.")
        return _request_membership(conn, student, cls)


def request_join(student: UserRecord, class_id: str) -> MembershipRecord:
    """Request to join a class picked from a search."""
    _require_student(student)
    with get_db() as conn:
        cls = classes_repository.get_class_by_id(conn, class_id)
        if cls is None:
            raise NotFoundError("Class not found.")
        return _request_membership(conn, student, cls)


def search_classes(query: str) -> list[tuple[ClassRecord, str]]:
    """Find classes by class name or teacher name."""
    if not (query or "").strip():
        return []
    with get_db() as conn:
        return classes_repository.search_classes(conn, query)


def list_student_classes(student: UserRecord) -> list[StudentClassView]:
    """A student's memberships with class, teacher and assigned module count."""
    _require_student(student)
    with get_db() as conn:
        return [
            StudentClassView(
                cls=cls,
                teacher_name=teacher_name,
                status=membership.status,
                assigned_modules=assignments_repository.count_assignments_for_class(conn, cls.id),
            )
            for membership, cls, teacher_name in classes_repository.list_student_memberships(
                conn, student.id
            )
        ]
