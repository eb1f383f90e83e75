"""Module assignment fan-out.

A teacher selects target classes and/or individual students, each with an
optional due date. The stored assignment set is brought to exactly that
selection by diff-and-patch inside one transaction:
- targets no longer selected are deleted
- new targets are inserted
- kept targets whose due date changed are updated

Every student implicated (selected directly, or an approved member of a
selected class) gets a zero-progress student_modules row if they have
none. Removing a target never removes student_modules rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from aicademy.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from aicademy.core.modules import get_owned_module
from aicademy.db import assignments_repository, classes_repository, progress_repository
from aicademy.db.assignments_repository import AssignmentRecord
from aicademy.db.database import get_db
from aicademy.db.users_repository import UserRecord, get_users_by_ids

logger = structlog.get_logger(__name__)


@dataclass
class AssignmentTarget:
    """One selected class or student with its optional due date."""

    kind: str  # "class" | "student"
    target_id: str
    due_date: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind, self.target_id)


@dataclass
class AssignmentChanges:
    """What an assignment save changed."""

    module_id: str
    assignments: list[AssignmentRecord] = field(default_factory=list)
    added: int = 0
    removed: int = 0
    updated: int = 0
    student_modules_created: int = 0


def build_targets(
    class_targets: dict[str, str | None],
    student_targets: dict[str, str | None],
) -> list[AssignmentTarget]:
    """Targets from {class_id: due_date} and {student_id: due_date} maps."""
    targets = [AssignmentTarget("class", cid, due or None) for cid, due in class_targets.items()]
    targets += [AssignmentTarget("student", sid, due or None) for sid, due in student_targets.items()]
    return targets


def assign_module(
    teacher: UserRecord,
    module_id: str,
    targets: list[AssignmentTarget],
) -> AssignmentChanges:
    """Make the module's assignments equal to the given targets.

    Raises:
        NotFoundError: Unknown module/class/student
        ValidationError: Malformed target
    """
    if not teacher.is_teacher:
        raise PermissionDeniedError("Only teachers can assign modules.")

    wanted: dict[tuple[str, str], AssignmentTarget] = {}
    for target in targets:
        if target.kind not in ("class", "student") or not target.target_id:
            raise ValidationError("Each assignment needs a class or a student.")
        wanted[target.key] = target

    changes = AssignmentChanges(module_id=module_id)

    with get_db() as conn:
        get_owned_module(conn, teacher, module_id)

        class_ids = [t.target_id for t in wanted.values() if t.kind == "class"]
        student_ids = [t.target_id for t in wanted.values() if t.kind == "student"]

        for class_id in class_ids:
            cls = classes_repository.get_class_by_id(conn, class_id)
            if cls is None or cls.teacher_id != teacher.id:
                raise NotFoundError(f"Class not found: {class_id}")
        students = get_users_by_ids(conn, student_ids)
        for student_id in student_ids:
            if student_id not in students or not students[student_id].is_student:
                raise NotFoundError(f"Student not found: {student_id}")

        existing = {a.target: a for a in assignments_repository.list_assignments(conn, module_id)}

        for key, assignment in existing.items():
            if key not in wanted:
                assignments_repository.delete_assignment(conn, assignment.id)
                changes.removed += 1

        for key, target in wanted.items():
            current = existing.get(key)
            if current is None:
                assignments_repository.insert_assignment(
                    conn,
                    module_id,
                    class_id=target.target_id if target.kind == "class" else None,
                    student_id=target.target_id if target.kind == "student" else None,
                    due_date=target.due_date,
                )
                changes.added += 1
            elif current.due_date != target.due_date:
                assignments_repository.update_due_date(conn, current.id, target.due_date)
                changes.updated += 1

        implicated = set(student_ids)
        for class_id in class_ids:
            implicated.update(classes_repository.list_approved_student_ids(conn, class_id))
        for student_id in sorted(implicated):
            if progress_repository.ensure_student_module(conn, student_id, module_id):
                changes.student_modules_created += 1

        changes.assignments = assignments_repository.list_assignments(conn, module_id)

    logger.info(
        "assignments.saved",
        module_id=module_id,
        added=changes.added,
        removed=changes.removed,
        updated=changes.updated,
        student_modules_created=changes.student_modules_created,
    )
    return changes


def list_assignments(teacher: UserRecord, module_id: str) -> list[AssignmentRecord]:
    """Current assignments of one of the teacher's modules."""
    if not teacher.is_teacher:
        raise PermissionDeniedError("Only teachers can view assignments.")
    with get_db() as conn:
        get_owned_module(conn, teacher, module_id)
        return assignments_repository.list_assignments(conn, module_id)
