"""Repository functions for the module_assignments table.

An assignment targets exactly one class or exactly one student.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from aicademy.db.database import new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class AssignmentRecord:
    """Module assignment record from database."""

    id: str
    module_id: str
    class_id: str | None
    student_id: str | None
    due_date: str | None
    created_at: str

    @property
    def target(self) -> tuple[str, str]:
        """(kind, id) pair identifying the assignment target."""
        if self.class_id is not None:
            return ("class", self.class_id)
        return ("student", self.student_id or "")


def insert_assignment(
    conn: sqlite3.Connection,
    module_id: str,
    class_id: str | None = None,
    student_id: str | None = None,
    due_date: str | None = None,
) -> AssignmentRecord:
    """Insert an assignment for a class or a student."""
    record = AssignmentRecord(
        id=new_id(),
        module_id=module_id,
        class_id=class_id,
        student_id=student_id,
        due_date=due_date,
        created_at=utc_now(),
    )
    conn.execute(
        """
        INSERT INTO module_assignments (id, module_id, class_id, student_id, due_date, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (record.id, module_id, class_id, student_id, due_date, record.created_at),
    )
    logger.debug(
        "assignments.inserted",
        module_id=module_id,
        class_id=class_id,
        student_id=student_id,
    )
    return record


def update_due_date(conn: sqlite3.Connection, assignment_id: str, due_date: str | None) -> None:
    """Change an assignment's due date."""
    conn.execute(
        "UPDATE module_assignments SET due_date = ? WHERE id = ?",
        (due_date, assignment_id),
    )


def delete_assignment(conn: sqlite3.Connection, assignment_id: str) -> None:
    """Delete one assignment."""
    conn.execute("DELETE FROM module_assignments WHERE id = ?", (assignment_id,))


def list_assignments(conn: sqlite3.Connection, module_id: str) -> list[AssignmentRecord]:
    """List a module's assignments."""
    rows = conn.execute(
        "SELECT * FROM module_assignments WHERE module_id = ? ORDER BY created_at",
        (module_id,),
    ).fetchall()
    return [_row_to_record(row) for row in rows]


def list_assignments_for_student(
    conn: sqlite3.Connection, student_id: str, class_ids: list[str]
) -> list[AssignmentRecord]:
    """Assignments reaching a student directly or through the given classes."""
    sql = "SELECT * FROM module_assignments WHERE student_id = ?"
    params: list[str] = [student_id]
    if class_ids:
        placeholders = ",".join("?" for _ in class_ids)
        sql += f" OR class_id IN ({placeholders})"
        params.extend(class_ids)
    rows = conn.execute(sql, tuple(params)).fetchall()
    return [_row_to_record(row) for row in rows]


def count_assignments_for_class(conn: sqlite3.Connection, class_id: str) -> int:
    """Number of modules assigned to a class."""
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM module_assignments WHERE class_id = ?",
        (class_id,),
    ).fetchone()
    return int(row["n"])


def _row_to_record(row: sqlite3.Row) -> AssignmentRecord:
    """Convert database row to AssignmentRecord."""
    return AssignmentRecord(
        id=row["id"],
        module_id=row["module_id"],
        class_id=row["class_id"],
        student_id=row["student_id"],
        due_date=row["due_date"],
        created_at=row["created_at"],
    )
