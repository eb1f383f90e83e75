"""Repository functions for classes and class_memberships tables."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Literal

import structlog

from aicademy.db.database import new_id, utc_now

logger = structlog.get_logger(__name__)

MembershipStatus = Literal["pending", "approved", "rejected"]


@dataclass
class ClassRecord:
    """Class record from database."""

    id: str
    name: str
    description: str | None
    code: str
    teacher_id: str
    created_at: str


@dataclass
class MembershipRecord:
    """Class membership record from database."""

    id: str
    class_id: str
    student_id: str
    status: MembershipStatus
    created_at: str
    updated_at: str | None = None


# =============================================================================
# CLASSES
# =============================================================================


def insert_class(
    conn: sqlite3.Connection,
    name: str,
    code: str,
    teacher_id: str,
    description: str | None = None,
) -> ClassRecord:
    """Insert a new class.

    Raises:
        sqlite3.IntegrityError: If the code is already taken
    """
    record = ClassRecord(
        id=new_id(),
        name=name,
        description=description,
        code=code,
        teacher_id=teacher_id,
        created_at=utc_now(),
    )
    conn.execute(
        """
        INSERT INTO classes (id, name, description, code, teacher_id, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            record.id,
            record.name,
            record.description,
            record.code,
            record.teacher_id,
            record.created_at,
        ),
    )
    logger.debug("classes.inserted", class_id=record.id, code=code)
    return record


def get_class_by_id(conn: sqlite3.Connection, class_id: str) -> ClassRecord | None:
    """Get class by ID."""
    row = conn.execute("SELECT * FROM classes WHERE id = ?", (class_id,)).fetchone()
    return _row_to_class(row) if row else None


def get_class_by_code(conn: sqlite3.Connection, code: str) -> ClassRecord | None:
    """Get class by join code."""
    row = conn.execute("SELECT * FROM classes WHERE code = ?", (code,)).fetchone()
    return _row_to_class(row) if row else None


def list_classes_by_teacher(conn: sqlite3.Connection, teacher_id: str) -> list[ClassRecord]:
    """List a teacher's classes, newest first."""
    rows = conn.execute(
        "SELECT * FROM classes WHERE teacher_id = ? ORDER BY created_at DESC",
        (teacher_id,),
    ).fetchall()
    return [_row_to_class(row) for row in rows]


def search_classes(conn: sqlite3.Connection, query: str, limit: int = 20) -> list[tuple[ClassRecord, str]]:
    """Search classes by class name or teacher name.

    Returns:
        List of (class, teacher full name) pairs ordered by class name
    """
    pattern = f"%{query.strip().lower()}%"
    rows = conn.execute(
        """
        SELECT c.*, u.full_name AS teacher_name
        FROM classes c JOIN users u ON u.id = c.teacher_id
        WHERE lower(c.name) LIKE ? OR lower(u.full_name) LIKE ?
        ORDER BY c.name
        LIMIT ?
        """,
        (pattern, pattern, limit),
    ).fetchall()
    return [(_row_to_class(row), row["teacher_name"]) for row in rows]


def list_all_classes(conn: sqlite3.Connection) -> list[tuple[ClassRecord, str, int]]:
    """Every class with its teacher's name and approved member count, newest first."""
    rows = conn.execute(
        """
        SELECT c.*, u.full_name AS teacher_name,
               (SELECT COUNT(*) FROM class_memberships m
                WHERE m.class_id = c.id AND m.status = 'approved') AS members
        FROM classes c JOIN users u ON u.id = c.teacher_id
        ORDER BY c.created_at DESC
        """
    ).fetchall()
    return [(_row_to_class(row), row["teacher_name"], int(row["members"])) for row in rows]


# =============================================================================
# MEMBERSHIPS
# =============================================================================


def insert_membership(
    conn: sqlite3.Connection,
    class_id: str,
    student_id: str,
    status: MembershipStatus = "pending",
) -> MembershipRecord:
    """Insert a membership row.

    Raises:
        sqlite3.IntegrityError: If the (class, student) pair already exists
    """
    record = MembershipRecord(
        id=new_id(),
        class_id=class_id,
        student_id=student_id,
        status=status,
        created_at=utc_now(),
    )
    conn.execute(
        """
        INSERT INTO class_memberships (id, class_id, student_id, status, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (record.id, class_id, student_id, status, record.created_at),
    )
    logger.debug("memberships.inserted", class_id=class_id, student_id=student_id)
    return record


def get_membership(
    conn: sqlite3.Connection, class_id: str, student_id: str
) -> MembershipRecord | None:
    """Get the membership for a (class, student) pair."""
    row = conn.execute(
        "SELECT * FROM class_memberships WHERE class_id = ? AND student_id = ?",
        (class_id, student_id),
    ).fetchone()
    return _row_to_membership(row) if row else None


def get_membership_by_id(conn: sqlite3.Connection, membership_id: str) -> MembershipRecord | None:
    """Get membership by ID."""
    row = conn.execute(
        "SELECT * FROM class_memberships WHERE id = ?", (membership_id,)
    ).fetchone()
    return _row_to_membership(row) if row else None


def update_membership_status(
    conn: sqlite3.Connection, membership_id: str, status: MembershipStatus
) -> None:
    """Update membership status."""
    conn.execute(
        "UPDATE class_memberships SET status = ?, updated_at = ? WHERE id = ?",
        (status, utc_now(), membership_id),
    )
    logger.debug("memberships.status_updated", membership_id=membership_id, status=status)


def delete_membership(conn: sqlite3.Connection, membership_id: str) -> bool:
    """Delete membership by ID. Returns True if deleted."""
    cursor = conn.execute("DELETE FROM class_memberships WHERE id = ?", (membership_id,))
    return cursor.rowcount > 0


def list_class_members(conn: sqlite3.Connection, class_id: str) -> list[tuple[MembershipRecord, str, str]]:
    """List memberships of a class with student names.

    Returns:
        List of (membership, student full name, student email)
    """
    rows = conn.execute(
        """
        SELECT m.*, u.full_name AS student_name, u.email AS student_email
        FROM class_memberships m JOIN users u ON u.id = m.student_id
        WHERE m.class_id = ?
        ORDER BY u.full_name
        """,
        (class_id,),
    ).fetchall()
    return [
        (_row_to_membership(row), row["student_name"], row["student_email"])
        for row in rows
    ]


def list_student_memberships(
    conn: sqlite3.Connection, student_id: str
) -> list[tuple[MembershipRecord, ClassRecord, str]]:
    """List a student's memberships with class and teacher name."""
    rows = conn.execute(
        """
        SELECT m.id AS m_id, m.class_id, m.student_id, m.status,
               m.created_at AS m_created_at, m.updated_at,
               c.*, u.full_name AS teacher_name
        FROM class_memberships m
        JOIN classes c ON c.id = m.class_id
        JOIN users u ON u.id = c.teacher_id
        WHERE m.student_id = ?
        ORDER BY c.name
        """,
        (student_id,),
    ).fetchall()
    result = []
    for row in rows:
        membership = MembershipRecord(
            id=row["m_id"],
            class_id=row["class_id"],
            student_id=row["student_id"],
            status=row["status"],
            created_at=row["m_created_at"],
            updated_at=row["updated_at"],
        )
        result.append((membership, _row_to_class(row), row["teacher_name"]))
    return result


def list_approved_student_ids(conn: sqlite3.Connection, class_id: str) -> list[str]:
    """IDs of approved members of a class."""
    rows = conn.execute(
        "SELECT student_id FROM class_memberships WHERE class_id = ? AND status = 'approved'",
        (class_id,),
    ).fetchall()
    return [row["student_id"] for row in rows]


def list_approved_class_ids(conn: sqlite3.Connection, student_id: str) -> list[str]:
    """IDs of classes the student is an approved member of."""
    rows = conn.execute(
        "SELECT class_id FROM class_memberships WHERE student_id = ? AND status = 'approved'",
        (student_id,),
    ).fetchall()
    return [row["class_id"] for row in rows]


def _row_to_class(row: sqlite3.Row) -> ClassRecord:
    """Convert database row to ClassRecord."""
    return ClassRecord(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        code=row["code"],
        teacher_id=row["teacher_id"],
        created_at=row["created_at"],
    )


def _row_to_membership(row: sqlite3.Row) -> MembershipRecord:
    """Convert database row to MembershipRecord."""
    return MembershipRecord(
        id=row["id"],
        class_id=row["class_id"],
        student_id=row["student_id"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
