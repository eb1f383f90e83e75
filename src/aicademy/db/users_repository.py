"""Repository functions for the users table.

A users row is the application-level profile of an auth identity. Its id
is the auth user id; its role never changes once written.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Literal

import structlog

from aicademy.db.database import utc_now

logger = structlog.get_logger(__name__)

Role = Literal["student", "teacher"]


@dataclass
class UserRecord:
    """User record from database."""

    id: str
    email: str
    full_name: str
    role: Role
    grade_level: str | None
    created_at: str

    @property
    def is_student(self) -> bool:
        return self.role == "student"

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"


def insert_user(
    conn: sqlite3.Connection,
    user_id: str,
    email: str,
    full_name: str,
    role: Role,
    grade_level: str | None = None,
) -> UserRecord:
    """Insert a new user profile.

    Raises:
        sqlite3.IntegrityError: If a profile already exists for user_id
    """
    created_at = utc_now()
    conn.execute(
        """
        INSERT INTO users (id, email, full_name, role, grade_level, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (user_id, email, full_name, role, grade_level, created_at),
    )
    logger.debug("users.inserted", user_id=user_id, role=role)
    return UserRecord(
        id=user_id,
        email=email,
        full_name=full_name,
        role=role,
        grade_level=grade_level,
        created_at=created_at,
    )


def update_full_name(conn: sqlite3.Connection, user_id: str, full_name: str) -> UserRecord:
    """Rename a user.

    Raises:
        ValueError: If no profile exists for user_id
    """
    cursor = conn.execute("UPDATE users SET full_name = ? WHERE id = ?", (full_name, user_id))
    if cursor.rowcount == 0:
        raise ValueError(f"User not found: {user_id}")
    return get_user_by_id(conn, user_id)  # type: ignore[return-value]


def get_user_by_id(conn: sqlite3.Connection, user_id: str) -> UserRecord | None:
    """Get user by ID, or None if no profile exists."""
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_record(row) if row else None


def get_user_by_email(conn: sqlite3.Connection, email: str) -> UserRecord | None:
    """Get user by email (case-insensitive)."""
    row = conn.execute(
        "SELECT * FROM users WHERE lower(email) = lower(?)", (email,)
    ).fetchone()
    return _row_to_record(row) if row else None


def get_users_by_ids(conn: sqlite3.Connection, user_ids: list[str]) -> dict[str, UserRecord]:
    """Get several users keyed by id. Unknown ids are omitted."""
    if not user_ids:
        return {}
    placeholders = ",".join("?" for _ in user_ids)
    rows = conn.execute(
        f"SELECT * FROM users WHERE id IN ({placeholders})", tuple(user_ids)
    ).fetchall()
    return {row["id"]: _row_to_record(row) for row in rows}


def _row_to_record(row: sqlite3.Row) -> UserRecord:
    """Convert database row to UserRecord."""
    return UserRecord(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role=row["role"],
        grade_level=row["grade_level"],
        created_at=row["created_at"],
    )
