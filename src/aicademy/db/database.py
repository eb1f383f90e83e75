"""SQLite database connection and schema management.

Provides connection management and schema initialization for the
relational store. Every table the application reads or writes lives here;
uniqueness and referential rules are enforced by the schema itself.
"""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import structlog

from aicademy.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

# Current database path (module-level, set by init_db)
_db_path: Path | None = None


def _default_db_path() -> Path:
    return Path(load_app_config().database.path)


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to the configured path.
    """
    global _db_path
    _db_path = db_path or _default_db_path()

    # Ensure directory exists
    _db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


def get_db_path() -> Path:
    """Return the path of the active database."""
    return _db_path or _default_db_path()


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Everything executed inside one ``with`` block is a single transaction:
    committed on normal exit, rolled back if an exception escapes.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM classes").fetchall()
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def new_id() -> str:
    """Generate a row identifier."""
    return str(uuid.uuid4())


def utc_now() -> str:
    """Current UTC time as ISO-8601 text (sortable)."""
    return datetime.now(timezone.utc).isoformat()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Auth provider: credentials, metadata and sessions
        CREATE TABLE IF NOT EXISTS auth_users (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            password_salt TEXT NOT NULL,
            email_confirmed INTEGER NOT NULL DEFAULT 0,
            user_metadata TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS auth_sessions (
            access_token TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES auth_users(id) ON DELETE CASCADE,
            created_at TEXT NOT NULL,
            expires_at TEXT NOT NULL
        );

        -- Application users (one per completed profile)
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY REFERENCES auth_users(id) ON DELETE CASCADE,
            email TEXT NOT NULL,
            full_name TEXT NOT NULL,
            role TEXT NOT NULL CHECK(role IN ('student', 'teacher')),
            grade_level TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS classes (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            code TEXT NOT NULL UNIQUE,
            teacher_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TEXT NOT NULL
        );

        -- One membership row per (class, student)
        CREATE TABLE IF NOT EXISTS class_memberships (
            id TEXT PRIMARY KEY,
            class_id TEXT NOT NULL REFERENCES classes(id) ON DELETE CASCADE,
            student_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'approved', 'rejected')),
            created_at TEXT NOT NULL,
            updated_at TEXT,
            UNIQUE(class_id, student_id)
        );

        CREATE TABLE IF NOT EXISTS modules (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            subject TEXT NOT NULL,
            description TEXT NOT NULL,
            teacher_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'draft'
                CHECK(status IN ('draft', 'published')),
            created_at TEXT NOT NULL,
            updated_at TEXT
        );

        CREATE TABLE IF NOT EXISTS lessons (
            id TEXT PRIMARY KEY,
            module_id TEXT NOT NULL REFERENCES modules(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            order_index INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS quiz_questions (
            id TEXT PRIMARY KEY,
            lesson_id TEXT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            question TEXT NOT NULL,
            type TEXT NOT NULL CHECK(type IN ('multiple_choice', 'free_response')),
            options TEXT,
            correct_index INTEGER,
            correct_answer_text TEXT,
            order_index INTEGER NOT NULL DEFAULT 0
        );

        -- Exactly one of class_id / student_id per assignment
        CREATE TABLE IF NOT EXISTS module_assignments (
            id TEXT PRIMARY KEY,
            module_id TEXT NOT NULL REFERENCES modules(id) ON DELETE CASCADE,
            class_id TEXT REFERENCES classes(id) ON DELETE CASCADE,
            student_id TEXT REFERENCES users(id) ON DELETE CASCADE,
            due_date TEXT,
            created_at TEXT NOT NULL,
            CHECK((class_id IS NULL) != (student_id IS NULL))
        );

        CREATE UNIQUE INDEX IF NOT EXISTS uq_assignment_class
            ON module_assignments(module_id, class_id) WHERE class_id IS NOT NULL;
        CREATE UNIQUE INDEX IF NOT EXISTS uq_assignment_student
            ON module_assignments(module_id, student_id) WHERE student_id IS NOT NULL;

        CREATE TABLE IF NOT EXISTS lesson_progress (
            student_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            lesson_id TEXT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            completed INTEGER NOT NULL DEFAULT 0,
            completed_at TEXT,
            PRIMARY KEY (student_id, lesson_id)
        );

        CREATE TABLE IF NOT EXISTS student_modules (
            student_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            module_id TEXT NOT NULL REFERENCES modules(id) ON DELETE CASCADE,
            progress REAL NOT NULL DEFAULT 0 CHECK(progress >= 0 AND progress <= 1),
            completed_at TEXT,
            PRIMARY KEY (student_id, module_id)
        );

        CREATE TABLE IF NOT EXISTS quiz_attempts (
            student_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            question_id TEXT NOT NULL REFERENCES quiz_questions(id) ON DELETE CASCADE,
            selected_index INTEGER,
            answer_text TEXT,
            is_correct INTEGER,
            attempted_at TEXT NOT NULL,
            PRIMARY KEY (student_id, question_id)
        );

        -- Indices
        CREATE INDEX IF NOT EXISTS idx_sessions_user ON auth_sessions(user_id);
        CREATE INDEX IF NOT EXISTS idx_classes_teacher ON classes(teacher_id);
        CREATE INDEX IF NOT EXISTS idx_memberships_student ON class_memberships(student_id);
        CREATE INDEX IF NOT EXISTS idx_modules_teacher ON modules(teacher_id);
        CREATE INDEX IF NOT EXISTS idx_lessons_module ON lessons(module_id, order_index);
        CREATE INDEX IF NOT EXISTS idx_questions_lesson ON quiz_questions(lesson_id, order_index);
        CREATE INDEX IF NOT EXISTS idx_attempts_student ON quiz_attempts(student_id, attempted_at);
        """
    )
