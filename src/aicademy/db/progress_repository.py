"""Repository functions for quiz_attempts, lesson_progress and student_modules.

All writes here are upserts keyed by the table's natural key, so a
resubmission overwrites the previous row.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class QuizAttemptRecord:
    """Quiz attempt record from database."""

    student_id: str
    question_id: str
    selected_index: int | None
    answer_text: str | None
    is_correct: bool | None
    attempted_at: str


@dataclass
class LessonProgressRecord:
    """Lesson progress record from database."""

    student_id: str
    lesson_id: str
    completed: bool
    completed_at: str | None


@dataclass
class StudentModuleRecord:
    """Student module record from database."""

    student_id: str
    module_id: str
    progress: float
    completed_at: str | None

    @property
    def completed(self) -> bool:
        return self.completed_at is not None


# =============================================================================
# QUIZ ATTEMPTS
# =============================================================================


def upsert_quiz_attempt(conn: sqlite3.Connection, attempt: QuizAttemptRecord) -> None:
    """Insert or overwrite the attempt for (student, question)."""
    conn.execute(
        """
        INSERT INTO quiz_attempts (
            student_id, question_id, selected_index, answer_text, is_correct, attempted_at
        ) VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(student_id, question_id) DO UPDATE SET
            selected_index = excluded.selected_index,
            answer_text = excluded.answer_text,
            is_correct = excluded.is_correct,
            attempted_at = excluded.attempted_at
        """,
        (
            attempt.student_id,
            attempt.question_id,
            attempt.selected_index,
            attempt.answer_text,
            None if attempt.is_correct is None else int(attempt.is_correct),
            attempt.attempted_at,
        ),
    )


def get_attempts(
    conn: sqlite3.Connection, student_id: str, question_ids: list[str]
) -> dict[str, QuizAttemptRecord]:
    """A student's attempts for the given questions, keyed by question id."""
    if not question_ids:
        return {}
    placeholders = ",".join("?" for _ in question_ids)
    rows = conn.execute(
        f"SELECT * FROM quiz_attempts WHERE student_id = ? AND question_id IN ({placeholders})",
        (student_id, *question_ids),
    ).fetchall()
    return {row["question_id"]: _row_to_attempt(row) for row in rows}


def list_recent_attempts(
    conn: sqlite3.Connection, student_id: str, limit: int = 5
) -> list[QuizAttemptRecord]:
    """A student's most recent attempts, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM quiz_attempts WHERE student_id = ?
        ORDER BY attempted_at DESC LIMIT ?
        """,
        (student_id, limit),
    ).fetchall()
    return [_row_to_attempt(row) for row in rows]


# =============================================================================
# LESSON PROGRESS
# =============================================================================


def upsert_lesson_progress(
    conn: sqlite3.Connection,
    student_id: str,
    lesson_id: str,
    completed: bool,
    completed_at: str | None,
) -> None:
    """Insert or overwrite the progress row for (student, lesson)."""
    conn.execute(
        """
        INSERT INTO lesson_progress (student_id, lesson_id, completed, completed_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(student_id, lesson_id) DO UPDATE SET
            completed = excluded.completed,
            completed_at = excluded.completed_at
        """,
        (student_id, lesson_id, int(completed), completed_at),
    )
    logger.debug(
        "lesson_progress.upserted",
        student_id=student_id,
        lesson_id=lesson_id,
        completed=completed,
    )


def list_lesson_progress(
    conn: sqlite3.Connection, student_id: str, module_id: str
) -> dict[str, LessonProgressRecord]:
    """A student's progress rows for a module's lessons, keyed by lesson id."""
    rows = conn.execute(
        """
        SELECT p.* FROM lesson_progress p JOIN lessons l ON l.id = p.lesson_id
        WHERE p.student_id = ? AND l.module_id = ?
        """,
        (student_id, module_id),
    ).fetchall()
    return {
        row["lesson_id"]: LessonProgressRecord(
            student_id=row["student_id"],
            lesson_id=row["lesson_id"],
            completed=bool(row["completed"]),
            completed_at=row["completed_at"],
        )
        for row in rows
    }


def count_lessons(conn: sqlite3.Connection, student_id: str, module_id: str) -> tuple[int, int]:
    """(completed lessons, total lessons) of a module for a student."""
    row = conn.execute(
        """
        SELECT COUNT(l.id) AS total,
               COALESCE(SUM(CASE WHEN p.completed = 1 THEN 1 ELSE 0 END), 0) AS done
        FROM lessons l
        LEFT JOIN lesson_progress p ON p.lesson_id = l.id AND p.student_id = ?
        WHERE l.module_id = ?
        """,
        (student_id, module_id),
    ).fetchone()
    return int(row["done"]), int(row["total"])


# =============================================================================
# STUDENT MODULES
# =============================================================================


def get_student_module(
    conn: sqlite3.Connection, student_id: str, module_id: str
) -> StudentModuleRecord | None:
    """Get the (student, module) progress row."""
    row = conn.execute(
        "SELECT * FROM student_modules WHERE student_id = ? AND module_id = ?",
        (student_id, module_id),
    ).fetchone()
    return _row_to_student_module(row) if row else None


def list_student_modules(conn: sqlite3.Connection, student_id: str) -> dict[str, StudentModuleRecord]:
    """All of a student's module rows keyed by module id."""
    rows = conn.execute(
        "SELECT * FROM student_modules WHERE student_id = ?", (student_id,)
    ).fetchall()
    return {row["module_id"]: _row_to_student_module(row) for row in rows}


def list_module_students(conn: sqlite3.Connection, module_id: str) -> list[tuple[StudentModuleRecord, str]]:
    """Every student row for a module with the student's name, by name."""
    rows = conn.execute(
        """
        SELECT sm.*, u.full_name FROM student_modules sm
        JOIN users u ON u.id = sm.student_id
        WHERE sm.module_id = ?
        ORDER BY u.full_name
        """,
        (module_id,),
    ).fetchall()
    return [(_row_to_student_module(row), row["full_name"]) for row in rows]


def upsert_student_module(
    conn: sqlite3.Connection,
    student_id: str,
    module_id: str,
    progress: float,
    completed_at: str | None,
) -> None:
    """Insert or overwrite the (student, module) row."""
    conn.execute(
        """
        INSERT INTO student_modules (student_id, module_id, progress, completed_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(student_id, module_id) DO UPDATE SET
            progress = excluded.progress,
            completed_at = excluded.completed_at
        """,
        (student_id, module_id, progress, completed_at),
    )


def ensure_student_module(conn: sqlite3.Connection, student_id: str, module_id: str) -> bool:
    """Create a zero-progress row unless one exists.

    Returns:
        True if a row was created
    """
    cursor = conn.execute(
        """
        INSERT OR IGNORE INTO student_modules (student_id, module_id, progress, completed_at)
        VALUES (?, ?, 0, NULL)
        """,
        (student_id, module_id),
    )
    return cursor.rowcount > 0


def _row_to_attempt(row: sqlite3.Row) -> QuizAttemptRecord:
    """Convert database row to QuizAttemptRecord."""
    return QuizAttemptRecord(
        student_id=row["student_id"],
        question_id=row["question_id"],
        selected_index=row["selected_index"],
        answer_text=row["answer_text"],
        is_correct=None if row["is_correct"] is None else bool(row["is_correct"]),
        attempted_at=row["attempted_at"],
    )


def _row_to_student_module(row: sqlite3.Row) -> StudentModuleRecord:
    """Convert database row to StudentModuleRecord."""
    return StudentModuleRecord(
        student_id=row["student_id"],
        module_id=row["module_id"],
        progress=float(row["progress"]),
        completed_at=row["completed_at"],
    )
