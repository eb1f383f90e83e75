"""Repository functions for modules, lessons and quiz_questions tables.

Quiz question rows are converted into one of two variants:
- MultipleChoiceQuestion: options + correct_index
- FreeResponseQuestion: correct_answer_text
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from typing import Literal, Union

import structlog

from aicademy.db.database import new_id, utc_now

logger = structlog.get_logger(__name__)

ModuleStatus = Literal["draft", "published"]


# =============================================================================
# RECORDS
# =============================================================================


@dataclass
class ModuleRecord:
    """Module record from database."""

    id: str
    title: str
    subject: str
    description: str
    teacher_id: str
    status: ModuleStatus
    created_at: str
    updated_at: str | None = None


@dataclass
class LessonRecord:
    """Lesson record from database."""

    id: str
    module_id: str
    title: str
    content: str
    order_index: int


@dataclass
class MultipleChoiceQuestion:
    """A question answered by picking one option."""

    id: str
    lesson_id: str
    question: str
    options: list[str]
    correct_index: int
    order_index: int = 0
    type: Literal["multiple_choice"] = field(default="multiple_choice", init=False)


@dataclass
class FreeResponseQuestion:
    """A question answered with free text."""

    id: str
    lesson_id: str
    question: str
    correct_answer_text: str
    order_index: int = 0
    type: Literal["free_response"] = field(default="free_response", init=False)


QuizQuestion = Union[MultipleChoiceQuestion, FreeResponseQuestion]


# =============================================================================
# MODULES
# =============================================================================


def insert_module(
    conn: sqlite3.Connection,
    title: str,
    subject: str,
    description: str,
    teacher_id: str,
    status: ModuleStatus = "draft",
) -> ModuleRecord:
    """Insert a new module."""
    record = ModuleRecord(
        id=new_id(),
        title=title,
        subject=subject,
        description=description,
        teacher_id=teacher_id,
        status=status,
        created_at=utc_now(),
    )
    conn.execute(
        """
        INSERT INTO modules (id, title, subject, description, teacher_id, status, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            record.id,
            title,
            subject,
            description,
            teacher_id,
            status,
            record.created_at,
        ),
    )
    logger.debug("modules.inserted", module_id=record.id)
    return record


def update_module(
    conn: sqlite3.Connection,
    module_id: str,
    title: str,
    subject: str,
    description: str,
    status: ModuleStatus,
) -> None:
    """Update module fields.

    Raises:
        ValueError: If module_id doesn't exist
    """
    cursor = conn.execute(
        """
        UPDATE modules SET title = ?, subject = ?, description = ?, status = ?, updated_at = ?
        WHERE id = ?
        """,
        (title, subject, description, status, utc_now(), module_id),
    )
    if cursor.rowcount == 0:
        raise ValueError(f"Module not found: {module_id}")
    logger.debug("modules.updated", module_id=module_id)


def get_module(conn: sqlite3.Connection, module_id: str) -> ModuleRecord | None:
    """Get module by ID."""
    row = conn.execute("SELECT * FROM modules WHERE id = ?", (module_id,)).fetchone()
    return _row_to_module(row) if row else None


def list_modules_by_teacher(conn: sqlite3.Connection, teacher_id: str) -> list[ModuleRecord]:
    """List a teacher's modules, newest first."""
    rows = conn.execute(
        "SELECT * FROM modules WHERE teacher_id = ? ORDER BY created_at DESC",
        (teacher_id,),
    ).fetchall()
    return [_row_to_module(row) for row in rows]


def list_modules_by_ids(
    conn: sqlite3.Connection,
    module_ids: list[str],
    status: ModuleStatus | None = None,
) -> list[ModuleRecord]:
    """List modules by ID, optionally filtered by status, ordered by title."""
    if not module_ids:
        return []
    placeholders = ",".join("?" for _ in module_ids)
    sql = f"SELECT * FROM modules WHERE id IN ({placeholders})"
    params: list[str] = list(module_ids)
    if status is not None:
        sql += " AND status = ?"
        params.append(status)
    sql += " ORDER BY title"
    rows = conn.execute(sql, tuple(params)).fetchall()
    return [_row_to_module(row) for row in rows]


def delete_module(conn: sqlite3.Connection, module_id: str) -> bool:
    """Delete module by ID (cascades to lessons, questions, assignments)."""
    cursor = conn.execute("DELETE FROM modules WHERE id = ?", (module_id,))
    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("modules.deleted", module_id=module_id)
    return deleted


# =============================================================================
# LESSONS
# =============================================================================


def insert_lesson(
    conn: sqlite3.Connection,
    module_id: str,
    title: str,
    content: str,
    order_index: int,
) -> LessonRecord:
    """Insert a lesson at the given position."""
    record = LessonRecord(
        id=new_id(),
        module_id=module_id,
        title=title,
        content=content,
        order_index=order_index,
    )
    conn.execute(
        "INSERT INTO lessons (id, module_id, title, content, order_index) VALUES (?, ?, ?, ?, ?)",
        (record.id, module_id, title, content, order_index),
    )
    return record


def update_lesson(
    conn: sqlite3.Connection,
    lesson_id: str,
    title: str,
    content: str,
    order_index: int,
) -> None:
    """Update a lesson in place."""
    conn.execute(
        "UPDATE lessons SET title = ?, content = ?, order_index = ? WHERE id = ?",
        (title, content, order_index, lesson_id),
    )


def delete_lesson(conn: sqlite3.Connection, lesson_id: str) -> None:
    """Delete a lesson (cascades to its questions)."""
    conn.execute("DELETE FROM lessons WHERE id = ?", (lesson_id,))


def get_lesson(conn: sqlite3.Connection, lesson_id: str) -> LessonRecord | None:
    """Get lesson by ID."""
    row = conn.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,)).fetchone()
    return _row_to_lesson(row) if row else None


def list_lessons(conn: sqlite3.Connection, module_id: str) -> list[LessonRecord]:
    """List a module's lessons ordered by order_index."""
    rows = conn.execute(
        "SELECT * FROM lessons WHERE module_id = ? ORDER BY order_index",
        (module_id,),
    ).fetchall()
    return [_row_to_lesson(row) for row in rows]


# =============================================================================
# QUIZ QUESTIONS
# =============================================================================


def insert_question(
    conn: sqlite3.Connection,
    lesson_id: str,
    question: QuizQuestion,
) -> str:
    """Insert a quiz question. The question's own id is ignored.

    Returns:
        The new question id
    """
    question_id = new_id()
    conn.execute(
        """
        INSERT INTO quiz_questions (
            id, lesson_id, question, type, options,
            correct_index, correct_answer_text, order_index
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (question_id, lesson_id, *_question_columns(question)),
    )
    return question_id


def update_question(conn: sqlite3.Connection, question_id: str, question: QuizQuestion) -> None:
    """Update a quiz question in place (variant may change)."""
    conn.execute(
        """
        UPDATE quiz_questions SET
            question = ?, type = ?, options = ?,
            correct_index = ?, correct_answer_text = ?, order_index = ?
        WHERE id = ?
        """,
        (*_question_columns(question), question_id),
    )


def delete_question(conn: sqlite3.Connection, question_id: str) -> None:
    """Delete a quiz question."""
    conn.execute("DELETE FROM quiz_questions WHERE id = ?", (question_id,))


def list_questions(conn: sqlite3.Connection, lesson_id: str) -> list[QuizQuestion]:
    """List a lesson's questions in order."""
    rows = conn.execute(
        "SELECT * FROM quiz_questions WHERE lesson_id = ? ORDER BY order_index, rowid",
        (lesson_id,),
    ).fetchall()
    return [_row_to_question(row) for row in rows]


def list_questions_for_module(conn: sqlite3.Connection, module_id: str) -> dict[str, list[QuizQuestion]]:
    """All questions of a module keyed by lesson id."""
    rows = conn.execute(
        """
        SELECT q.* FROM quiz_questions q JOIN lessons l ON l.id = q.lesson_id
        WHERE l.module_id = ?
        ORDER BY l.order_index, q.order_index, q.rowid
        """,
        (module_id,),
    ).fetchall()
    result: dict[str, list[QuizQuestion]] = {}
    for row in rows:
        result.setdefault(row["lesson_id"], []).append(_row_to_question(row))
    return result


def _question_columns(question: QuizQuestion) -> tuple:
    """Column values (question..order_index) for a question variant."""
    if isinstance(question, MultipleChoiceQuestion):
        return (
            question.question,
            "multiple_choice",
            json.dumps(question.options),
            question.correct_index,
            None,
            question.order_index,
        )
    return (
        question.question,
        "free_response",
        None,
        None,
        question.correct_answer_text,
        question.order_index,
    )


def _row_to_question(row: sqlite3.Row) -> QuizQuestion:
    """Convert database row to the matching question variant."""
    if row["type"] == "multiple_choice":
        return MultipleChoiceQuestion(
            id=row["id"],
            lesson_id=row["lesson_id"],
            question=row["question"],
            options=json.loads(row["options"]) if row["options"] else [],
            correct_index=row["correct_index"],
            order_index=row["order_index"],
        )
    return FreeResponseQuestion(
        id=row["id"],
        lesson_id=row["lesson_id"],
        question=row["question"],
        correct_answer_text=row["correct_answer_text"] or "",
        order_index=row["order_index"],
    )


def _row_to_module(row: sqlite3.Row) -> ModuleRecord:
    """Convert database row to ModuleRecord."""
    return ModuleRecord(
        id=row["id"],
        title=row["title"],
        subject=row["subject"],
        description=row["description"],
        teacher_id=row["teacher_id"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_lesson(row: sqlite3.Row) -> LessonRecord:
    """Convert database row to LessonRecord."""
    return LessonRecord(
        id=row["id"],
        module_id=row["module_id"],
        title=row["title"],
        content=row["content"],
        order_index=row["order_index"],
    )
