"""Module authoring.

Responsibilities:
- Validate a module draft (module fields, lessons, quiz questions)
- Create, update and delete modules with their ordered lessons/questions
- Load a module with its lessons and questions in display order

Updates patch in place: lessons and questions carrying an existing id are
updated, those without one are inserted, and existing ones missing from
the draft are deleted. Lesson order follows the draft order.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Literal

import structlog

from aicademy.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from aicademy.core.progress import derive_module_progress
from aicademy.db import modules_repository, progress_repository
from aicademy.db.database import get_db
from aicademy.db.modules_repository import (
    FreeResponseQuestion,
    LessonRecord,
    ModuleRecord,
    MultipleChoiceQuestion,
    QuizQuestion,
)
from aicademy.db.users_repository import UserRecord

logger = structlog.get_logger(__name__)

QuestionType = Literal["multiple_choice", "free_response"]


# =============================================================================
# DRAFTS
# =============================================================================


@dataclass
class QuestionDraft:
    """A quiz question as submitted by the authoring form."""

    question: str
    type: QuestionType = "multiple_choice"
    options: list[str] = field(default_factory=list)
    correct_index: int | None = None
    correct_answer_text: str | None = None
    id: str | None = None

    def to_question(self, lesson_id: str, order_index: int) -> QuizQuestion:
        """Build the typed question variant."""
        if self.type == "multiple_choice":
            return MultipleChoiceQuestion(
                id=self.id or "",
                lesson_id=lesson_id,
                question=self.question.strip(),
                options=[opt.strip() for opt in self.options],
                correct_index=int(self.correct_index or 0),
                order_index=order_index,
            )
        return FreeResponseQuestion(
            id=self.id or "",
            lesson_id=lesson_id,
            question=self.question.strip(),
            correct_answer_text=(self.correct_answer_text or "").strip(),
            order_index=order_index,
        )


@dataclass
class LessonDraft:
    """A lesson as submitted by the authoring form."""

    title: str
    content: str
    questions: list[QuestionDraft] = field(default_factory=list)
    id: str | None = None


@dataclass
class ModuleDraft:
    """A whole module as submitted by the authoring form."""

    title: str
    subject: str
    description: str
    status: Literal["draft", "published"] = "draft"
    lessons: list[LessonDraft] = field(default_factory=list)


@dataclass
class LessonDetail:
    lesson: LessonRecord
    questions: list[QuizQuestion]


@dataclass
class ModuleDetail:
    module: ModuleRecord
    lessons: list[LessonDetail]

    @property
    def question_count(self) -> int:
        return sum(len(lesson.questions) for lesson in self.lessons)


def validate_module_draft(draft: ModuleDraft) -> None:
    """Check a draft before any write.

    Raises:
        ValidationError: First problem found, in form order
    """
    if not draft.title.strip() or not draft.subject.strip() or not draft.description.strip():
        raise ValidationError("Module title, subject, and description are required.")
    if draft.status not in ("draft", "published"):
        raise ValidationError(f"Invalid status: {draft.status}")

    for lesson in draft.lessons:
        if not lesson.title.strip() or not lesson.content.strip():
            raise ValidationError("Each lesson must have a title and content.")
        for question in lesson.questions:
            if not question.question.strip():
                raise ValidationError("Each quiz question must have a question text.")
            if question.type == "multiple_choice":
                if not question.options or not all(opt.strip() for opt in question.options):
                    raise ValidationError(
                        "All answer options must be filled for each multiple choice question."
                    )
                if (
                    not isinstance(question.correct_index, int)
                    or question.correct_index < 0
                    or question.correct_index >= len(question.options)
                ):
                    raise ValidationError(
                        "A correct answer must be selected for each multiple choice question."
                    )
            elif question.type == "free_response":
                if not (question.correct_answer_text or "").strip():
                    raise ValidationError(
                        "A correct answer must be provided for each free response question."
                    )
            else:
                raise ValidationError(f"Invalid question type: {question.type}")


# =============================================================================
# OPERATIONS
# =============================================================================


def _require_teacher(user: UserRecord) -> None:
    if not user.is_teacher:
        raise PermissionDeniedError("Only teachers can author modules.")


def get_owned_module(conn: sqlite3.Connection, teacher: UserRecord, module_id: str) -> ModuleRecord:
    """Load a module that belongs to the teacher.

    Raises:
        NotFoundError: Unknown module or owned by another teacher
    """
    module = modules_repository.get_module(conn, module_id)
    if module is None or module.teacher_id != teacher.id:
        raise NotFoundError("Module not found.")
    return module


def create_module(teacher: UserRecord, draft: ModuleDraft) -> ModuleDetail:
    """Create a module with its lessons and questions."""
    _require_teacher(teacher)
    validate_module_draft(draft)

    with get_db() as conn:
        module = modules_repository.insert_module(
            conn,
            title=draft.title.strip(),
            subject=draft.subject.strip(),
            description=draft.description.strip(),
            teacher_id=teacher.id,
            status=draft.status,
        )
        for order_index, lesson_draft in enumerate(draft.lessons):
            lesson = modules_repository.insert_lesson(
                conn,
                module.id,
                lesson_draft.title.strip(),
                lesson_draft.content,
                order_index,
            )
            for q_index, question_draft in enumerate(lesson_draft.questions):
                modules_repository.insert_question(
                    conn, lesson.id, question_draft.to_question(lesson.id, q_index)
                )
        detail = _load_detail(conn, module)

    logger.info(
        "modules.created",
        module_id=module.id,
        lessons=len(detail.lessons),
        questions=detail.question_count,
        status=module.status,
    )
    return detail


def update_module(teacher: UserRecord, module_id: str, draft: ModuleDraft) -> ModuleDetail:
    """Patch a module to match the draft.

    Progress of students already tracking the module is re-derived, since
    lessons may have been added or removed.
    """
    _require_teacher(teacher)
    validate_module_draft(draft)

    with get_db() as conn:
        get_owned_module(conn, teacher, module_id)
        modules_repository.update_module(
            conn,
            module_id,
            title=draft.title.strip(),
            subject=draft.subject.strip(),
            description=draft.description.strip(),
            status=draft.status,
        )

        existing_lessons = {l.id: l for l in modules_repository.list_lessons(conn, module_id)}
        kept_lessons: set[str] = set()

        for order_index, lesson_draft in enumerate(draft.lessons):
            if lesson_draft.id and lesson_draft.id in existing_lessons:
                lesson_id = lesson_draft.id
                modules_repository.update_lesson(
                    conn, lesson_id, lesson_draft.title.strip(), lesson_draft.content, order_index
                )
            else:
                lesson_id = modules_repository.insert_lesson(
                    conn, module_id, lesson_draft.title.strip(), lesson_draft.content, order_index
                ).id
            kept_lessons.add(lesson_id)
            _patch_questions(conn, lesson_id, lesson_draft.questions)

        for lesson_id in set(existing_lessons) - kept_lessons:
            modules_repository.delete_lesson(conn, lesson_id)

        for student_module, _ in progress_repository.list_module_students(conn, module_id):
            derive_module_progress(conn, student_module.student_id, module_id)

        module = modules_repository.get_module(conn, module_id)
        detail = _load_detail(conn, module)

    logger.info(
        "modules.updated",
        module_id=module_id,
        lessons=len(detail.lessons),
        removed_lessons=len(set(existing_lessons) - kept_lessons),
    )
    return detail


def _patch_questions(conn: sqlite3.Connection, lesson_id: str, drafts: list[QuestionDraft]) -> None:
    existing = {q.id for q in modules_repository.list_questions(conn, lesson_id)}
    kept: set[str] = set()
    for order_index, draft in enumerate(drafts):
        question = draft.to_question(lesson_id, order_index)
        if draft.id and draft.id in existing:
            modules_repository.update_question(conn, draft.id, question)
            kept.add(draft.id)
        else:
            kept.add(modules_repository.insert_question(conn, lesson_id, question))
    for question_id in existing - kept:
        modules_repository.delete_question(conn, question_id)


def delete_module(teacher: UserRecord, module_id: str) -> None:
    """Delete a module with everything hanging off it."""
    _require_teacher(teacher)
    with get_db() as conn:
        get_owned_module(conn, teacher, module_id)
        modules_repository.delete_module(conn, module_id)
    logger.info("modules.deleted", module_id=module_id, teacher_id=teacher.id)


def get_module_detail(teacher: UserRecord, module_id: str) -> ModuleDetail:
    """A teacher's module with lessons and questions in order."""
    _require_teacher(teacher)
    with get_db() as conn:
        module = get_owned_module(conn, teacher, module_id)
        return _load_detail(conn, module)


def list_teacher_modules(teacher: UserRecord) -> list[ModuleRecord]:
    """A teacher's modules, newest first."""
    _require_teacher(teacher)
    with get_db() as conn:
        return modules_repository.list_modules_by_teacher(conn, teacher.id)


def load_module_detail(conn: sqlite3.Connection, module: ModuleRecord) -> ModuleDetail:
    """Module with ordered lessons and questions (no ownership check)."""
    return _load_detail(conn, module)


def _load_detail(conn: sqlite3.Connection, module: ModuleRecord) -> ModuleDetail:
    questions = modules_repository.list_questions_for_module(conn, module.id)
    return ModuleDetail(
        module=module,
        lessons=[
            LessonDetail(lesson=lesson, questions=questions.get(lesson.id, []))
            for lesson in modules_repository.list_lessons(conn, module.id)
        ],
    )
