"""Quiz submission and completion tracking.

Responsibilities:
- Record a student's quiz answers for a lesson (one attempt per question)
- Mark the lesson complete when every multiple-choice answer is correct
- Derive the student's module progress from lesson progress

Module progress has a single source: derive_module_progress() recomputes
it from lesson_progress rows and is called inside the same transaction as
every lesson_progress write, so the two tables never disagree.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

import structlog

from aicademy.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from aicademy.core.quiz import (
    Answer,
    choice_in_range,
    grade_answer,
    is_answered,
    lesson_passed,
    normalize_choice,
    normalize_text,
)
from aicademy.db import (
    assignments_repository,
    classes_repository,
    modules_repository,
    progress_repository,
)
from aicademy.db.database import get_db, utc_now
from aicademy.db.modules_repository import LessonRecord, ModuleRecord, MultipleChoiceQuestion
from aicademy.db.progress_repository import QuizAttemptRecord, StudentModuleRecord
from aicademy.db.users_repository import UserRecord

logger = structlog.get_logger(__name__)


@dataclass
class QuestionResult:
    """Grading outcome for one question."""

    question_id: str
    is_correct: bool


@dataclass
class SubmissionResult:
    """Outcome of a lesson quiz submission."""

    lesson_id: str
    module_id: str
    lesson_completed: bool
    module_progress: float
    module_completed: bool
    results: list[QuestionResult] = field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.results if r.is_correct)


# =============================================================================
# DERIVATION
# =============================================================================


def derive_module_progress(
    conn: sqlite3.Connection, student_id: str, module_id: str
) -> StudentModuleRecord:
    """Recompute and store a student's progress in a module.

    progress = completed lessons / lessons. completed_at is set when
    progress reaches 1 (an earlier completion time is kept) and cleared
    otherwise.
    """
    done, total = progress_repository.count_lessons(conn, student_id, module_id)
    progress = done / total if total else 0.0

    existing = progress_repository.get_student_module(conn, student_id, module_id)
    if progress >= 1.0:
        completed_at = existing.completed_at if existing and existing.completed_at else utc_now()
    else:
        completed_at = None

    progress_repository.upsert_student_module(conn, student_id, module_id, progress, completed_at)

    if completed_at and not (existing and existing.completed_at):
        logger.info("progress.module_completed", student_id=student_id, module_id=module_id)

    return StudentModuleRecord(
        student_id=student_id,
        module_id=module_id,
        progress=progress,
        completed_at=completed_at,
    )


# =============================================================================
# ACCESS
# =============================================================================


def can_access_module(conn: sqlite3.Connection, student_id: str, module: ModuleRecord) -> bool:
    """A student sees a published module assigned to them (directly or via an
    approved class) or one they already track."""
    if module.status != "published":
        return False
    if progress_repository.get_student_module(conn, student_id, module.id) is not None:
        return True
    class_ids = classes_repository.list_approved_class_ids(conn, student_id)
    return any(
        a.module_id == module.id
        for a in assignments_repository.list_assignments_for_student(conn, student_id, class_ids)
    )


def _load_student_lesson(
    conn: sqlite3.Connection, student: UserRecord, lesson_id: str
) -> tuple[LessonRecord, ModuleRecord]:
    if not student.is_student:
        raise PermissionDeniedError("Only students can submit quizzes.")
    lesson = modules_repository.get_lesson(conn, lesson_id)
    module = modules_repository.get_module(conn, lesson.module_id) if lesson else None
    if lesson is None or module is None or not can_access_module(conn, student.id, module):
        raise NotFoundError("Lesson not found.")
    return lesson, module


# =============================================================================
# SUBMISSION
# =============================================================================


def submit_lesson_quiz(
    student: UserRecord,
    lesson_id: str,
    answers: dict[str, Answer],
) -> SubmissionResult:
    """Grade and record a student's answers for a lesson's quiz.

    Nothing is written unless every question has a non-empty answer.
    A resubmission overwrites the previous attempts.

    Args:
        student: Submitting student
        lesson_id: Lesson whose quiz is answered
        answers: question_id -> option index (multiple choice) or text

    Raises:
        ValidationError: Missing answers, unknown questions or no quiz
        NotFoundError: Lesson unknown or not visible to the student
    """
    with get_db() as conn:
        lesson, module = _load_student_lesson(conn, student, lesson_id)
        questions = modules_repository.list_questions(conn, lesson_id)

        if not questions:
            raise ValidationError("This lesson has no quiz.")

        known_ids = {q.id for q in questions}
        unknown = [qid for qid in answers if qid not in known_ids]
        if unknown:
            raise ValidationError(f"Unknown question: {unknown[0]}")

        if not all(is_answered(q, answers.get(q.id)) for q in questions):
            raise ValidationError("Please answer every question before submitting.")

        for question in questions:
            if isinstance(question, MultipleChoiceQuestion) and not choice_in_range(
                question, answers[question.id]
            ):
                raise ValidationError(f"Invalid option for question: {question.id}")

        attempted_at = utc_now()
        results: list[QuestionResult] = []
        for question in questions:
            answer = answers[question.id]
            is_correct = grade_answer(question, answer)
            if isinstance(question, MultipleChoiceQuestion):
                selected_index, answer_text = normalize_choice(answer), None
            else:
                selected_index, answer_text = None, normalize_text(answer)
            progress_repository.upsert_quiz_attempt(
                conn,
                QuizAttemptRecord(
                    student_id=student.id,
                    question_id=question.id,
                    selected_index=selected_index,
                    answer_text=answer_text,
                    is_correct=is_correct,
                    attempted_at=attempted_at,
                ),
            )
            results.append(QuestionResult(question_id=question.id, is_correct=is_correct))

        completed = lesson_passed(questions, answers)
        progress_repository.upsert_lesson_progress(
            conn,
            student.id,
            lesson.id,
            completed=completed,
            completed_at=attempted_at if completed else None,
        )
        module_row = derive_module_progress(conn, student.id, module.id)

    result = SubmissionResult(
        lesson_id=lesson.id,
        module_id=module.id,
        lesson_completed=completed,
        module_progress=module_row.progress,
        module_completed=module_row.completed,
        results=results,
    )
    logger.info(
        "progress.quiz_submitted",
        student_id=student.id,
        lesson_id=lesson.id,
        correct=result.correct_count,
        total=len(results),
        lesson_completed=completed,
        module_progress=module_row.progress,
    )
    return result


def complete_reading_lesson(student: UserRecord, lesson_id: str) -> SubmissionResult:
    """Mark a lesson without a quiz as completed.

    Raises:
        ValidationError: The lesson has a quiz (it must be submitted instead)
    """
    with get_db() as conn:
        lesson, module = _load_student_lesson(conn, student, lesson_id)
        if modules_repository.list_questions(conn, lesson_id):
            raise ValidationError("This lesson has a quiz. Submit the quiz to complete it.")

        progress_repository.upsert_lesson_progress(
            conn, student.id, lesson.id, completed=True, completed_at=utc_now()
        )
        module_row = derive_module_progress(conn, student.id, module.id)

    logger.info("progress.lesson_read", student_id=student.id, lesson_id=lesson.id)
    return SubmissionResult(
        lesson_id=lesson.id,
        module_id=module.id,
        lesson_completed=True,
        module_progress=module_row.progress,
        module_completed=module_row.completed,
    )
