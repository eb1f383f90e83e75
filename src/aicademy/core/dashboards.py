"""Read models for student and teacher pages.

Everything here is computed per request from the tables; nothing is
cached between requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from aicademy.core.errors import NotFoundError, PermissionDeniedError
from aicademy.core.modules import get_owned_module, load_module_detail
from aicademy.core.progress import can_access_module
from aicademy.core.quiz import QuestionState, attempt_is_answered, question_state
from aicademy.db import (
    assignments_repository,
    classes_repository,
    modules_repository,
    progress_repository,
)
from aicademy.db.database import get_db
from aicademy.db.modules_repository import LessonRecord, ModuleRecord, QuizQuestion
from aicademy.db.progress_repository import QuizAttemptRecord
from aicademy.db.users_repository import UserRecord

logger = structlog.get_logger(__name__)


@dataclass
class StudentModuleSummary:
    """A module in a student's list."""

    module: ModuleRecord
    progress: float
    completed_at: str | None
    due_date: str | None

    @property
    def completed(self) -> bool:
        return self.completed_at is not None

    @property
    def status(self) -> str:
        return "completed" if self.completed else "in_progress"


@dataclass
class StudentQuestionView:
    question: QuizQuestion
    attempt: QuizAttemptRecord | None
    state: QuestionState

    @property
    def reveal_answer(self) -> bool:
        """Correct answers are shown only once the question was attempted."""
        return self.attempt is not None


@dataclass
class StudentLessonView:
    lesson: LessonRecord
    completed: bool
    questions: list[StudentQuestionView] = field(default_factory=list)


@dataclass
class StudentModuleView:
    module: ModuleRecord
    progress: float
    completed_at: str | None
    lessons: list[StudentLessonView] = field(default_factory=list)

    @property
    def total_questions(self) -> int:
        return sum(len(l.questions) for l in self.lessons)

    @property
    def answered_questions(self) -> int:
        return sum(
            1
            for l in self.lessons
            for q in l.questions
            if attempt_is_answered(q.question, q.attempt)
        )


@dataclass
class ModuleProgressRow:
    """One student's standing in a module (teacher view)."""

    student_id: str
    student_name: str
    progress: float
    completed_at: str | None


def _require_student(user: UserRecord) -> None:
    if not user.is_student:
        raise PermissionDeniedError("Only students have a module list.")


# =============================================================================
# STUDENT
# =============================================================================


def list_student_modules(
    student: UserRecord,
    status: str | None = None,
    search: str | None = None,
) -> list[StudentModuleSummary]:
    """Published modules assigned to (or tracked by) a student.

    Args:
        student: The student
        status: "completed" or "in_progress" to filter, None for all
        search: Case-insensitive filter on title, subject and description

    Returns:
        Summaries sorted: in progress first, then by due date, then title
    """
    _require_student(student)

    with get_db() as conn:
        class_ids = classes_repository.list_approved_class_ids(conn, student.id)
        assignments = assignments_repository.list_assignments_for_student(conn, student.id, class_ids)
        tracked = progress_repository.list_student_modules(conn, student.id)

        due_dates: dict[str, str | None] = {}
        for assignment in assignments:
            current = due_dates.get(assignment.module_id)
            if assignment.due_date and (current is None or assignment.due_date < current):
                due_dates[assignment.module_id] = assignment.due_date
            else:
                due_dates.setdefault(assignment.module_id, current)

        module_ids = sorted(set(due_dates) | set(tracked))
        modules = modules_repository.list_modules_by_ids(conn, module_ids, status="published")

    summaries = []
    for module in modules:
        row = tracked.get(module.id)
        summaries.append(
            StudentModuleSummary(
                module=module,
                progress=row.progress if row else 0.0,
                completed_at=row.completed_at if row else None,
                due_date=due_dates.get(module.id),
            )
        )

    if status is not None:
        summaries = [s for s in summaries if s.status == status]
    if search and search.strip():
        needle = search.strip().lower()
        summaries = [
            s
            for s in summaries
            if needle in s.module.title.lower()
            or needle in s.module.subject.lower()
            or needle in s.module.description.lower()
        ]

    summaries.sort(
        key=lambda s: (s.completed, s.due_date is None, s.due_date or "", s.module.title.lower())
    )
    return summaries


def list_completed_modules(student: UserRecord) -> list[StudentModuleSummary]:
    """A student's completed modules, most recently completed first."""
    completed = list_student_modules(student, status="completed")
    completed.sort(key=lambda s: s.completed_at or "", reverse=True)
    return completed


def get_student_module_view(student: UserRecord, module_id: str) -> StudentModuleView:
    """A module with the student's lesson completion and quiz attempts.

    Raises:
        NotFoundError: Module unknown or not visible to the student
    """
    _require_student(student)

    with get_db() as conn:
        module = modules_repository.get_module(conn, module_id)
        if module is None or not can_access_module(conn, student.id, module):
            raise NotFoundError("Module not found.")

        detail = load_module_detail(conn, module)
        question_ids = [q.id for l in detail.lessons for q in l.questions]
        attempts = progress_repository.get_attempts(conn, student.id, question_ids)
        lesson_rows = progress_repository.list_lesson_progress(conn, student.id, module_id)
        tracked = progress_repository.get_student_module(conn, student.id, module_id)

    view = StudentModuleView(
        module=module,
        progress=tracked.progress if tracked else 0.0,
        completed_at=tracked.completed_at if tracked else None,
    )
    for lesson_detail in detail.lessons:
        lesson_row = lesson_rows.get(lesson_detail.lesson.id)
        view.lessons.append(
            StudentLessonView(
                lesson=lesson_detail.lesson,
                completed=bool(lesson_row and lesson_row.completed),
                questions=[
                    StudentQuestionView(
                        question=q,
                        attempt=attempts.get(q.id),
                        state=question_state(q, attempts.get(q.id)),
                    )
                    for q in lesson_detail.questions
                ],
            )
        )
    return view


# =============================================================================
# TEACHER
# =============================================================================


def module_progress_report(teacher: UserRecord, module_id: str) -> list[ModuleProgressRow]:
    """Every student tracking one of the teacher's modules, by name."""
    if not teacher.is_teacher:
        raise PermissionDeniedError("Only teachers can view progress reports.")

    with get_db() as conn:
        get_owned_module(conn, teacher, module_id)
        rows = progress_repository.list_module_students(conn, module_id)

    return [
        ModuleProgressRow(
            student_id=row.student_id,
            student_name=name,
            progress=row.progress,
            completed_at=row.completed_at,
        )
        for row, name in rows
    ]
