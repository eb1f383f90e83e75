"""Student endpoints: assigned modules, module view and quiz submission."""

from typing import Literal

from fastapi import APIRouter, Depends, Query

from aicademy.core import dashboards, progress
from aicademy.core.dashboards import StudentModuleSummary, StudentQuestionView
from aicademy.core.progress import SubmissionResult
from aicademy.db.modules_repository import MultipleChoiceQuestion
from aicademy.db.users_repository import UserRecord
from aicademy.web.deps import require_student
from aicademy.web.schemas import (
    ModuleResponse,
    QuestionResultResponse,
    QuizSubmission,
    StudentLessonResponse,
    StudentModuleListResponse,
    StudentModuleSummaryResponse,
    StudentModuleViewResponse,
    StudentQuestionResponse,
    SubmissionResponse,
)

router = APIRouter(prefix="/api/student", tags=["student"])


def _summary_response(summary: StudentModuleSummary) -> StudentModuleSummaryResponse:
    return StudentModuleSummaryResponse(
        module=ModuleResponse.model_validate(summary.module),
        progress=summary.progress,
        completed=summary.completed,
        completed_at=summary.completed_at,
        due_date=summary.due_date,
    )


def _question_response(view: StudentQuestionView) -> StudentQuestionResponse:
    question = view.question
    response = StudentQuestionResponse(
        id=question.id,
        type=question.type,
        question=question.question,
        state=view.state.value,
    )
    if isinstance(question, MultipleChoiceQuestion):
        response.options = list(question.options)
    if view.attempt is not None:
        response.selected_index = view.attempt.selected_index
        response.answer_text = view.attempt.answer_text
    if view.reveal_answer:
        if isinstance(question, MultipleChoiceQuestion):
            response.correct_index = question.correct_index
        else:
            response.correct_answer_text = question.correct_answer_text
    return response


def _submission_response(result: SubmissionResult) -> SubmissionResponse:
    return SubmissionResponse(
        lesson_id=result.lesson_id,
        module_id=result.module_id,
        lesson_completed=result.lesson_completed,
        module_progress=result.module_progress,
        module_completed=result.module_completed,
        correct_count=result.correct_count,
        results=[
            QuestionResultResponse(question_id=r.question_id, is_correct=r.is_correct)
            for r in result.results
        ],
    )


@router.get("/modules", response_model=StudentModuleListResponse)
def list_modules(
    status: Literal["completed", "in_progress"] | None = Query(default=None),
    search: str | None = Query(default=None),
    student: UserRecord = Depends(require_student),
) -> StudentModuleListResponse:
    """Assigned modules with progress, optionally filtered."""
    summaries = dashboards.list_student_modules(student, status=status, search=search)
    return StudentModuleListResponse(
        modules=[_summary_response(s) for s in summaries],
        count=len(summaries),
    )


@router.get("/modules/completed", response_model=StudentModuleListResponse)
def completed_modules(student: UserRecord = Depends(require_student)) -> StudentModuleListResponse:
    summaries = dashboards.list_completed_modules(student)
    return StudentModuleListResponse(
        modules=[_summary_response(s) for s in summaries],
        count=len(summaries),
    )


@router.get("/modules/{module_id}", response_model=StudentModuleViewResponse)
def module_view(
    module_id: str, student: UserRecord = Depends(require_student)
) -> StudentModuleViewResponse:
    """A module with lesson completion and quiz states."""
    view = dashboards.get_student_module_view(student, module_id)
    return StudentModuleViewResponse(
        module=ModuleResponse.model_validate(view.module),
        progress=view.progress,
        completed_at=view.completed_at,
        answered_questions=view.answered_questions,
        total_questions=view.total_questions,
        lessons=[
            StudentLessonResponse(
                id=lesson.lesson.id,
                title=lesson.lesson.title,
                content=lesson.lesson.content,
                order_index=lesson.lesson.order_index,
                completed=lesson.completed,
                questions=[_question_response(q) for q in lesson.questions],
            )
            for lesson in view.lessons
        ],
    )


@router.post("/lessons/{lesson_id}/quiz", response_model=SubmissionResponse)
def submit_quiz(
    lesson_id: str, body: QuizSubmission, student: UserRecord = Depends(require_student)
) -> SubmissionResponse:
    """Submit answers for every question of a lesson."""
    return _submission_response(progress.submit_lesson_quiz(student, lesson_id, body.answers))


@router.post("/lessons/{lesson_id}/complete", response_model=SubmissionResponse)
def complete_lesson(
    lesson_id: str, student: UserRecord = Depends(require_student)
) -> SubmissionResponse:
    """Mark a lesson without a quiz as read."""
    return _submission_response(progress.complete_reading_lesson(student, lesson_id))
