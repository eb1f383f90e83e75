"""Module authoring, assignment and progress-report endpoints (teachers)."""

from fastapi import APIRouter, Depends, status

from aicademy.core import assignments, dashboards, modules
from aicademy.core.modules import LessonDraft, ModuleDetail, ModuleDraft, QuestionDraft
from aicademy.db.modules_repository import MultipleChoiceQuestion, QuizQuestion
from aicademy.db.users_repository import UserRecord
from aicademy.web.deps import require_teacher
from aicademy.web.schemas import (
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentsInput,
    FreeResponseQuestionResponse,
    LessonResponse,
    ModuleDetailResponse,
    ModuleInput,
    ModuleListResponse,
    ModuleResponse,
    MultipleChoiceQuestionResponse,
    ProgressReportResponse,
    ProgressRowResponse,
    QuestionResponse,
)

router = APIRouter(prefix="/api/modules", tags=["modules"])


def _to_draft(body: ModuleInput) -> ModuleDraft:
    return ModuleDraft(
        title=body.title,
        subject=body.subject,
        description=body.description,
        status=body.status,
        lessons=[
            LessonDraft(
                id=lesson.id,
                title=lesson.title,
                content=lesson.content,
                questions=[
                    QuestionDraft(
                        id=q.id,
                        question=q.question,
                        type=q.type,
                        options=list(q.options),
                        correct_index=q.correct_index,
                        correct_answer_text=q.correct_answer_text,
                    )
                    for q in lesson.questions
                ],
            )
            for lesson in body.lessons
        ],
    )


def question_response(question: QuizQuestion) -> QuestionResponse:
    if isinstance(question, MultipleChoiceQuestion):
        return MultipleChoiceQuestionResponse.model_validate(question)
    return FreeResponseQuestionResponse.model_validate(question)


def _detail_response(detail: ModuleDetail) -> ModuleDetailResponse:
    return ModuleDetailResponse(
        module=ModuleResponse.model_validate(detail.module),
        lessons=[
            LessonResponse(
                id=item.lesson.id,
                title=item.lesson.title,
                content=item.lesson.content,
                order_index=item.lesson.order_index,
                questions=[question_response(q) for q in item.questions],
            )
            for item in detail.lessons
        ],
    )


@router.get("", response_model=ModuleListResponse)
def list_modules(teacher: UserRecord = Depends(require_teacher)) -> ModuleListResponse:
    """The teacher's modules, newest first."""
    records = modules.list_teacher_modules(teacher)
    return ModuleListResponse(
        modules=[ModuleResponse.model_validate(m) for m in records],
        count=len(records),
    )


@router.post("", response_model=ModuleDetailResponse, status_code=status.HTTP_201_CREATED)
def create_module(
    body: ModuleInput, teacher: UserRecord = Depends(require_teacher)
) -> ModuleDetailResponse:
    return _detail_response(modules.create_module(teacher, _to_draft(body)))


@router.get("/{module_id}", response_model=ModuleDetailResponse)
def get_module(module_id: str, teacher: UserRecord = Depends(require_teacher)) -> ModuleDetailResponse:
    return _detail_response(modules.get_module_detail(teacher, module_id))


@router.put("/{module_id}", response_model=ModuleDetailResponse)
def update_module(
    module_id: str, body: ModuleInput, teacher: UserRecord = Depends(require_teacher)
) -> ModuleDetailResponse:
    """Replace the module's content; items with an id are updated in place."""
    return _detail_response(modules.update_module(teacher, module_id, _to_draft(body)))


@router.delete("/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_module(module_id: str, teacher: UserRecord = Depends(require_teacher)) -> None:
    modules.delete_module(teacher, module_id)


# =============================================================================
# ASSIGNMENTS
# =============================================================================


@router.get("/{module_id}/assignments", response_model=AssignmentListResponse)
def get_assignments(
    module_id: str, teacher: UserRecord = Depends(require_teacher)
) -> AssignmentListResponse:
    records = assignments.list_assignments(teacher, module_id)
    return AssignmentListResponse(
        module_id=module_id,
        assignments=[AssignmentResponse.model_validate(a) for a in records],
    )


@router.put("/{module_id}/assignments", response_model=AssignmentListResponse)
def save_assignments(
    module_id: str, body: AssignmentsInput, teacher: UserRecord = Depends(require_teacher)
) -> AssignmentListResponse:
    """Make the module's assignments exactly the given classes and students."""
    targets = assignments.build_targets(
        {t.id: t.due_date for t in body.classes},
        {t.id: t.due_date for t in body.students},
    )
    changes = assignments.assign_module(teacher, module_id, targets)
    return AssignmentListResponse(
        module_id=module_id,
        assignments=[AssignmentResponse.model_validate(a) for a in changes.assignments],
        added=changes.added,
        removed=changes.removed,
        updated=changes.updated,
        student_modules_created=changes.student_modules_created,
    )


@router.get("/{module_id}/progress", response_model=ProgressReportResponse)
def progress_report(
    module_id: str, teacher: UserRecord = Depends(require_teacher)
) -> ProgressReportResponse:
    rows = dashboards.module_progress_report(teacher, module_id)
    return ProgressReportResponse(
        module_id=module_id,
        students=[ProgressRowResponse.model_validate(r) for r in rows],
        count=len(rows),
    )
