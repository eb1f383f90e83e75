"""Class and membership endpoints."""

from fastapi import APIRouter, Depends, Query, status

from aicademy.core import classes
from aicademy.core.classes import ClassMember
from aicademy.db.users_repository import UserRecord
from aicademy.web.deps import require_student, require_teacher
from aicademy.web.schemas import (
    AddStudentRequest,
    ClassCreate,
    ClassMemberResponse,
    ClassResponse,
    ClassSearchResponse,
    ClassSearchResult,
    JoinByCodeRequest,
    MembershipResponse,
    StudentClassListResponse,
    StudentClassResponse,
    TeacherClassListResponse,
    TeacherClassResponse,
)

router = APIRouter(prefix="/api/classes", tags=["classes"])


def _member_response(member: ClassMember) -> ClassMemberResponse:
    return ClassMemberResponse(
        membership=MembershipResponse.model_validate(member.membership),
        student_name=member.student_name,
        student_email=member.student_email,
    )


# =============================================================================
# TEACHER
# =============================================================================


@router.get("", response_model=TeacherClassListResponse)
def list_classes(teacher: UserRecord = Depends(require_teacher)) -> TeacherClassListResponse:
    """The teacher's classes with their rosters, newest first."""
    views = classes.list_teacher_classes(teacher)
    return TeacherClassListResponse(
        classes=[
            TeacherClassResponse(
                class_=ClassResponse.model_validate(view.cls),
                pending=[_member_response(m) for m in view.pending],
                approved=[_member_response(m) for m in view.approved],
            )
            for view in views
        ],
        count=len(views),
    )


@router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    request: ClassCreate, teacher: UserRecord = Depends(require_teacher)
) -> ClassResponse:
    cls = classes.create_class(teacher, request.name, request.description)
    return ClassResponse.model_validate(cls)


@router.post(
    "/{class_id}/students",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_student(
    class_id: str,
    request: AddStudentRequest,
    teacher: UserRecord = Depends(require_teacher),
) -> MembershipResponse:
    """Add a student by email as a pending member."""
    membership = classes.add_student_by_email(teacher, class_id, request.email)
    return MembershipResponse.model_validate(membership)


@router.post("/memberships/{membership_id}/approve", response_model=MembershipResponse)
def approve_membership(
    membership_id: str, teacher: UserRecord = Depends(require_teacher)
) -> MembershipResponse:
    return MembershipResponse.model_validate(classes.approve_membership(teacher, membership_id))


@router.post("/memberships/{membership_id}/reject", response_model=MembershipResponse)
def reject_membership(
    membership_id: str, teacher: UserRecord = Depends(require_teacher)
) -> MembershipResponse:
    return MembershipResponse.model_validate(classes.reject_membership(teacher, membership_id))


@router.delete("/memberships/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_membership(membership_id: str, teacher: UserRecord = Depends(require_teacher)) -> None:
    classes.remove_membership(teacher, membership_id)


# =============================================================================
# STUDENT
# =============================================================================


@router.get("/mine", response_model=StudentClassListResponse)
def my_classes(student: UserRecord = Depends(require_student)) -> StudentClassListResponse:
    """The student's memberships of every status."""
    views = classes.list_student_classes(student)
    return StudentClassListResponse(
        classes=[
            StudentClassResponse(
                class_=ClassResponse.model_validate(view.cls),
                teacher_name=view.teacher_name,
                status=view.status,
                assigned_modules=view.assigned_modules,
            )
            for view in views
        ],
        count=len(views),
    )


@router.get("/search", response_model=ClassSearchResponse)
def search_classes(
    q: str = Query(default=""), student: UserRecord = Depends(require_student)
) -> ClassSearchResponse:
    """Find classes by class or teacher name."""
    results = classes.search_classes(q)
    return ClassSearchResponse(
        results=[
            ClassSearchResult(class_=ClassResponse.model_validate(cls), teacher_name=teacher_name)
            for cls, teacher_name in results
        ],
        count=len(results),
    )


@router.post("/join", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
def join_by_code(
    request: JoinByCodeRequest, student: UserRecord = Depends(require_student)
) -> MembershipResponse:
    """Request to join a class by its code."""
    return MembershipResponse.model_validate(classes.join_class_by_code(student, request.code))


@router.post(
    "/{class_id}/join",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_join(class_id: str, student: UserRecord = Depends(require_student)) -> MembershipResponse:
    """Request to join a class picked from search results."""
    return MembershipResponse.model_validate(classes.request_join(student, class_id))
