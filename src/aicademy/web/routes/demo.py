"""Demo account endpoints."""

from fastapi import APIRouter, Depends

from aicademy.core import demo
from aicademy.web.deps import require_admin_key
from aicademy.web.routes.auth import session_response
from aicademy.web.schemas import (
    DemoAuthRequest,
    DemoAuthResponse,
    DemoCleanupResponse,
    DemoSetupResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/demo", tags=["demo"])


@router.post("/auth", response_model=DemoAuthResponse)
def demo_auth(request: DemoAuthRequest) -> DemoAuthResponse:
    """Session for the fixed demo identity of a role."""
    result = demo.demo_login(request.role)
    return DemoAuthResponse(
        session=session_response(result.session),
        user=UserResponse.model_validate(result.user),
        redirect_to=result.redirect_to,
    )


@router.post("/setup", response_model=DemoSetupResponse, dependencies=[Depends(require_admin_key)])
def demo_setup() -> DemoSetupResponse:
    result = demo.setup_demo_content()
    return DemoSetupResponse(
        teacher_id=result.teacher_id,
        student_id=result.student_id,
        class_ids=result.class_ids,
        module_ids=result.module_ids,
        classes_created=result.classes_created,
        modules_created=result.modules_created,
        assignments_created=result.assignments_created,
    )


@router.post("/cleanup", response_model=DemoCleanupResponse, dependencies=[Depends(require_admin_key)])
def demo_cleanup() -> DemoCleanupResponse:
    """Remove timestamped demo accounts."""
    return DemoCleanupResponse(deleted_count=demo.cleanup_demo_accounts())
