"""Auth endpoints: sign-up, role-gated login, profile completion and settings."""

from fastapi import APIRouter, Depends, status

from aicademy.auth.provider import AuthSession
from aicademy.core import accounts
from aicademy.db.users_repository import UserRecord
from aicademy.web.deps import get_current_session, get_current_user
from aicademy.web.schemas import (
    ChangePasswordRequest,
    CompleteProfileRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    SessionResponse,
    SignUpRequest,
    SignUpResponse,
    UpdateProfileRequest,
    UserResponse,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def session_response(session: AuthSession) -> SessionResponse:
    return SessionResponse(**session.to_dict())


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
def signup(request: SignUpRequest) -> SignUpResponse:
    """Register a new account. The profile is created at first login."""
    user = accounts.sign_up(
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        role=request.role,
        grade_level=request.grade_level,
    )
    return SignUpResponse(user_id=user.id, email=user.email, email_confirmed=user.email_confirmed)


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest) -> LoginResponse:
    """Password login, optionally restricted to the role of the button pressed."""
    result = accounts.login(request.email, request.password, request.intended_role)
    return LoginResponse(
        session=session_response(result.session),
        user=UserResponse.model_validate(result.user) if result.user else None,
        needs_profile=result.needs_profile,
        redirect_to=result.redirect_to,
    )


@router.post("/complete-profile", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def complete_profile(
    request: CompleteProfileRequest,
    current: tuple[AuthSession, UserRecord | None] = Depends(get_current_session),
) -> UserResponse:
    """Create the caller's profile when sign-up metadata was incomplete."""
    session, _ = current
    user = accounts.complete_profile(
        session.user_id, request.full_name, request.role, request.grade_level
    )
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
def logout(
    current: tuple[AuthSession, UserRecord | None] = Depends(get_current_session),
) -> MessageResponse:
    session, _ = current
    accounts.logout(session.access_token)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
def me(
    current: tuple[AuthSession, UserRecord | None] = Depends(get_current_session),
) -> MeResponse:
    """The caller's profile, or needs_profile when it is still missing."""
    session, user = current
    return MeResponse(
        user_id=session.user_id,
        user=UserResponse.model_validate(user) if user else None,
        needs_profile=user is None,
    )


@router.patch("/me", response_model=UserResponse)
def update_me(request: UpdateProfileRequest, user: UserRecord = Depends(get_current_user)) -> UserResponse:
    """Change the caller's display name."""
    return UserResponse.model_validate(accounts.update_profile(user, request.full_name))


@router.post("/password", response_model=MessageResponse)
def change_password(
    request: ChangePasswordRequest,
    current: tuple[AuthSession, UserRecord | None] = Depends(get_current_session),
) -> MessageResponse:
    session, _ = current
    accounts.change_password(session, request.password, request.confirm_password)
    return MessageResponse(message="Password updated!")
