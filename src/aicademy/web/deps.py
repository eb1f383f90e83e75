"""Request dependencies: bearer sessions, role gates and the admin key."""

from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from aicademy.auth.provider import AuthSession
from aicademy.config.app_config import load_app_config
from aicademy.core.accounts import resolve_session
from aicademy.db.users_repository import UserRecord

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> tuple[AuthSession, UserRecord | None]:
    """Resolve the bearer token. The profile is None until it is completed."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return resolve_session(credentials.credentials)


def get_current_user(
    current: tuple[AuthSession, UserRecord | None] = Depends(get_current_session),
) -> UserRecord:
    _, user = current
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please complete your profile first.",
        )
    return user


def require_teacher(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    if not user.is_teacher:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teacher access required.")
    return user


def require_student(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    if not user.is_student:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student access required.")
    return user


def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    """Check the X-Admin-Key header against the configured admin key.

    With no key configured the admin endpoints are disabled.
    """
    expected = load_app_config().demo.admin_key
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin endpoints are disabled.",
        )
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key.")
