"""Accounts: sign-up, role-gated login, profile completion and settings.

Login flow:
1. Password sign-in against the auth provider
2. If no users row exists, build it from the provider's stored metadata;
   when the metadata lacks name or role, the login is suspended and the
   caller is sent to profile completion
3. If the caller asked to log in as a specific role and the account has
   another, the login is rejected and the new session revoked
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import structlog

from aicademy.auth import provider
from aicademy.auth.provider import AuthSession
from aicademy.core.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    RoleMismatchError,
    ValidationError,
)
from aicademy.db.database import get_db
from aicademy.db.users_repository import UserRecord, get_user_by_id, insert_user, update_full_name

logger = structlog.get_logger(__name__)

ROLES = ("student", "teacher")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

REDIRECTS = {
    "teacher": "/teacher",
    "student": "/student",
}
PROFILE_REDIRECT = "/complete-profile"


@dataclass
class LoginResult:
    """Outcome of a successful credential check."""

    session: AuthSession
    user: UserRecord | None
    needs_profile: bool
    redirect_to: str


def validate_email(email: str) -> bool:
    """Validate email format."""
    return bool(EMAIL_PATTERN.match(email or ""))


def _validate_profile_fields(
    full_name: str | None,
    role: str | None,
    grade_level: str | None,
    missing_message: str,
) -> None:
    if not (full_name or "").strip() or not role:
        raise ValidationError(missing_message)
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if role == "student" and not (grade_level or "").strip():
        raise ValidationError("Please select your grade level")


def sign_up(
    email: str,
    password: str,
    full_name: str,
    role: str,
    grade_level: str | None = None,
) -> provider.AuthUser:
    """Register an identity with profile metadata.

    No users row is written here; it's created at first login from the
    stored metadata.

    Raises:
        ValidationError: Missing or invalid fields
        ConflictError: Email already registered
    """
    if not (email or "").strip() or not password:
        raise ValidationError("Please fill in all required fields")
    _validate_profile_fields(full_name, role, grade_level, "Please fill in all required fields")
    if not validate_email(email.strip()):
        raise ValidationError("Invalid email format")

    metadata: dict[str, Any] = {
        "full_name": full_name.strip(),
        "role": role,
        "grade_level": grade_level.strip() if role == "student" and grade_level else None,
    }

    with get_db() as conn:
        user = provider.sign_up(conn, email, password, metadata)

    logger.info("accounts.signed_up", user_id=user.id, role=role)
    return user


def login(email: str, password: str, intended_role: str | None = None) -> LoginResult:
    """Authenticate and resolve the caller's profile and destination.

    Raises:
        ValidationError: Missing email or password
        AuthError: Invalid credentials / unconfirmed email
        RoleMismatchError: Account role differs from intended_role
    """
    if not (email or "").strip() or not password:
        raise ValidationError("Please enter both email and password")
    if intended_role is not None and intended_role not in ROLES:
        raise ValidationError(f"Invalid role: {intended_role}")

    with get_db() as conn:
        try:
            session = provider.sign_in_with_password(conn, email, password)
        except provider.EmailNotConfirmedError:
            raise
        except AuthError as e:
            raise AuthError("Invalid email or password. Please try again.") from e

        user = get_user_by_id(conn, session.user_id)

        if user is None:
            auth_user = provider.get_user(conn, session.user_id)
            metadata = auth_user.user_metadata if auth_user else {}
            if not _metadata_complete(metadata):
                logger.info("accounts.profile_incomplete", user_id=session.user_id)
                return LoginResult(
                    session=session,
                    user=None,
                    needs_profile=True,
                    redirect_to=PROFILE_REDIRECT,
                )
            user = insert_user(
                conn,
                user_id=session.user_id,
                email=auth_user.email,
                full_name=metadata["full_name"],
                role=metadata["role"],
                grade_level=metadata.get("grade_level") or None,
            )
            logger.info("accounts.profile_created_from_metadata", user_id=user.id)

        if intended_role and user.role != intended_role:
            provider.revoke_session(conn, session.access_token)
            mismatch = RoleMismatchError(intended_role, user.role)
        else:
            mismatch = None

    # Raised outside the transaction so the revocation is committed
    if mismatch is not None:
        logger.info(
            "accounts.role_mismatch",
            user_id=user.id,
            intended=intended_role,
            actual=user.role,
        )
        raise mismatch

    logger.info("accounts.logged_in", user_id=user.id, role=user.role)
    return LoginResult(
        session=session,
        user=user,
        needs_profile=False,
        redirect_to=REDIRECTS[user.role],
    )


def _metadata_complete(metadata: dict[str, Any]) -> bool:
    role = metadata.get("role")
    if not metadata.get("full_name") or role not in ROLES:
        return False
    if role == "student" and not metadata.get("grade_level"):
        return False
    return True


def complete_profile(
    user_id: str,
    full_name: str,
    role: str,
    grade_level: str | None = None,
) -> UserRecord:
    """Create the users row for an identity whose metadata was incomplete.

    Raises:
        ValidationError: Missing fields
        NotFoundError: Unknown identity
        ConflictError: Profile already exists (role is immutable)
    """
    if not user_id:
        raise ValidationError("Please fill in all fields")
    _validate_profile_fields(full_name, role, grade_level, "Please fill in all fields")

    with get_db() as conn:
        auth_user = provider.get_user(conn, user_id)
        if auth_user is None:
            raise NotFoundError("User not found")
        if get_user_by_id(conn, user_id) is not None:
            raise ConflictError("Profile already completed")
        user = insert_user(
            conn,
            user_id=user_id,
            email=auth_user.email,
            full_name=full_name.strip(),
            role=role,  # type: ignore[arg-type]
            grade_level=grade_level.strip() if role == "student" and grade_level else None,
        )

    logger.info("accounts.profile_completed", user_id=user_id, role=role)
    return user


def update_profile(user: UserRecord, full_name: str) -> UserRecord:
    """Change the display name on both the profile and the identity metadata.

    Raises:
        ValidationError: Empty name
    """
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValidationError("Please enter your name")

    with get_db() as conn:
        updated = update_full_name(conn, user.id, full_name)
        provider.update_user(conn, user.id, user_metadata={"full_name": full_name})

    logger.info("accounts.profile_updated", user_id=user.id)
    return updated


def change_password(session: AuthSession, password: str, confirm: str) -> None:
    """Set a new password for the session's identity.

    Raises:
        ValidationError: Empty password or confirmation mismatch
    """
    if not password:
        raise ValidationError("Please enter a new password")
    if password != confirm:
        raise ValidationError("Passwords do not match")

    with get_db() as conn:
        provider.update_user(conn, session.user_id, password=password)


def resolve_session(access_token: str) -> tuple[AuthSession, UserRecord | None]:
    """Resolve a bearer token to its session and profile.

    Raises:
        AuthError: Unknown or expired token
    """
    with get_db() as conn:
        session = provider.get_session(conn, access_token)
        user = get_user_by_id(conn, session.user_id) if session else None

    if session is None:
        raise AuthError("Invalid or expired session")
    return session, user


def logout(access_token: str) -> bool:
    """Revoke a session. Returns True if it existed."""
    with get_db() as conn:
        revoked = provider.revoke_session(conn, access_token)
    if revoked:
        logger.info("accounts.logged_out")
    return revoked
