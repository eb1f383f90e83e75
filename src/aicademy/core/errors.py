"""Error hierarchy shared by the core services.

Messages are user-facing: the web layer returns them verbatim as
``detail``. Backend failures (sqlite3.Error) are not wrapped here; the web
layer logs them and answers with a generic message.
"""

from __future__ import annotations


class AicademyError(Exception):
    """Base error for expected, user-facing failures."""

    status_code = 400


class ValidationError(AicademyError):
    """Missing or malformed input; raised before any write."""

    status_code = 400


class AuthError(AicademyError):
    """Invalid credentials or session."""

    status_code = 401


class PermissionDeniedError(AicademyError):
    """Caller may not act on this resource."""

    status_code = 403


class RoleMismatchError(PermissionDeniedError):
    """Account role differs from the role the caller asked to log in as."""

    def __init__(self, intended_role: str, actual_role: str):
        self.intended_role = intended_role
        self.actual_role = actual_role
        super().__init__(
            f"You are trying to log in as a {intended_role}, but your account is "
            f"registered as a {actual_role}. Please use the correct login button "
            "or contact support if this is an error."
        )


class NotFoundError(AicademyError):
    """Referenced row doesn't exist (or isn't visible to the caller)."""

    status_code = 404


class ConflictError(AicademyError):
    """Write would duplicate an existing row."""

    status_code = 409
