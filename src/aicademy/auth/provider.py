"""Auth provider: credentials, user metadata and bearer sessions.

Plays the role of the external identity service. It knows nothing about
application roles beyond the free-form metadata stored at sign-up; the
application-level profile lives in the users table.

Passwords are stored as salted PBKDF2-SHA256 hashes. The iteration count
is recorded with each hash, so changing the configured count only affects
new passwords.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from aicademy.config.app_config import load_app_config
from aicademy.core.errors import AuthError, ConflictError
from aicademy.db.database import new_id, utc_now

logger = structlog.get_logger(__name__)

_PBKDF2_DIGEST = "sha256"
_HASH_SCHEME = "pbkdf2_sha256"


class EmailNotConfirmedError(AuthError):
    """Sign-in attempted before the email address was confirmed."""

    def __init__(self) -> None:
        super().__init__("Email not confirmed. Please check your inbox.")


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class AuthUser:
    """An identity known to the auth provider."""

    id: str
    email: str
    email_confirmed: bool
    created_at: str
    user_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthSession:
    """A bearer session for an identity."""

    access_token: str
    user_id: str
    created_at: str
    expires_at: str

    @property
    def is_expired(self) -> bool:
        return datetime.fromisoformat(self.expires_at) <= datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "access_token": self.access_token,
            "token_type": "bearer",
            "user_id": self.user_id,
            "expires_at": self.expires_at,
        }


# =============================================================================
# PASSWORDS
# =============================================================================


def _pbkdf2(password: str, salt_hex: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        _PBKDF2_DIGEST,
        password.encode("utf-8"),
        bytes.fromhex(salt_hex),
        iterations,
    ).hex()


def hash_password(password: str) -> tuple[str, str]:
    """Hash a password with a fresh salt.

    Returns:
        (encoded hash, salt hex)
    """
    iterations = load_app_config().auth.password_iterations
    salt_hex = secrets.token_bytes(16).hex()
    digest = _pbkdf2(password, salt_hex, iterations)
    return f"{_HASH_SCHEME}${iterations}${digest}", salt_hex


def verify_password(password: str, encoded_hash: str, salt_hex: str) -> bool:
    """Check a password against a stored hash."""
    try:
        scheme, iterations, digest = encoded_hash.split("$", 2)
        if scheme != _HASH_SCHEME:
            return False
        derived = _pbkdf2(password, salt_hex, int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(digest, derived)


# =============================================================================
# USERS
# =============================================================================


def create_user(
    conn: sqlite3.Connection,
    email: str,
    password: str,
    user_metadata: dict[str, Any] | None = None,
    email_confirmed: bool = False,
) -> AuthUser:
    """Create an identity.

    Raises:
        ConflictError: If the email is already registered
    """
    email = email.strip().lower()
    if get_user_by_email(conn, email) is not None:
        raise ConflictError("A user with this email address has already been registered.")

    password_hash, salt = hash_password(password)
    user = AuthUser(
        id=new_id(),
        email=email,
        email_confirmed=email_confirmed,
        created_at=utc_now(),
        user_metadata=dict(user_metadata or {}),
    )
    conn.execute(
        """
        INSERT INTO auth_users (
            id, email, password_hash, password_salt, email_confirmed, user_metadata, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user.id,
            user.email,
            password_hash,
            salt,
            int(email_confirmed),
            json.dumps(user.user_metadata),
            user.created_at,
        ),
    )
    logger.info("auth.user_created", user_id=user.id, email=user.email)
    return user


def sign_up(
    conn: sqlite3.Connection,
    email: str,
    password: str,
    user_metadata: dict[str, Any] | None = None,
) -> AuthUser:
    """Self-service registration.

    The email starts unconfirmed only when confirmation is required by
    configuration.
    """
    confirmed = not load_app_config().auth.require_email_confirmation
    return create_user(conn, email, password, user_metadata, email_confirmed=confirmed)


def admin_create_user(
    conn: sqlite3.Connection,
    email: str,
    password: str,
    user_metadata: dict[str, Any] | None = None,
    email_confirm: bool = True,
) -> AuthUser:
    """Administrative creation, confirmed by default."""
    return create_user(conn, email, password, user_metadata, email_confirmed=email_confirm)


def admin_list_users(conn: sqlite3.Connection) -> list[AuthUser]:
    """List every identity, oldest first."""
    rows = conn.execute("SELECT * FROM auth_users ORDER BY created_at").fetchall()
    return [_row_to_user(row) for row in rows]


def admin_delete_user(conn: sqlite3.Connection, user_id: str) -> bool:
    """Hard-delete an identity, its sessions and (by cascade) its profile."""
    cursor = conn.execute("DELETE FROM auth_users WHERE id = ?", (user_id,))
    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("auth.user_deleted", user_id=user_id)
    return deleted


def update_user(
    conn: sqlite3.Connection,
    user_id: str,
    password: str | None = None,
    user_metadata: dict[str, Any] | None = None,
) -> AuthUser:
    """Change an identity's password and/or merge keys into its metadata.

    Raises:
        AuthError: If the identity does not exist
    """
    user = get_user(conn, user_id)
    if user is None:
        raise AuthError("User not found")

    if password is not None:
        password_hash, salt = hash_password(password)
        conn.execute(
            "UPDATE auth_users SET password_hash = ?, password_salt = ? WHERE id = ?",
            (password_hash, salt, user_id),
        )
        logger.info("auth.password_changed", user_id=user_id)

    if user_metadata:
        user.user_metadata.update(user_metadata)
        conn.execute(
            "UPDATE auth_users SET user_metadata = ? WHERE id = ?",
            (json.dumps(user.user_metadata), user_id),
        )
    return user


def confirm_email(conn: sqlite3.Connection, user_id: str) -> None:
    """Mark an identity's email as confirmed."""
    conn.execute("UPDATE auth_users SET email_confirmed = 1 WHERE id = ?", (user_id,))


def get_user(conn: sqlite3.Connection, user_id: str) -> AuthUser | None:
    """Get identity by ID."""
    row = conn.execute("SELECT * FROM auth_users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_email(conn: sqlite3.Connection, email: str) -> AuthUser | None:
    """Get identity by email (case-insensitive)."""
    row = conn.execute(
        "SELECT * FROM auth_users WHERE email = ?", (email.strip().lower(),)
    ).fetchone()
    return _row_to_user(row) if row else None


# =============================================================================
# SESSIONS
# =============================================================================


def sign_in_with_password(conn: sqlite3.Connection, email: str, password: str) -> AuthSession:
    """Verify credentials and open a session.

    Raises:
        AuthError: If the credentials are invalid
        EmailNotConfirmedError: If the email still awaits confirmation
    """
    row = conn.execute(
        "SELECT * FROM auth_users WHERE email = ?", (email.strip().lower(),)
    ).fetchone()
    if row is None or not verify_password(password, row["password_hash"], row["password_salt"]):
        logger.info("auth.sign_in_failed", email=email)
        raise AuthError("Invalid login credentials")

    if not row["email_confirmed"]:
        raise EmailNotConfirmedError()

    return create_session(conn, row["id"])


def create_session(conn: sqlite3.Connection, user_id: str) -> AuthSession:
    """Open a new session for an identity."""
    ttl = timedelta(hours=load_app_config().auth.session_ttl_hours)
    now = datetime.now(timezone.utc)
    session = AuthSession(
        access_token=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now.isoformat(),
        expires_at=(now + ttl).isoformat(),
    )
    conn.execute(
        "INSERT INTO auth_sessions (access_token, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
        (session.access_token, user_id, session.created_at, session.expires_at),
    )
    logger.debug("auth.session_created", user_id=user_id)
    return session


def get_session(conn: sqlite3.Connection, access_token: str) -> AuthSession | None:
    """Look up a live session. Expired sessions are deleted and None returned."""
    row = conn.execute(
        "SELECT * FROM auth_sessions WHERE access_token = ?", (access_token,)
    ).fetchone()
    if row is None:
        return None

    session = AuthSession(
        access_token=row["access_token"],
        user_id=row["user_id"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )
    if session.is_expired:
        revoke_session(conn, access_token)
        return None
    return session


def revoke_session(conn: sqlite3.Connection, access_token: str) -> bool:
    """Delete a session. Returns True if it existed."""
    cursor = conn.execute("DELETE FROM auth_sessions WHERE access_token = ?", (access_token,))
    return cursor.rowcount > 0


def _row_to_user(row: sqlite3.Row) -> AuthUser:
    """Convert database row to AuthUser."""
    return AuthUser(
        id=row["id"],
        email=row["email"],
        email_confirmed=bool(row["email_confirmed"]),
        created_at=row["created_at"],
        user_metadata=json.loads(row["user_metadata"]) if row["user_metadata"] else {},
    )
