"""Tests for sign-up, role-gated login, profile completion and settings."""

from datetime import datetime, timedelta, timezone

import pytest

from aicademy.auth import provider
from aicademy.auth.provider import EmailNotConfirmedError
from aicademy.config.app_config import load_app_config
from aicademy.core import accounts
from aicademy.core.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    RoleMismatchError,
    ValidationError,
)
from aicademy.db.database import get_db
from aicademy.db.users_repository import get_user_by_id


def _session_count(user_id):
    with get_db() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM auth_sessions WHERE user_id = ?", (user_id,)
        ).fetchone()
    return row["n"]


class TestSignUp:
    """Tests for accounts.sign_up."""

    def test_sign_up_stores_metadata_only(self):
        """Sign-up creates the identity but no users row."""
        user = accounts.sign_up("ana@school.test", "pw123456", "Ana Torres", "student", "10")

        assert user.user_metadata == {"full_name": "Ana Torres", "role": "student", "grade_level": "10"}
        with get_db() as conn:
            assert get_user_by_id(conn, user.id) is None

    def test_sign_up_missing_fields(self):
        with pytest.raises(ValidationError, match="Please fill in all required fields"):
            accounts.sign_up("ana@school.test", "pw123456", "", "student", "10")

    def test_sign_up_student_needs_grade(self):
        with pytest.raises(ValidationError, match="Please select your grade level"):
            accounts.sign_up("ana@school.test", "pw123456", "Ana", "student", None)

    def test_sign_up_teacher_without_grade(self):
        """Grade level is only required for students."""
        user = accounts.sign_up("rivera@school.test", "pw123456", "Ms. Rivera", "teacher")
        assert user.user_metadata["grade_level"] is None

    def test_sign_up_invalid_email(self):
        with pytest.raises(ValidationError, match="Invalid email format"):
            accounts.sign_up("not-an-email", "pw123456", "Ana", "student", "10")

    def test_sign_up_duplicate_email(self):
        accounts.sign_up("ana@school.test", "pw123456", "Ana", "student", "10")
        with pytest.raises(ConflictError):
            accounts.sign_up("ANA@school.test", "pw123456", "Ana", "student", "10")


class TestLogin:
    """Tests for accounts.login."""

    def test_first_login_creates_profile_from_metadata(self):
        """The users row is built from sign-up metadata at first login."""
        accounts.sign_up("ana@school.test", "pw123456", "Ana Torres", "student", "10")

        result = accounts.login("ana@school.test", "pw123456")

        assert result.needs_profile is False
        assert result.redirect_to == "/student"
        assert result.user.full_name == "Ana Torres"
        assert result.user.grade_level == "10"
        assert result.session.access_token

    def test_login_teacher_redirect(self):
        accounts.sign_up("rivera@school.test", "pw123456", "Ms. Rivera", "teacher")
        result = accounts.login("rivera@school.test", "pw123456", intended_role="teacher")
        assert result.redirect_to == "/teacher"

    def test_login_wrong_password(self):
        accounts.sign_up("ana@school.test", "pw123456", "Ana", "student", "10")
        with pytest.raises(AuthError, match="Invalid email or password. Please try again."):
            accounts.login("ana@school.test", "wrong")

    def test_login_missing_fields(self):
        with pytest.raises(ValidationError, match="Please enter both email and password"):
            accounts.login("", "")

    def test_login_role_mismatch_revokes_session(self):
        """Logging in with the wrong role button is rejected and leaves no session."""
        user = accounts.sign_up("ana@school.test", "pw123456", "Ana", "student", "10")

        with pytest.raises(RoleMismatchError) as exc_info:
            accounts.login("ana@school.test", "pw123456", intended_role="teacher")

        assert str(exc_info.value) == (
            "You are trying to log in as a teacher, but your account is registered as a "
            "student. Please use the correct login button or contact support if this is an error."
        )
        assert exc_info.value.status_code == 403
        assert _session_count(user.id) == 0

    def test_login_incomplete_metadata_needs_profile(self):
        """Without name/role metadata the caller is sent to profile completion."""
        with get_db() as conn:
            provider.admin_create_user(conn, "new@school.test", "pw123456", user_metadata={})

        result = accounts.login("new@school.test", "pw123456")

        assert result.needs_profile is True
        assert result.user is None
        assert result.redirect_to == "/complete-profile"

    def test_login_unconfirmed_email(self):
        load_app_config().auth.require_email_confirmation = True
        accounts.sign_up("ana@school.test", "pw123456", "Ana", "student", "10")

        with pytest.raises(EmailNotConfirmedError):
            accounts.login("ana@school.test", "pw123456")


class TestCompleteProfile:
    """Tests for accounts.complete_profile."""

    @pytest.fixture
    def bare_identity(self):
        with get_db() as conn:
            return provider.admin_create_user(conn, "new@school.test", "pw123456", user_metadata={})

    def test_complete_profile_creates_user(self, bare_identity):
        user = accounts.complete_profile(bare_identity.id, "Luis Gómez", "student", "8")

        assert user.role == "student"
        assert user.grade_level == "8"
        assert user.email == "new@school.test"

    def test_complete_profile_twice_rejected(self, bare_identity):
        """Role is immutable once the profile exists."""
        accounts.complete_profile(bare_identity.id, "Luis Gómez", "student", "8")
        with pytest.raises(ConflictError):
            accounts.complete_profile(bare_identity.id, "Luis Gómez", "teacher")

    def test_complete_profile_missing_fields(self, bare_identity):
        with pytest.raises(ValidationError, match="Please fill in all fields"):
            accounts.complete_profile(bare_identity.id, "", "student", "8")

    def test_complete_profile_unknown_identity(self):
        with pytest.raises(NotFoundError):
            accounts.complete_profile("missing", "Luis", "teacher")

    def test_login_after_completion(self, bare_identity):
        accounts.complete_profile(bare_identity.id, "Luis Gómez", "teacher")
        result = accounts.login("new@school.test", "pw123456")
        assert result.needs_profile is False
        assert result.redirect_to == "/teacher"


class TestSessions:
    """Tests for resolve_session and logout."""

    def test_resolve_session(self, student, token_for):
        token = token_for(student)["Authorization"].split(" ", 1)[1]
        session, user = accounts.resolve_session(token)
        assert session.user_id == student.id
        assert user.id == student.id

    def test_resolve_unknown_token(self):
        with pytest.raises(AuthError, match="Invalid or expired session"):
            accounts.resolve_session("nope")

    def test_logout_revokes(self, student, token_for):
        token = token_for(student)["Authorization"].split(" ", 1)[1]
        assert accounts.logout(token) is True
        with pytest.raises(AuthError):
            accounts.resolve_session(token)

    def test_expired_session_is_deleted(self, student):
        with get_db() as conn:
            session = provider.create_session(conn, student.id)
            past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
            conn.execute(
                "UPDATE auth_sessions SET expires_at = ? WHERE access_token = ?",
                (past, session.access_token),
            )

        with pytest.raises(AuthError):
            accounts.resolve_session(session.access_token)
        assert _session_count(student.id) == 0


class TestSettings:
    """Tests for update_profile and change_password."""

    def test_update_profile_renames_everywhere(self, student):
        updated = accounts.update_profile(student, "  Ana María Torres ")

        assert updated.full_name == "Ana María Torres"
        assert updated.role == "student"
        with get_db() as conn:
            assert get_user_by_id(conn, student.id).full_name == "Ana María Torres"
            assert provider.get_user(conn, student.id).user_metadata["full_name"] == "Ana María Torres"
            assert provider.get_user(conn, student.id).user_metadata["role"] == "student"

    def test_update_profile_empty_name(self, student):
        with pytest.raises(ValidationError, match="Please enter your name"):
            accounts.update_profile(student, "   ")

    def test_change_password(self, student):
        with get_db() as conn:
            session = provider.create_session(conn, student.id)

        accounts.change_password(session, "n3w-secret", "n3w-secret")

        assert accounts.login(student.email, "n3w-secret").user.id == student.id
        with pytest.raises(AuthError):
            accounts.login(student.email, "secret123")

    def test_change_password_mismatch(self, student):
        with get_db() as conn:
            session = provider.create_session(conn, student.id)

        with pytest.raises(ValidationError, match="Passwords do not match"):
            accounts.change_password(session, "n3w-secret", "other")
        assert accounts.login(student.email, "secret123").user.id == student.id

    def test_change_password_empty(self, student):
        with get_db() as conn:
            session = provider.create_session(conn, student.id)

        with pytest.raises(ValidationError):
            accounts.change_password(session, "", "")


class TestPasswords:
    """Tests for password hashing."""

    def test_hash_and_verify(self):
        encoded, salt = provider.hash_password("correct horse")
        assert encoded.startswith("pbkdf2_sha256$1000$")
        assert provider.verify_password("correct horse", encoded, salt)
        assert not provider.verify_password("wrong", encoded, salt)

    def test_verify_survives_iteration_change(self):
        """Stored hashes carry their own iteration count."""
        encoded, salt = provider.hash_password("correct horse")
        load_app_config().auth.password_iterations = 2000
        assert provider.verify_password("correct horse", encoded, salt)
