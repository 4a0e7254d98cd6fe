"""
Authentication and session tests.
"""

from datetime import timedelta

import pytest

from shelter.extensions import db
from shelter.models import RoleName
from shelter.services import auth_service, session_service
from shelter.services.auth_service import PasswordValidationError, UserCreationError
from shelter.time_utils import utcnow


class TestPasswords:

    @pytest.mark.parametrize("password", ["Sh0rt!", "alllower123!", "ALLUPPER123!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_roundtrip(self, app):
        hashed = auth_service.hash_password("Password123!")
        assert auth_service.verify_password("Password123!", hashed)
        assert not auth_service.verify_password("Password124!", hashed)

    def test_malformed_hash(self):
        assert auth_service.verify_password("Password123!", "not-a-bcrypt-hash") is False


class TestUsers:

    def test_duplicate_username(self, staff_user):
        with pytest.raises(UserCreationError):
            auth_service.create_user("staff1", "other@shelter.local", "Password123!", RoleName.STAFF)

    def test_unknown_role(self, setup_roles):
        with pytest.raises(UserCreationError):
            auth_service.create_user("x1", "x1@shelter.local", "Password123!", "Janitor")

    def test_inactive_user_cannot_authenticate(self, staff_user):
        staff_user.is_active = False
        db.session.commit()

        assert auth_service.authenticate("staff1", "Password123!") is None

    def test_authenticate_sets_last_login(self, staff_user):
        user = auth_service.authenticate("staff1@shelter.local", "Password123!")
        assert user.id == staff_user.id
        assert user.last_login_at is not None


class TestSessions:

    def test_valid_session_builds_caller(self, adopter):
        _, token = session_service.create_session(adopter.id)

        context = session_service.validate_session(token)

        assert context.user.id == adopter.id
        assert context.caller.user_id == adopter.id
        assert context.caller.role == RoleName.ADOPTER
        assert not context.caller.is_staff

    def test_idle_session_rejected(self, adopter):
        session, token = session_service.create_session(adopter.id)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_expired_session_rejected(self, adopter):
        session, token = session_service.create_session(adopter.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_revoked_session_rejected(self, adopter):
        _, token = session_service.create_session(adopter.id)

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_only_hash_is_stored(self, adopter):
        session, token = session_service.create_session(adopter.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token
