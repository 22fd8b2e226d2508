"""Unit tests for UserService."""

from datetime import datetime, timedelta, timezone

import pytest

import models.schemas as schemas
import repositories.db_models as db_models
from authentication.auth import decode_access_token, verify_password
from models.exceptions import (
    InvalidCredentialsException,
    PasswordValidationException,
    UserAlreadyExistsException,
    UserNotFoundException,
    ValidationException,
)
from services.user_service import UserService, check_new_password


def _registration(**overrides) -> schemas.UserCreate:
    values = {
        "name": "  Asha Patil ",
        "email": "Asha@Example.com",
        "phone": "9123456780",
        "password": "Secret123",
        "password_confirm": "Secret123",
    }
    values.update(overrides)
    return schemas.UserCreate(**values)


class TestCheckNewPassword:
    """Tests for the new-password check."""

    def test_mismatch(self):
        with pytest.raises(ValidationException) as exc_info:
            check_new_password("Secret123", "Secret124")
        assert exc_info.value.message == "Passwords do not match"

    def test_weak_password(self):
        with pytest.raises(PasswordValidationException) as exc_info:
            check_new_password("secret", "secret")
        assert len(exc_info.value.errors) == 2


class TestRegisterUser:
    """Tests for registration."""

    def test_registers_citizen(self, db_session):
        user = UserService.register_user(db_session, _registration())

        assert user.id is not None
        assert user.name == "Asha Patil"
        assert user.email == "asha@example.com"
        assert user.role == db_models.UserRole.CITIZEN
        assert verify_password("Secret123", user.hashed_password)

    def test_duplicate_email_any_case(self, db_session):
        UserService.register_user(db_session, _registration())
        with pytest.raises(UserAlreadyExistsException) as exc_info:
            UserService.register_user(db_session, _registration(email="ASHA@example.com"))
        assert exc_info.value.message == "Email already registered"

    def test_weak_password_rejected(self, db_session):
        with pytest.raises(PasswordValidationException):
            UserService.register_user(
                db_session, _registration(password="abc", password_confirm="abc")
            )
        assert db_session.query(db_models.User).count() == 0

    def test_invalid_phone_rejected_by_schema(self):
        with pytest.raises(ValueError):
            _registration(phone="12345")


class TestUpdateProfile:
    """Tests for profile updates."""

    def test_updates_fields(self, db_session, test_user):
        updated = UserService.update_profile(
            db_session,
            test_user.id,
            schemas.UserProfileUpdate(name="New Name", phone="9000000001", address="Flat 2"),
        )
        assert updated.name == "New Name"
        assert updated.phone == "9000000001"
        assert updated.address == "Flat 2"

    def test_missing_user(self, db_session):
        with pytest.raises(UserNotFoundException):
            UserService.update_profile(db_session, 999, schemas.UserProfileUpdate())


class TestChangePassword:
    """Tests for password changes."""

    def test_changes_password_and_issues_token(self, db_session, test_user):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        result = UserService.change_password(
            db_session,
            test_user.id,
            schemas.PasswordChange(
                current_password="Password123",
                new_password="NewPass456",
                new_password_confirm="NewPass456",
            ),
            now=now,
        )

        db_session.refresh(test_user)
        assert verify_password("NewPass456", test_user.hashed_password)
        assert test_user.password_changed_at.replace(tzinfo=timezone.utc) == now
        assert decode_access_token(result.access_token).user_id == test_user.id

    def test_wrong_current_password(self, db_session, test_user):
        with pytest.raises(InvalidCredentialsException):
            UserService.change_password(
                db_session,
                test_user.id,
                schemas.PasswordChange(
                    current_password="Nope1234",
                    new_password="NewPass456",
                    new_password_confirm="NewPass456",
                ),
            )

    def test_clears_lockout(self, db_session, test_user):
        test_user.login_attempts = 3
        test_user.lock_until = datetime.now(timezone.utc) + timedelta(minutes=5)
        db_session.commit()

        UserService.set_password(
            db_session, test_user, "NewPass456", datetime.now(timezone.utc)
        )

        db_session.refresh(test_user)
        assert test_user.login_attempts == 0
        assert test_user.lock_until is None


class TestListUsers:
    """Tests for the admin user listing."""

    def test_filter_by_role(self, db_session, test_user, worker_user, admin_user):
        result = UserService.list_users(db_session, role=db_models.UserRole.WORKER)
        assert result.total == 1
        assert result.users[0].id == worker_user.id

    def test_pagination(self, db_session, test_user, worker_user, admin_user):
        result = UserService.list_users(db_session, skip=1, limit=1)
        assert result.total == 3
        assert len(result.users) == 1
        assert result.skip == 1
