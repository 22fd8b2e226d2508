"""
User Service

Handles registration, profile updates, password changes and the admin
user listing.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.password_validation import validate_password_complexity
from helpers.time_utils import utc_now
from models.exceptions import (
    InvalidCredentialsException,
    PasswordValidationException,
    UserAlreadyExistsException,
    UserNotFoundException,
    ValidationException,
)
from repositories.user_repository import UserRepository
from services.auth_service import AuthService


def check_new_password(password: str, confirmation: str) -> None:
    """
    Validate a new password and its confirmation.

    Raises:
        ValidationException: If the confirmation does not match
        PasswordValidationException: If the password is too weak
    """
    if password != confirmation:
        raise ValidationException("Passwords do not match")
    is_valid, errors = validate_password_complexity(password)
    if not is_valid:
        raise PasswordValidationException(errors)


class UserService:
    """Service for managing user accounts."""

    @staticmethod
    def get_user_by_id_or_raise(db: Session, user_id: int) -> db_models.User:
        """
        Get user by ID or raise UserNotFoundException.

        Args:
            db: Database session
            user_id: User ID

        Returns:
            User
        """
        user = UserRepository(db).get_by_id(user_id)
        if not user:
            raise UserNotFoundException("User not found")
        return user

    @staticmethod
    def register_user(db: Session, user_data: schemas.UserCreate) -> db_models.User:
        """
        Register a new citizen account.

        Args:
            db: Database session
            user_data: Registration form

        Returns:
            Created user

        Raises:
            UserAlreadyExistsException: If the email is taken
            ValidationException: If the password confirmation does not match
            PasswordValidationException: If the password is too weak
        """
        user_repo = UserRepository(db)

        check_new_password(user_data.password, user_data.password_confirm)

        if user_repo.email_exists(user_data.email):
            raise UserAlreadyExistsException("Email already registered")

        new_user = db_models.User(
            name=user_data.name,
            email=user_data.email.lower(),
            phone=user_data.phone,
            address=user_data.address,
            hashed_password=auth.get_password_hash(user_data.password),
            role=db_models.UserRole.CITIZEN,
        )
        user = user_repo.create(new_user)
        logger.info(f"User registered: user_id={user.id}")
        return user

    @staticmethod
    def update_profile(
        db: Session, user_id: int, profile_update: schemas.UserProfileUpdate
    ) -> db_models.User:
        """
        Update name, phone and address. Email and role are not editable here.

        Raises:
            UserNotFoundException: If user not found
        """
        user_repo = UserRepository(db)
        user = UserService.get_user_by_id_or_raise(db, user_id)

        if profile_update.name:
            user.name = profile_update.name.strip()
        if profile_update.phone:
            user.phone = profile_update.phone
        if profile_update.address is not None:
            user.address = profile_update.address or None

        return user_repo.update(user)

    @staticmethod
    def set_password(
        db: Session, user: db_models.User, new_password: str, now: datetime
    ) -> None:
        """
        Store a new password hash and stamp the change.

        Tokens issued before ``now`` stop being accepted.
        """
        user.hashed_password = auth.get_password_hash(new_password)
        user.password_changed_at = now
        user.password_reset_token_hash = None
        user.password_reset_expires = None
        user.login_attempts = 0
        user.lock_until = None
        UserRepository(db).update(user)

    @staticmethod
    def change_password(
        db: Session,
        user_id: int,
        password_change: schemas.PasswordChange,
        now: Optional[datetime] = None,
    ) -> schemas.AuthResponse:
        """
        Change the password of a logged-in user and issue a fresh token.

        Raises:
            UserNotFoundException: If user not found
            InvalidCredentialsException: If the current password is wrong
            ValidationException: If the confirmation does not match
            PasswordValidationException: If the new password is too weak
        """
        now = now or utc_now()
        user = UserService.get_user_by_id_or_raise(db, user_id)

        if not auth.verify_password(
            password_change.current_password, user.hashed_password
        ):
            raise InvalidCredentialsException("Current password is incorrect")

        check_new_password(
            password_change.new_password, password_change.new_password_confirm
        )

        UserService.set_password(db, user, password_change.new_password, now)
        logger.info(f"Password changed: user_id={user.id}")
        return AuthService.issue_token(user, now=now)

    @staticmethod
    def list_users(
        db: Session,
        role: Optional[db_models.UserRole] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> schemas.UserListResponse:
        """List users for the admin panel."""
        users, total = UserRepository(db).list_users(role=role, skip=skip, limit=limit)
        return schemas.UserListResponse(
            users=[schemas.User.model_validate(u) for u in users],
            total=total,
            skip=skip,
            limit=limit,
        )
