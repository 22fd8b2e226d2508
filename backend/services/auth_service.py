"""
Authentication Service

Handles login, the consecutive-failure lockout policy and token issuance.
"""

from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from authentication.auth import create_access_token, verify_password
from helpers.time_utils import ensure_utc, is_in_future, minutes_until, utc_now
from models.config import settings
from models.exceptions import (
    AccountLockedException,
    InactiveUserException,
    InvalidCredentialsException,
)
from repositories.user_repository import UserRepository


class AuthService:
    """Service for authentication business logic."""

    @staticmethod
    def issue_token(
        user: db_models.User, now: Optional[datetime] = None
    ) -> schemas.AuthResponse:
        """Create a session token for a user and wrap it with their profile."""
        access_token = create_access_token(user.id, user.role, now=now)
        # nosec B106: "bearer" is OAuth2 token type, not a password
        return schemas.AuthResponse(
            access_token=access_token,
            token_type="bearer",  # nosec B106
            user=schemas.User.model_validate(user),
        )

    @staticmethod
    def register_failed_attempt(user: db_models.User, now: datetime) -> int:
        """
        Record a failed password attempt on the user (not committed).

        An expired lock restarts the count at 1. Reaching the attempt limit
        locks the account for ACCOUNT_LOCK_MINUTES.

        Returns:
            Attempts remaining before the account locks (0 once locked)
        """
        lock_until = ensure_utc(user.lock_until)
        if lock_until is not None and lock_until <= now:
            user.login_attempts = 1
            user.lock_until = None
        else:
            user.login_attempts = (user.login_attempts or 0) + 1

        if user.login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
            user.lock_until = now + timedelta(minutes=settings.ACCOUNT_LOCK_MINUTES)
            return 0
        return settings.MAX_LOGIN_ATTEMPTS - user.login_attempts

    @staticmethod
    def login(
        db: Session, email: str, password: str, now: Optional[datetime] = None
    ) -> schemas.AuthResponse:
        """
        Authenticate a user and create an access token.

        Args:
            db: Database session
            email: User email
            password: User password
            now: Current time (defaults to UTC now)

        Returns:
            Token plus user profile

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
            AccountLockedException: Account is locked, whatever the password
            InactiveUserException: Account is deactivated or blocked
        """
        now = now or utc_now()
        user_repo = UserRepository(db)

        user = user_repo.get_by_email(email)
        if not user:
            raise InvalidCredentialsException("Incorrect email or password")

        if is_in_future(user.lock_until, now):
            lock_until = ensure_utc(user.lock_until)
            raise AccountLockedException(lock_until, minutes_until(lock_until, now))

        if not verify_password(password, user.hashed_password):
            remaining = AuthService.register_failed_attempt(user, now)
            user_repo.commit()
            if remaining > 0:
                logger.info(
                    f"Failed login for user_id={user.id}, {remaining} attempts remaining"
                )
                raise InvalidCredentialsException(
                    f"Incorrect email or password. {remaining} attempts remaining"
                )
            logger.warning(f"Account locked after failed logins: user_id={user.id}")
            raise InvalidCredentialsException(
                "Incorrect email or password. Account is locked for "
                f"{settings.ACCOUNT_LOCK_MINUTES} minutes"
            )

        if not user.is_active or user.is_blocked:
            raise InactiveUserException("Account is deactivated or blocked")

        user.login_attempts = 0
        user.lock_until = None
        user.last_login_at = now
        user_repo.commit()
        user_repo.refresh(user)

        logger.info(f"User logged in: user_id={user.id}")
        return AuthService.issue_token(user, now=now)

    @staticmethod
    def logout(user: db_models.User) -> schemas.MessageResponse:
        """Sessions are stateless; the client discards its token."""
        logger.info(f"User logged out: user_id={user.id}")
        return schemas.MessageResponse(message="Logged out successfully")
