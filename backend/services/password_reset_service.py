"""
Password Reset Service

Reset tokens are 32 random bytes, hex-encoded. Only their SHA-256 digest
is stored, next to an expiry PASSWORD_RESET_EXPIRE_MINUTES in the future.
Email delivery is not wired up; in development the raw token is returned
in the response so the flow can be exercised by hand.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.time_utils import utc_now
from models.config import settings
from models.exceptions import InvalidOrExpiredTokenException
from repositories.user_repository import UserRepository
from services.auth_service import AuthService
from services.user_service import UserService, check_new_password

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent"
)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class PasswordResetService:
    """Service for the forgot/reset password flow."""

    @staticmethod
    def forgot_password(
        db: Session, email: str, now: Optional[datetime] = None
    ) -> schemas.ForgotPasswordResponse:
        """
        Start a password reset.

        The answer is the same whether or not the email is registered.

        Args:
            db: Database session
            email: Account email
            now: Current time (defaults to UTC now)

        Returns:
            Generic message, plus the raw token in development
        """
        now = now or utc_now()
        user_repo = UserRepository(db)
        user = user_repo.get_by_email(email)

        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return schemas.ForgotPasswordResponse(message=FORGOT_PASSWORD_MESSAGE)

        token = secrets.token_hex(32)
        user.password_reset_token_hash = hash_reset_token(token)
        user.password_reset_expires = now + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        user_repo.commit()
        logger.info(f"Password reset token issued: user_id={user.id}")

        return schemas.ForgotPasswordResponse(
            message=FORGOT_PASSWORD_MESSAGE,
            reset_token=token if settings.ENVIRONMENT == "development" else None,
        )

    @staticmethod
    def reset_password(
        db: Session,
        token: str,
        reset: schemas.ResetPasswordRequest,
        now: Optional[datetime] = None,
    ) -> schemas.AuthResponse:
        """
        Complete a password reset and log the user in.

        Raises:
            InvalidOrExpiredTokenException: Unknown token or past its expiry
            ValidationException: If the confirmation does not match
            PasswordValidationException: If the new password is too weak
        """
        now = now or utc_now()
        user = UserRepository(db).get_by_reset_token_hash(hash_reset_token(token), now)
        if user is None:
            raise InvalidOrExpiredTokenException()

        check_new_password(reset.password, reset.password_confirm)

        UserService.set_password(db, user, reset.password, now)
        logger.info(f"Password reset completed: user_id={user.id}")
        return AuthService.issue_token(user, now=now)
