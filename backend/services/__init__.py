"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .auth_service import AuthService
from .password_reset_service import PasswordResetService
from .report_service import ReportService
from .user_service import UserService

__all__ = [
    "AuthService",
    "PasswordResetService",
    "ReportService",
    "UserService",
]
