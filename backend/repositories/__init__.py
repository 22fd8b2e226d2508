"""
Repository pattern implementation for data access layer.
"""

from .base import BaseRepository
from .report_repository import ReportFilters, ReportRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "ReportFilters",
    "ReportRepository",
    "UserRepository",
]
