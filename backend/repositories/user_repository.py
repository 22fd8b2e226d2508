"""
User repository for database operations.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class UserRepository(BaseRepository[db_models.User]):
    """Repository for User entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize user repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    def get_by_email(self, email: str) -> Optional[db_models.User]:
        """
        Get user by email (case-insensitive).

        Args:
            email: User email

        Returns:
            User if found, None otherwise
        """
        return (
            self.db.query(db_models.User)
            .filter(db_models.User.email == email.strip().lower())
            .first()
        )

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def get_by_reset_token_hash(
        self, token_hash: str, now: datetime
    ) -> Optional[db_models.User]:
        """
        Get the user owning an unexpired password reset token.

        Args:
            token_hash: SHA-256 hex digest of the raw token
            now: Current time; tokens expiring at or before it are ignored

        Returns:
            User if the token matches and is still valid, None otherwise
        """
        return (
            self.db.query(db_models.User)
            .filter(
                db_models.User.password_reset_token_hash == token_hash,
                db_models.User.password_reset_expires > now,
            )
            .first()
        )

    def list_users(
        self,
        role: Optional[db_models.UserRole] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[List[db_models.User], int]:
        """
        List users, newest first, optionally filtered by role.

        Returns:
            Tuple of (users on this page, total matching users)
        """
        query = self.db.query(db_models.User)
        if role is not None:
            query = query.filter(db_models.User.role == role)

        total = query.count()
        users = (
            query.order_by(db_models.User.created_at.desc(), db_models.User.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return users, total

    def get_role_stats(self) -> List[dict]:
        """
        Aggregate users per role with their summed report counters.

        Returns:
            One dict per role present: role, count, reports_submitted,
            reports_resolved
        """
        rows = (
            self.db.query(
                db_models.User.role,
                func.count(db_models.User.id).label("count"),
                func.coalesce(func.sum(db_models.User.reports_submitted), 0).label(
                    "reports_submitted"
                ),
                func.coalesce(func.sum(db_models.User.reports_resolved), 0).label(
                    "reports_resolved"
                ),
            )
            .group_by(db_models.User.role)
            .order_by(db_models.User.role)
            .all()
        )
        return [
            {
                "role": row.role,
                "count": row.count,
                "reports_submitted": int(row.reports_submitted),
                "reports_resolved": int(row.reports_resolved),
            }
            for row in rows
        ]
