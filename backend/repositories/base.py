"""
Base repository class providing common database operations.
"""

from typing import Generic, TypeVar

from loguru import logger
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Type parameter T should be a SQLAlchemy model class.
    """

    def __init__(self, model: type[T], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """Get entity by primary key, or None."""
        return self.db.query(self.model).filter(self.model.id == id).first()

    def get_all(self, skip: int = 0, limit: int = 100) -> list[T]:
        """Get entities with offset pagination."""
        return self.db.query(self.model).offset(skip).limit(limit).all()

    def add(self, entity: T) -> None:
        """Add entity to the session without committing."""
        self.db.add(entity)

    def create(self, entity: T) -> T:
        """
        Insert a new entity and commit.

        Args:
            entity: Entity to create

        Returns:
            The persisted entity, refreshed from the database
        """
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def update(self, entity: T) -> T:
        """Commit pending changes on an entity and refresh it."""
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def delete(self, entity: T) -> None:
        """Delete entity and commit."""
        self.db.delete(entity)
        self.db.commit()

    def count(self) -> int:
        """Count all rows of this model."""
        return self.db.query(self.model).count()

    def increment_counter(self, entity_id: int, column: str, amount: int = 1) -> bool:
        """
        Atomically add ``amount`` to an integer column in its own transaction.

        Used for best-effort counters (duplicate counts, per-user report
        tallies) that run after the primary write has committed. A failure
        is logged and rolled back; it never propagates.

        Args:
            entity_id: Primary key of the row to update
            column: Name of the integer column
            amount: Value to add

        Returns:
            True if a row was updated, False otherwise
        """
        target = getattr(self.model, column)
        try:
            result = self.db.execute(
                update(self.model)
                .where(self.model.id == entity_id)
                .values({target: target + amount})
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                f"Counter update failed: {self.model.__name__}.{column} "
                f"id={entity_id}: {e!r}"
            )
            return False
        return bool(result.rowcount)

    def commit(self) -> None:
        """Commit the current transaction."""
        self.db.commit()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.db.rollback()

    def refresh(self, entity: T) -> None:
        """Reload entity state from the database."""
        self.db.refresh(entity)
