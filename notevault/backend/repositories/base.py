"""
Base Repository.

Base class for all repositories with common persistence operations.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.backend.core.logging import get_logger
from notevault.backend.models.base import Base

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class DuplicateKeyError(Exception):
    """Raised when an insert violates the primary key or a unique constraint."""


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common persistence operations.

    Subclasses should set the model class:

        class NoteRepository(BaseRepository[Note]):
            model = Note
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id_or_none(self, id: str) -> ModelType | None:
        """Get a single record by ID, returning None if not found."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def insert(self, **kwargs: Any) -> ModelType:
        """
        Insert a new record inside a SAVEPOINT.

        A key conflict only rolls back the savepoint, so the caller can retry
        on the same session.

        Raises:
            DuplicateKeyError: If the record collides with an existing key
        """
        instance = self.model(**kwargs)
        try:
            async with self.session.begin_nested():
                self.session.add(instance)
        except IntegrityError as e:
            error_str = str(e).lower()
            if "unique" in error_str or "duplicate" in error_str:
                raise DuplicateKeyError(str(kwargs.get("id"))) from e
            raise
        await self.session.refresh(instance)
        return instance

    async def delete_by_id(self, id: str) -> bool:
        """
        Delete a record by ID.

        Deleting a record that is already gone is a no-op.

        Returns:
            True if a row was removed
        """
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self.session.flush()
        return result.rowcount > 0

    async def exists(self, id: str) -> bool:
        """Check if a record exists by ID."""
        result = await self.session.execute(
            select(self.model.id).where(self.model.id == id)
        )
        return result.scalar_one_or_none() is not None
