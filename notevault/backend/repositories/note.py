"""
Note Repository.

Data access layer for notes: insert, point lookup, discoverable-title search,
delete, countdown update, and the bulk expiry delete used by the sweeper.
"""

from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.backend.models.note import Note
from notevault.backend.repositories.base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note model.

    Inherits insert/lookup/delete from BaseRepository and adds
    note-specific queries.
    """

    model = Note

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def search_discoverable(
        self,
        title: str,
        now: datetime,
        limit: int = 5,
        offset: int = 0,
    ) -> list[Note]:
        """
        Search discoverable notes by title (case-insensitive).

        Encrypted notes (either side) and expired notes are never listed,
        whatever their discoverable flag says.

        Args:
            title: ILIKE pattern; callers may include % wildcards
            now: Reference time for expiry
            limit: Maximum number of notes to return
            offset: Number of notes to skip

        Returns:
            Matching notes ordered by identifier
        """
        result = await self.session.execute(
            select(Note)
            .where(Note.title.ilike(title))
            .where(Note.discoverable == True)  # noqa: E712
            .where(Note.backend_encryption == False)  # noqa: E712
            .where(Note.frontend_encryption == False)  # noqa: E712
            .where(or_(Note.expires_at.is_(None), Note.expires_at > now))
            .order_by(Note.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def set_remaining_reads(self, id: str, remaining: int) -> None:
        """
        Persist a new delete_after_read countdown.

        This writes the value the caller computed from its own read, so two
        concurrent readers that observed the same count both write the same
        result.
        """
        await self.session.execute(
            update(Note)
            .where(Note.id == id)
            .values(delete_after_read=remaining)
        )
        await self.session.flush()

    async def delete_expired(self, now: datetime) -> int:
        """
        Delete every note whose expires_at is set and not after `now`.

        Returns:
            Number of notes deleted
        """
        result = await self.session.execute(
            delete(Note)
            .where(Note.expires_at.is_not(None))
            .where(Note.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount

    async def delete_if_expired(self, id: str, now: datetime) -> bool:
        """
        Delete one note if its expires_at is not after `now`.

        Returns:
            True if an expired note was removed
        """
        result = await self.session.execute(
            delete(Note)
            .where(Note.id == id)
            .where(Note.expires_at.is_not(None))
            .where(Note.expires_at <= now)
        )
        await self.session.flush()
        return result.rowcount > 0
