"""
Identifier Allocation.

Short public identifiers for notes. A caller-chosen identifier gets exactly
one insert attempt; a generated identifier is redrawn on every collision
until the configured attempt cap, which turns an exhausted identifier space
into an explicit error instead of an endless loop.
"""

import secrets
from collections.abc import Awaitable, Callable

from tenacity import RetryError

from notevault.backend.core.config_schema import IdentifierSchema
from notevault.backend.core.exceptions import (
    IdentifierSpaceExhaustedError,
    IdentifierTakenError,
)
from notevault.backend.core.logging import get_logger
from notevault.backend.core.resilience import retry_on
from notevault.backend.models.note import Note
from notevault.backend.repositories.base import DuplicateKeyError

logger = get_logger(__name__)

NoteInsert = Callable[[str], Awaitable[Note]]
NoteReclaim = Callable[[str], Awaitable[bool]]


def generate_identifier(length: int, alphabet: str) -> str:
    """Draw a random identifier from the given alphabet."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


class IdentifierAllocator:
    """Allocates a note identifier by inserting the note under it."""

    def __init__(self, config: IdentifierSchema) -> None:
        self._config = config

    async def allocate(
        self,
        custom: str | None,
        insert: NoteInsert,
        reclaim: NoteReclaim | None = None,
    ) -> Note:
        """
        Insert a note under a custom or generated identifier.

        Args:
            custom: Caller-chosen identifier; blank or None means generate one
            insert: Coroutine function inserting the note under a given id
            reclaim: Coroutine function removing an expired note under a
                given id; True if one was removed. A taken custom id is
                retried once after a successful reclaim.

        Returns:
            The inserted note

        Raises:
            IdentifierTakenError: The custom identifier is held by a live note
            IdentifierSpaceExhaustedError: Generated ids kept colliding
        """
        if custom is not None and custom.strip():
            try:
                return await insert(custom)
            except DuplicateKeyError as e:
                if reclaim is None or not await reclaim(custom):
                    raise IdentifierTakenError(custom) from e
            logger.info("Reclaimed expired identifier", extra={"note_id": custom})
            try:
                return await insert(custom)
            except DuplicateKeyError as e:
                raise IdentifierTakenError(custom) from e

        retrying = retry_on(DuplicateKeyError, self._config.max_attempts)
        try:
            return await retrying(self._insert_generated, insert)
        except RetryError as e:
            logger.error(
                "Identifier space exhausted",
                extra={
                    "attempts": self._config.max_attempts,
                    "length": self._config.length,
                },
            )
            raise IdentifierSpaceExhaustedError(self._config.max_attempts) from e

    async def _insert_generated(self, insert: NoteInsert) -> Note:
        note_id = generate_identifier(self._config.length, self._config.alphabet)
        return await insert(note_id)
