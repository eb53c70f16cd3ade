"""
Note Service.

Business logic layer for the note lifecycle: create (seal, allocate id,
insert, issue ownership token), read (lazy expiry, open, read countdown),
delete (token or passphrase proof), info, and title search.

Create is a two-participant sequence without a distributed transaction: if
no token can be issued for a freshly inserted note, the note is deleted
again so nothing is left that no credential can prove ownership of.

On read and delete paths a missing note, an expired note, and a wrong
passphrase produce the same error, so responses do not confirm that a note
exists.
"""

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from notevault.backend.core.concurrency import run_blocking
from notevault.backend.core.config import get_app_config
from notevault.backend.core.config_schema import NotesSchema
from notevault.backend.core.exceptions import (
    AuthorizationError,
    FieldErrorKind,
    InvalidTokenError,
    NotFoundError,
    OrphanedNoteError,
    SealingError,
    TokenIssueError,
    ValidationError,
)
from notevault.backend.core.sealing import (
    AuthenticationFailed,
    SealingPolicyError,
    open_sealed,
    passphrase_policy_violation,
    seal,
)
from notevault.backend.core.utils import utc_now
from notevault.backend.models.note import Note
from notevault.backend.repositories.note import NoteRepository
from notevault.backend.schemas.note import (
    CreatedNote,
    DecryptedNote,
    DeletedNote,
    NoteCreate,
    NoteInfo,
)
from notevault.backend.services.base import BaseService
from notevault.backend.services.identifier import IdentifierAllocator
from notevault.backend.services.token import TokenService

NOTE_NOT_FOUND = "Note not found"
DELETE_DENIED = "Not permitted to delete this note"


class NoteService(BaseService):
    """
    Service for the note lifecycle.

    Composes the note repository, the sealing engine, the identifier
    allocator and the token service.
    """

    def __init__(self, session: AsyncSession, notes_config: NotesSchema | None = None) -> None:
        super().__init__(session)
        self.repo = NoteRepository(session)
        self.tokens = TokenService(session)
        self.config = notes_config or get_app_config().notes
        self.identifiers = IdentifierAllocator(self.config.identifiers)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create_note(
        self,
        data: NoteCreate,
        token: str | None = None,
        subject: str = "unknown",
    ) -> CreatedNote:
        """
        Create a note and extend the caller's capability token with it.

        Args:
            data: Note creation data
            token: Caller's existing token, if any; an invalid one is replaced
            subject: Advisory client address recorded in the token

        Returns:
            Note metadata plus the new or extended token

        Raises:
            ValidationError: Policy violations, all fields reported at once
            IdentifierTakenError: Custom identifier already in use
            TokenIssueError: Token signing failed; the note was removed again
            OrphanedNoteError: Token signing failed and the removal failed too
        """
        self._validate_new_note(data)

        content = data.content.encode("utf-8")
        backend_encryption = data.passphrase is not None
        if backend_encryption:
            content = await self._seal(data.passphrase, content)

        created_at = utc_now()
        expires_at = (
            created_at + timedelta(seconds=data.lifetime_in_secs)
            if data.lifetime_in_secs is not None
            else None
        )

        async def insert(note_id: str) -> Note:
            return await self.repo.insert(
                id=note_id,
                title=data.title,
                content=content,
                discoverable=data.discoverable,
                frontend_encryption=data.is_currently_encrypted,
                backend_encryption=backend_encryption,
                allow_delete_with_passphrase=data.allow_delete_with_passphrase,
                delete_after_read=data.delete_after_read,
                created_at=created_at,
                expires_at=expires_at,
            )

        async def reclaim(note_id: str) -> bool:
            return await self.repo.delete_if_expired(note_id, created_at)

        note = await self._execute_db_operation(
            "create_note",
            self.identifiers.allocate(data.id, insert, reclaim),
        )
        self._log_operation(
            "Note created",
            note_id=note.id,
            backend_encryption=backend_encryption,
            expires_at=str(expires_at) if expires_at else None,
        )

        try:
            new_token = self.tokens.extend(token, note.id, note.created_at, subject)
        except TokenIssueError:
            await self._remove_unowned_note(note.id)
            raise

        return CreatedNote(**NoteInfo.model_validate(note).model_dump(), token=new_token)

    def _validate_new_note(self, data: NoteCreate) -> None:
        """Collect every policy violation of a create request."""
        policy = self.config
        errors: list[tuple[str, FieldErrorKind]] = []

        if not data.content:
            errors.append(("content", FieldErrorKind.EMPTY))

        if data.title is not None:
            self._check_length(
                errors,
                "title",
                data.title,
                min_length=policy.title.min_length,
                max_length=policy.title.max_length,
            )

        if data.id is not None and data.id.strip():
            self._check_length(
                errors,
                "id",
                data.id,
                max_length=policy.identifiers.custom_max_length,
            )

        if data.lifetime_in_secs is not None:
            if data.lifetime_in_secs < policy.lifetime.min_seconds:
                errors.append(("lifetime_in_secs", FieldErrorKind.TOO_SHORT))
            elif data.lifetime_in_secs > policy.lifetime.max_seconds:
                errors.append(("lifetime_in_secs", FieldErrorKind.TOO_LONG))

        if data.delete_after_read is not None and data.delete_after_read < 1:
            errors.append(("delete_after_read", FieldErrorKind.TOO_SHORT))

        if data.passphrase is not None:
            kind = passphrase_policy_violation(
                data.passphrase,
                policy.passphrase.min_length,
                policy.passphrase.max_length,
            )
            if kind is not None:
                errors.append(("passphrase", kind))
        elif data.allow_delete_with_passphrase:
            errors.append(("allow_delete_with_passphrase", FieldErrorKind.NOT_ALLOWED))

        if data.discoverable and (data.passphrase is not None or data.is_currently_encrypted):
            errors.append(("discoverable", FieldErrorKind.NOT_ALLOWED))

        self._raise_if_invalid(errors)

    async def _remove_unowned_note(self, note_id: str) -> None:
        """Compensating delete for a note whose token could not be issued."""
        try:
            await self.repo.delete_by_id(note_id)
        except Exception as e:
            self._logger.error(
                "Compensating delete failed; orphaned note",
                extra={"note_id": note_id, "error": str(e)},
            )
            raise OrphanedNoteError(note_id) from e
        self._logger.warning(
            "Note removed after token issuance failed",
            extra={"note_id": note_id},
        )

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    async def get_note_info(self, note_id: str) -> NoteInfo:
        """
        Get note metadata without content.

        Raises:
            NotFoundError: If the note is missing or expired
        """
        note = await self._get_live_note(note_id)
        return NoteInfo.model_validate(note)

    async def read_note(self, note_id: str, passphrase: str | None = None) -> DecryptedNote:
        """
        Read a note's content, opening it if it is sealed.

        A passphrase that breaks the length policy is rejected before the
        lookup. Missing note, expired note, missing passphrase for a sealed
        note and wrong passphrase all raise the same NotFoundError.

        Every successful read consumes one unit of delete_after_read; the
        read that would bring it to zero deletes the note instead.

        Raises:
            ValidationError: Passphrase outside the length policy
            NotFoundError: As described above
        """
        if passphrase:
            kind = passphrase_policy_violation(
                passphrase,
                self.config.passphrase.min_length,
                self.config.passphrase.max_length,
            )
            if kind is not None:
                raise ValidationError.from_fields([("passphrase", kind)])

        note = await self._get_live_note(note_id)

        if note.backend_encryption:
            if not passphrase:
                raise NotFoundError(NOTE_NOT_FOUND)
            content = await self._open(passphrase, note.content)
        else:
            content = note.content.decode("utf-8")

        info = NoteInfo.model_validate(note).model_dump()
        info["delete_after_read"] = await self._consume_read(note)
        return DecryptedNote(**info, content=content)

    async def _consume_read(self, note: Note) -> int | None:
        """
        Apply the read countdown. Returns the remaining count, 0 if deleted.

        Read-then-write without a lock: two concurrent reads that observed
        the same count both succeed and both write count - 1.
        """
        if note.delete_after_read is None:
            return None

        remaining = note.delete_after_read - 1
        if remaining <= 0:
            await self._execute_db_operation(
                "delete_read_note",
                self.repo.delete_by_id(note.id),
            )
            self._log_operation("Note deleted after final read", note_id=note.id)
            return 0

        await self._execute_db_operation(
            "decrement_reads",
            self.repo.set_remaining_reads(note.id, remaining),
        )
        return remaining

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def delete_note(
        self,
        note_id: str,
        token: str | None = None,
        passphrase: str | None = None,
        subject: str = "unknown",
    ) -> DeletedNote:
        """
        Delete a note after proving ownership.

        Paths, tried in order:
            1. the token claims exactly (note.id, note.created_at)
            2. the note allows passphrase deletion and the passphrase opens it

        If the caller's token verifies, the returned token no longer claims
        the deleted note.

        Raises:
            InvalidTokenError: Token malformed and the passphrase path failed
            AuthorizationError: No path succeeded, or the note does not exist
        """
        try:
            note = await self._get_live_note(note_id)
        except NotFoundError:
            raise AuthorizationError(DELETE_DENIED) from None

        authorized = False
        token_invalid = False
        if token:
            try:
                authorized = self.tokens.authorize_delete(token, note)
            except AuthorizationError:
                token_invalid = True

        content = None
        if not authorized and note.allow_delete_with_passphrase and passphrase:
            content = await self._open_for_delete(passphrase, note)
            authorized = content is not None

        if not authorized:
            self._log_debug("Delete refused", note_id=note.id)
            if token_invalid:
                raise InvalidTokenError()
            raise AuthorizationError(DELETE_DENIED)

        await self._execute_db_operation("delete_note", self.repo.delete_by_id(note.id))
        self._log_operation(
            "Note deleted",
            note_id=note.id,
            via="passphrase" if content is not None else "token",
        )

        new_token = None
        if token and not token_invalid:
            new_token = self.tokens.reissue_without(
                self.tokens.verify(token), note.id, subject
            )
        return DeletedNote(id=note.id, token=new_token, content=content)

    async def _open_for_delete(self, passphrase: str, note: Note) -> str | None:
        """Proof-of-knowledge for passphrase deletion. None on failure."""
        if passphrase_policy_violation(
            passphrase,
            self.config.passphrase.min_length,
            self.config.passphrase.max_length,
        ) is not None:
            return None
        try:
            return await self._open(passphrase, note.content)
        except NotFoundError:
            return None

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search_notes(
        self,
        title: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[NoteInfo]:
        """
        Search discoverable plaintext notes by title.

        Args:
            title: ILIKE pattern
            limit: Maximum results, capped at the configured maximum
            offset: Number to skip for pagination

        Returns:
            Metadata of matching notes
        """
        search = self.config.search
        effective_limit = min(limit or search.default_limit, search.max_limit)
        self._log_debug("Searching notes", limit=effective_limit, offset=offset)

        notes = await self._execute_db_operation(
            "search_notes",
            self.repo.search_discoverable(
                title,
                utc_now(),
                limit=effective_limit,
                offset=max(offset, 0),
            ),
        )
        return [NoteInfo.model_validate(note) for note in notes]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_live_note(self, note_id: str) -> Note:
        """
        Look up a note, deleting it if it has expired.

        The expiry delete is committed right away so it survives the
        rollback of the failing request.

        Raises:
            NotFoundError: If the note is missing or expired
        """
        note = await self._execute_db_operation(
            "get_note",
            self.repo.get_by_id_or_none(note_id),
        )
        if note is None:
            raise NotFoundError(NOTE_NOT_FOUND)

        if note.is_expired(utc_now()):
            await self._execute_db_operation(
                "expire_note",
                self.repo.delete_by_id(note.id),
            )
            await self._execute_db_operation("commit_expiry", self.session.commit())
            self._log_operation("Expired note deleted on access", note_id=note_id)
            raise NotFoundError(NOTE_NOT_FOUND)

        return note

    async def _seal(self, passphrase: str, plaintext: bytes) -> bytes:
        try:
            return await run_blocking(seal, passphrase, plaintext)
        except SealingPolicyError as e:
            raise ValidationError.from_fields([("passphrase", e.kind)]) from e
        except Exception as e:
            self._logger.error("Sealing failed", extra={"error_type": type(e).__name__})
            raise SealingError() from e

    async def _open(self, passphrase: str, blob: bytes) -> str:
        """
        Open sealed content. A failed open raises the not-found error.

        Raises:
            NotFoundError: Wrong passphrase or damaged blob
            SealingError: Content opened but is not valid UTF-8
        """
        try:
            plaintext = await run_blocking(open_sealed, passphrase, blob)
        except AuthenticationFailed:
            raise NotFoundError(NOTE_NOT_FOUND) from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SealingError("Sealed content is not valid text") from e
