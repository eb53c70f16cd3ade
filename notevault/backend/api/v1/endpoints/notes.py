"""
Notes API Endpoints.

Create, inspect, read, delete and search ephemeral notes.

Ownership is proven by a capability token passed as ?token=; the token
returned by create and delete replaces the one the client held.
"""

from fastapi import APIRouter, Body, Query

from notevault.backend.core.config import get_app_config
from notevault.backend.core.dependencies import ClientSubject, DbSession, RequestId
from notevault.backend.core.exceptions import NotFoundError
from notevault.backend.schemas.base import ApiResponse, ResponseMetadata
from notevault.backend.schemas.note import (
    CreatedNote,
    DecryptedNote,
    DeletedNote,
    NoteCreate,
    NoteInfo,
    PassphraseBody,
)
from notevault.backend.services.note import NoteService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[CreatedNote],
    status_code=201,
    summary="Create a note",
    description=(
        "Create a note, optionally sealed under a passphrase. Returns the "
        "caller's token extended with a claim on the new note."
    ),
)
async def create_note(
    data: NoteCreate,
    db: DbSession,
    request_id: RequestId,
    subject: ClientSubject,
    token: str | None = Query(default=None, description="Existing capability token"),
) -> ApiResponse[CreatedNote]:
    """Create a new note."""
    service = NoteService(db)
    created = await service.create_note(data, token=token, subject=subject)
    return ApiResponse(data=created, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "",
    response_model=ApiResponse[list[NoteInfo]],
    summary="Search notes",
    description="Search discoverable plaintext notes by title (SQL LIKE pattern).",
)
async def search_notes(
    db: DbSession,
    request_id: RequestId,
    title: str = Query(..., min_length=1, max_length=255, description="Title pattern"),
    limit: int | None = Query(default=None, ge=1, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
) -> ApiResponse[list[NoteInfo]]:
    """Search notes by title."""
    if not get_app_config().features.note_search_enabled:
        raise NotFoundError("Note search is disabled")

    service = NoteService(db)
    notes = await service.search_notes(title, limit=limit, offset=offset)
    return ApiResponse(data=notes, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/{note_id}",
    response_model=ApiResponse[NoteInfo],
    summary="Get note metadata",
    description="Get a note's metadata without its content. Does not count as a read.",
)
async def get_note_info(
    note_id: str,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[NoteInfo]:
    """Get a note's metadata."""
    service = NoteService(db)
    info = await service.get_note_info(note_id)
    return ApiResponse(data=info, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/{note_id}",
    response_model=ApiResponse[DecryptedNote],
    summary="Read a note",
    description=(
        "Read a note's content. Sealed notes need their passphrase. Counts "
        "against delete_after_read."
    ),
)
async def read_note(
    note_id: str,
    db: DbSession,
    request_id: RequestId,
    body: PassphraseBody | None = Body(default=None),
) -> ApiResponse[DecryptedNote]:
    """Read a note."""
    service = NoteService(db)
    passphrase = body.passphrase if body else None
    note = await service.read_note(note_id, passphrase)
    return ApiResponse(data=note, metadata=ResponseMetadata(request_id=request_id))


@router.delete(
    "/{note_id}",
    response_model=ApiResponse[DeletedNote],
    summary="Delete a note",
    description=(
        "Delete a note with a token that claims it, or with its passphrase "
        "if the note allows that. Returns the token without the deleted claim."
    ),
)
async def delete_note(
    note_id: str,
    db: DbSession,
    request_id: RequestId,
    subject: ClientSubject,
    token: str | None = Query(default=None, description="Capability token"),
    body: PassphraseBody | None = Body(default=None),
) -> ApiResponse[DeletedNote]:
    """Delete a note."""
    service = NoteService(db)
    passphrase = body.passphrase if body else None
    deleted = await service.delete_note(
        note_id,
        token=token,
        passphrase=passphrase,
        subject=subject,
    )
    return ApiResponse(data=deleted, metadata=ResponseMetadata(request_id=request_id))
