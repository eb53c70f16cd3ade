"""
Note Schemas.

Pydantic schemas for note API request/response validation.

Request schemas only check types. Length and lifetime policy is enforced by
NoteService so that violations come back as (field, reason) pairs.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NoteCreate(BaseModel):
    """Schema for creating a new note."""

    id: str | None = Field(
        default=None,
        description="Custom identifier; a random one is generated when omitted",
        examples=["my-note"],
    )
    title: str | None = Field(
        default=None,
        description="Note title",
        examples=["Release checklist"],
    )
    content: str = Field(
        ...,
        description="Note content",
        examples=["hello"],
    )
    discoverable: bool = Field(
        default=False,
        description="List the note in title search (plaintext notes only)",
    )
    passphrase: str | None = Field(
        default=None,
        description="Seal the content server-side under this passphrase",
    )
    is_currently_encrypted: bool = Field(
        default=False,
        description="Content was already encrypted by the client",
    )
    lifetime_in_secs: int | None = Field(
        default=None,
        description="Seconds until the note expires",
        examples=[3600],
    )
    delete_after_read: int | None = Field(
        default=None,
        description="Number of reads before the note is deleted",
    )
    allow_delete_with_passphrase: bool = Field(
        default=False,
        description="Allow deletion by presenting the passphrase instead of a token",
    )


class PassphraseBody(BaseModel):
    """Request body carrying an optional passphrase."""

    passphrase: str | None = None


class NoteInfo(BaseModel):
    """Public metadata of a note. Never includes content."""

    id: str = Field(description="Note identifier")
    title: str | None = Field(description="Note title")
    discoverable: bool
    backend_encryption: bool = Field(description="Content is sealed server-side")
    frontend_encryption: bool = Field(description="Content was encrypted by the client")
    allow_delete_with_passphrase: bool
    delete_after_read: int | None = Field(description="Reads remaining before deletion")
    created_at: datetime = Field(description="Creation timestamp")
    expires_at: datetime | None = Field(description="Expiry timestamp")

    model_config = ConfigDict(from_attributes=True)


class CreatedNote(NoteInfo):
    """Response for note creation: metadata plus the caller's updated token."""

    token: str = Field(description="Capability token proving ownership")


class DecryptedNote(NoteInfo):
    """Response for a successful read."""

    content: str


class DeletedNote(BaseModel):
    """Response for a successful delete."""

    id: str
    token: str | None = Field(
        default=None,
        description="Caller's token with the consumed claim removed",
    )
    content: str | None = Field(
        default=None,
        description="Decrypted content when the delete was authorized by passphrase",
    )
