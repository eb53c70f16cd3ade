# Request and response schemas for the note and token endpoints
from notevault.backend.schemas.base import (
    ApiResponse,
    ErrorDetail,
    ErrorResponse,
    FieldError,
    ResponseMetadata,
)
from notevault.backend.schemas.note import (
    CreatedNote,
    DecryptedNote,
    DeletedNote,
    NoteCreate,
    NoteInfo,
    PassphraseBody,
)
from notevault.backend.schemas.token import (
    ClaimSchema,
    TokenBody,
    TokenClaimsResponse,
    TokenPair,
    TokenResponse,
)

__all__ = [
    "ApiResponse",
    "ClaimSchema",
    "CreatedNote",
    "DecryptedNote",
    "DeletedNote",
    "ErrorDetail",
    "ErrorResponse",
    "FieldError",
    "NoteCreate",
    "NoteInfo",
    "PassphraseBody",
    "ResponseMetadata",
    "TokenBody",
    "TokenClaimsResponse",
    "TokenPair",
    "TokenResponse",
]
