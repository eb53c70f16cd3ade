"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.

Taxonomy:
    validation     - ValidationError (field/reason pairs, never fatal)
    authorization  - NotFoundError on read paths, AuthorizationError and
                     InvalidTokenError on delete and token paths
    resource       - ConflictError (custom identifier already taken)
    backend        - DatabaseError, BackendError subclasses (logged, not retried)
"""

from enum import StrEnum


class FieldErrorKind(StrEnum):
    """Machine-readable reason attached to a rejected request field."""

    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    EMPTY = "empty"
    NOT_ALLOWED = "not_allowed"


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")

    @classmethod
    def from_fields(cls, errors: list[tuple[str, FieldErrorKind]]) -> "ValidationError":
        """Build a validation error from (field, kind) pairs."""
        return cls(
            "Request rejected by note policy",
            details={
                "errors": [
                    {"field": field, "error": str(kind)} for field, kind in errors
                ]
            },
        )


class AuthorizationError(ApplicationError):
    """Raised when authorization fails."""

    def __init__(self, message: str = "Permission denied", code: str = "AUTHZ_FORBIDDEN") -> None:
        super().__init__(message, code=code)


class InvalidTokenError(AuthorizationError):
    """Raised when a capability token is malformed or its signature is wrong."""

    def __init__(self, message: str = "Invalid capability token") -> None:
        super().__init__(message, code="AUTHZ_INVALID_TOKEN")


class TokenExpiredError(AuthorizationError):
    """Raised when a time-bound capability token is past its expiry."""

    def __init__(self, message: str = "Capability token expired") -> None:
        super().__init__(message, code="AUTHZ_TOKEN_EXPIRED")


class ConflictError(ApplicationError):
    """Raised when there is a state conflict."""

    def __init__(self, message: str = "Resource conflict", code: str = "RES_CONFLICT") -> None:
        super().__init__(message, code=code)


class IdentifierTakenError(ConflictError):
    """Raised when a caller-chosen note identifier is already in use."""

    def __init__(self, note_id: str) -> None:
        self.note_id = note_id
        super().__init__("Identifier has been taken", code="RES_ID_TAKEN")


class DatabaseError(ApplicationError):
    """Raised when a database operation fails."""

    def __init__(self, message: str = "Database error") -> None:
        super().__init__(message, code="SYS_DATABASE_ERROR")


class BackendError(ApplicationError):
    """Raised when an internal backend (signing, sealing) fails."""

    def __init__(self, message: str = "Backend failure", code: str = "SYS_BACKEND_ERROR") -> None:
        super().__init__(message, code=code)


class TokenIssueError(BackendError):
    """Raised when a capability token cannot be signed."""

    def __init__(self, message: str = "Capability token could not be issued") -> None:
        super().__init__(message, code="SYS_TOKEN_ISSUE_FAILED")


class SealingError(BackendError):
    """Raised when the sealing engine fails for reasons other than a bad passphrase."""

    def __init__(self, message: str = "Sealing engine failure") -> None:
        super().__init__(message, code="SYS_SEALING_FAILED")


class OrphanedNoteError(BackendError):
    """Raised when a note could not be removed after token issuance failed."""

    def __init__(self, note_id: str) -> None:
        self.note_id = note_id
        super().__init__(
            "Note was stored but no ownership token could be issued",
            code="SYS_ORPHANED_NOTE",
        )


class IdentifierSpaceExhaustedError(BackendError):
    """Raised when identifier generation keeps colliding past the attempt cap."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"No free identifier after {attempts} attempts",
            code="SYS_ID_SPACE_EXHAUSTED",
        )
