"""
Base Service.

Services own the business rules and sit between the endpoints and the
repositories. They receive the request-scoped session, translate storage
failures into DatabaseError, and collect field policy violations so a
single ValidationError reports all of them at once.
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.backend.core.exceptions import (
    DatabaseError,
    FieldErrorKind,
    ValidationError,
)
from notevault.backend.core.logging import get_logger

T = TypeVar("T")

FieldViolations = list[tuple[str, FieldErrorKind]]


class BaseService:
    """Shared plumbing for NoteService and TokenService."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._logger = get_logger(self.__class__.__module__)

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _execute_db_operation(self, operation: str, coro: Awaitable[T]) -> T:
        """
        Await a repository call, mapping SQLAlchemy failures to DatabaseError.

        ApplicationErrors raised inside the call pass through unchanged.

        Args:
            operation: Short name used in the log record and error message
            coro: The repository coroutine
        """
        try:
            return await coro
        except SQLAlchemyError as e:
            self._logger.error("Database error", extra={"operation": operation, "error": str(e)})
            raise DatabaseError(f"Database operation failed: {operation}") from e

    @staticmethod
    def _check_length(
        errors: FieldViolations,
        field_name: str,
        value: str,
        min_length: int | None = None,
        max_length: int | None = None,
    ) -> None:
        """Record at most one violation for `value`: empty, too_short or too_long."""
        if not value.strip():
            kind = FieldErrorKind.EMPTY
        elif min_length is not None and len(value) < min_length:
            kind = FieldErrorKind.TOO_SHORT
        elif max_length is not None and len(value) > max_length:
            kind = FieldErrorKind.TOO_LONG
        else:
            return
        errors.append((field_name, kind))

    @staticmethod
    def _raise_if_invalid(errors: FieldViolations) -> None:
        if errors:
            raise ValidationError.from_fields(errors)

    def _log(self, level: str, message: str, **context: Any) -> None:
        getattr(self._logger, level)(
            message, extra={"service": self.__class__.__name__, **context}
        )

    def _log_operation(self, operation: str, **context: Any) -> None:
        """State change worth keeping at INFO (deletions, creations)."""
        self._log("info", operation, **context)

    def _log_debug(self, message: str, **context: Any) -> None:
        self._log("debug", message, **context)
