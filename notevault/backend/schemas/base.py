"""
Response Envelope Schemas.

Every endpoint answers with the same envelope: `success`, `data` or `error`,
and `metadata` carrying the request id. Policy violations list one
FieldError per offending request field.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from notevault.backend.core.exceptions import FieldErrorKind
from notevault.backend.core.utils import utc_now

DataT = TypeVar("DataT")


class ResponseMetadata(BaseModel):
    """Correlation data attached to every response."""

    timestamp: datetime = Field(default_factory=utc_now, description="Response time (UTC)")
    request_id: str | None = Field(default=None, description="Echo of X-Request-ID")


class FieldError(BaseModel):
    """One rejected request field and the reason it was rejected."""

    field: str = Field(examples=["title"])
    error: FieldErrorKind = Field(examples=[FieldErrorKind.TOO_SHORT])


class ErrorDetail(BaseModel):
    """
    Machine-readable error.

    `details` holds `errors: list[FieldError]` for policy violations and
    `validation_errors` for malformed requests.
    """

    code: str = Field(examples=["RES_NOT_FOUND"])
    message: str
    details: dict[str, Any] | None = None


class ApiResponse(BaseModel, Generic[DataT]):
    """Successful response carrying `data`."""

    success: bool = True
    data: DataT | None = None
    error: ErrorDetail | None = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ErrorResponse(BaseModel):
    """Failed response carrying `error`."""

    success: bool = False
    data: None = None
    error: ErrorDetail
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)
