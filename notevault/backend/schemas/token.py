"""
Capability Token Schemas.

Request and response bodies for the /token endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenBody(BaseModel):
    """A single capability token."""

    token: str = Field(..., min_length=1)


class TokenPair(BaseModel):
    """Two capability tokens to combine."""

    first_token: str = Field(..., min_length=1)
    second_token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """A freshly signed capability token."""

    token: str


class ClaimSchema(BaseModel):
    """One ownership claim."""

    note_id: str
    created_at: datetime


class TokenClaimsResponse(BaseModel):
    """Verified content of a capability token."""

    claims: list[ClaimSchema]
    issued_at: datetime | None
    subject: str
