"""
FastAPI Dependencies.

Annotated aliases the note and token endpoints declare in their signatures:

    DbSession       request-scoped AsyncSession, committed by get_db_session
    RequestId       inbound X-Request-ID or a fresh UUID4
    ClientSubject   caller address, stamped into issued capability tokens
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.backend.core.database import get_db_session

UNKNOWN_SUBJECT = "unknown"

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def get_client_subject(request: Request) -> str:
    """Advisory token subject; authorization never reads it back."""
    if request.client is None or not request.client.host:
        return UNKNOWN_SUBJECT
    return request.client.host


ClientSubject = Annotated[str, Depends(get_client_subject)]
