"""
Capability Token API Endpoints.

POST verifies a token, PUT merges two tokens, PATCH prunes claims for notes
that no longer exist.
"""

from fastapi import APIRouter

from notevault.backend.core.dependencies import ClientSubject, DbSession, RequestId
from notevault.backend.schemas.base import ApiResponse, ResponseMetadata
from notevault.backend.schemas.token import (
    ClaimSchema,
    TokenBody,
    TokenClaimsResponse,
    TokenPair,
    TokenResponse,
)
from notevault.backend.services.token import TokenService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[TokenClaimsResponse],
    summary="Verify a token",
    description="Check a token's signature and list the notes it claims.",
)
async def verify_token(
    body: TokenBody,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[TokenClaimsResponse]:
    service = TokenService(db)
    decoded = service.verify(body.token)
    data = TokenClaimsResponse(
        claims=[
            ClaimSchema(note_id=claim.note_id, created_at=claim.created_at)
            for claim in decoded.claims
        ],
        issued_at=decoded.issued_at,
        subject=decoded.subject,
    )
    return ApiResponse(data=data, metadata=ResponseMetadata(request_id=request_id))


@router.put(
    "",
    response_model=ApiResponse[TokenResponse],
    summary="Merge two tokens",
    description="Combine the claims of two tokens into a single token.",
)
async def merge_tokens(
    body: TokenPair,
    db: DbSession,
    request_id: RequestId,
    subject: ClientSubject,
) -> ApiResponse[TokenResponse]:
    service = TokenService(db)
    token = service.merge(body.first_token, body.second_token, subject)
    return ApiResponse(
        data=TokenResponse(token=token),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.patch(
    "",
    response_model=ApiResponse[TokenResponse],
    summary="Prune a token",
    description="Drop claims for notes that were deleted, expired or re-created.",
)
async def prune_token(
    body: TokenBody,
    db: DbSession,
    request_id: RequestId,
    subject: ClientSubject,
) -> ApiResponse[TokenResponse]:
    service = TokenService(db)
    token = await service.prune(body.token, subject)
    return ApiResponse(
        data=TokenResponse(token=token),
        metadata=ResponseMetadata(request_id=request_id),
    )
