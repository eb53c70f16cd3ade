"""
Capability Token Service.

Claim algebra over capability tokens: verify, merge, prune, extend after a
create, shrink after a delete, and the exact-match check that authorizes a
delete.

A claim (id, t) only ever authorizes anything while note `id` exists with
created_at == t. A note deleted and later re-created under the same id gets
a new created_at, so claims for the old note stop working.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from notevault.backend.core.security import (
    CapabilityClaims,
    Claim,
    decode_capability_token,
    issue_capability_token,
)
from notevault.backend.core.exceptions import AuthorizationError
from notevault.backend.core.utils import utc_now
from notevault.backend.models.note import Note
from notevault.backend.repositories.note import NoteRepository
from notevault.backend.services.base import BaseService


def merge_claims(first: list[Claim], second: list[Claim]) -> list[Claim]:
    """
    Fold `second` into `first`.

    A claim from `first` survives unless `second` claims the same note id
    with an equal or later timestamp; every claim from `second` is appended.
    Merging a claim list with itself returns it unchanged. The result is
    not associative across three or more lists.
    """
    latest_in_second = {claim.note_id: claim.created_at for claim in second}
    kept = [
        claim
        for claim in first
        if claim.note_id not in latest_in_second
        or claim.created_at > latest_in_second[claim.note_id]
    ]
    return kept + list(second)


def with_claim(claims: list[Claim], note_id: str, created_at: datetime) -> list[Claim]:
    """Replace any claim on `note_id` with a claim for the given creation time."""
    return [claim for claim in claims if claim.note_id != note_id] + [
        Claim(note_id, created_at)
    ]


def without_claim(claims: list[Claim], note_id: str) -> list[Claim]:
    """Drop every claim on `note_id`."""
    return [claim for claim in claims if claim.note_id != note_id]


class TokenService(BaseService):
    """
    Service for capability token operations.

    verify/merge/extend only touch the signing layer; prune consults the
    note store to discard claims for notes that are gone.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = NoteRepository(session)

    def verify(self, token: str) -> CapabilityClaims:
        """
        Verify a token and return its claims.

        Raises:
            InvalidTokenError: Bad signature or malformed token
            TokenExpiredError: Only when token expiry is configured
        """
        return decode_capability_token(token)

    def merge(self, first_token: str, second_token: str, subject: str) -> str:
        """
        Verify both tokens and sign the union of their claims.

        Raises:
            InvalidTokenError: If either token fails verification
            TokenIssueError: If the merged token cannot be signed
        """
        first = self.verify(first_token)
        second = self.verify(second_token)
        merged = merge_claims(first.claims, second.claims)
        self._log_debug(
            "Tokens merged",
            first_count=len(first.claims),
            second_count=len(second.claims),
            merged_count=len(merged),
        )
        return issue_capability_token(merged, subject)

    async def prune(self, token: str, subject: str) -> str:
        """
        Keep only the claims that still match a live note exactly.

        A claim is kept iff a note with that id exists, has not expired, and
        its created_at equals the claimed timestamp.

        Raises:
            InvalidTokenError: If the token fails verification
            TokenIssueError: If the pruned token cannot be signed
        """
        decoded = self.verify(token)
        now = utc_now()

        retained = []
        for claim in decoded.claims:
            note = await self._execute_db_operation(
                "prune_lookup",
                self.repo.get_by_id_or_none(claim.note_id),
            )
            if (
                note is not None
                and not note.is_expired(now)
                and note.created_at == claim.created_at
            ):
                retained.append(claim)

        self._log_debug(
            "Token pruned",
            before=len(decoded.claims),
            after=len(retained),
        )
        return issue_capability_token(retained, subject)

    def extend(
        self,
        token: str | None,
        note_id: str,
        created_at: datetime,
        subject: str,
    ) -> str:
        """
        Add a claim for a freshly created note.

        A missing token, or one that no longer verifies, is replaced by a
        fresh single-claim token.

        Raises:
            TokenIssueError: If signing fails
        """
        claims: list[Claim] = []
        if token:
            try:
                claims = self.verify(token).claims
            except AuthorizationError:
                self._log_debug("Caller token rejected, issuing fresh token")
                claims = []
        return issue_capability_token(with_claim(claims, note_id, created_at), subject)

    def authorize_delete(self, token: str | None, note: Note) -> bool:
        """
        True iff the token verifies and claims exactly (note.id, note.created_at).

        Raises:
            InvalidTokenError: If a token is supplied but is structurally invalid
        """
        if not token:
            return False
        return self.verify(token).contains(note.id, note.created_at)

    def reissue_without(self, claims: CapabilityClaims, note_id: str, subject: str) -> str:
        """Sign a token identical to `claims` minus any claim on `note_id`."""
        return issue_capability_token(without_claim(claims.claims, note_id), subject)
