"""
Capability Token Signing.

Ownership of a note is proven by a signed, client-held capability token
rather than by a server-side user relation. A token carries an ordered list
of claims, each pairing a note identifier with the exact creation time of
the note it was issued for:

    {"ids": [["aB3xYz", "2026-10-18T07:00:00.123456"]], "iat": 1792306800, "sub": "203.0.113.7"}

Tokens are HMAC-signed JWTs. Nothing about them is stored server-side.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from notevault.backend.core.config import get_app_config, get_settings
from notevault.backend.core.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
    TokenIssueError,
)
from notevault.backend.core.logging import get_logger
from notevault.backend.core.utils import (
    from_timestamp_string,
    to_timestamp_string,
    utc_now,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Claim:
    """Assertion that the holder created note `note_id` at `created_at`."""

    note_id: str
    created_at: datetime


@dataclass
class CapabilityClaims:
    """Decoded content of a capability token."""

    claims: list[Claim] = field(default_factory=list)
    issued_at: datetime | None = None
    subject: str = "unknown"

    def contains(self, note_id: str, created_at: datetime) -> bool:
        """True if the exact (note_id, created_at) pair is claimed."""
        return Claim(note_id, created_at) in self.claims

    def note_ids(self) -> list[str]:
        return [claim.note_id for claim in self.claims]


def _epoch_seconds(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp())


def _encode_claims(claims: list[Claim]) -> list[list[str]]:
    return [[claim.note_id, to_timestamp_string(claim.created_at)] for claim in claims]


def _decode_claims(raw: Any) -> list[Claim]:
    if not isinstance(raw, list):
        raise InvalidTokenError()

    claims = []
    for entry in raw:
        if (
            not isinstance(entry, (list, tuple))
            or len(entry) != 2
            or not all(isinstance(part, str) for part in entry)
        ):
            raise InvalidTokenError()
        try:
            created_at = from_timestamp_string(entry[1])
        except ValueError as e:
            raise InvalidTokenError() from e
        claims.append(Claim(entry[0], created_at))
    return claims


def issue_capability_token(claims: list[Claim], subject: str = "unknown") -> str:
    """
    Sign a capability token over the given claims.

    Args:
        claims: Ordered ownership claims
        subject: Advisory binding to the issuing context (client address)

    Returns:
        Encoded token

    Raises:
        TokenIssueError: If the signing backend fails
    """
    token_config = get_app_config().security.capability
    now = utc_now()
    payload: dict[str, Any] = {
        "ids": _encode_claims(claims),
        "iat": _epoch_seconds(now),
        "sub": subject,
    }
    if token_config.token_lifetime_minutes is not None:
        expire = now + timedelta(minutes=token_config.token_lifetime_minutes)
        payload["exp"] = _epoch_seconds(expire)

    try:
        return jwt.encode(
            payload,
            get_settings().token_secret,
            algorithm=token_config.algorithm,
        )
    except (JWTError, TypeError, ValueError) as e:
        logger.error("Capability token signing failed", extra={"error": str(e)})
        raise TokenIssueError() from e


def decode_capability_token(token: str) -> CapabilityClaims:
    """
    Verify a capability token and return its claims.

    Expiry is only enforced when token_lifetime_minutes is configured; by
    default tokens never expire because note lifetimes are tracked per note.

    Raises:
        InvalidTokenError: Bad signature, malformed token, or malformed claims
        TokenExpiredError: Token carries an exp that has passed
    """
    token_config = get_app_config().security.capability
    verify_exp = token_config.token_lifetime_minutes is not None
    try:
        payload = jwt.decode(
            token,
            get_settings().token_secret,
            algorithms=[token_config.algorithm],
            options={"verify_exp": verify_exp, "verify_aud": False},
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError() from e
    except JWTError as e:
        logger.warning("Capability token rejected", extra={"error": str(e)})
        raise InvalidTokenError() from e

    issued_at = payload.get("iat")
    return CapabilityClaims(
        claims=_decode_claims(payload.get("ids", [])),
        issued_at=(
            datetime.fromtimestamp(issued_at, timezone.utc).replace(tzinfo=None)
            if isinstance(issued_at, (int, float))
            else None
        ),
        subject=str(payload.get("sub", "unknown")),
    )
