"""
Core Utilities.

Shared time helpers used across the backend.
All modules should import utilities from this module.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application are timezone-naive and assumed
    to be UTC. Note creation times double as ownership nonces, so they keep
    full microsecond precision.

    Returns:
        Current UTC time with tzinfo stripped
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_timestamp_string(value: datetime) -> str:
    """Serialize a naive UTC datetime with fixed microsecond precision."""
    return value.isoformat(timespec="microseconds")


def from_timestamp_string(value: str) -> datetime:
    """
    Parse a timestamp produced by to_timestamp_string.

    Raises:
        ValueError: If the string is not an ISO-8601 timestamp
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
