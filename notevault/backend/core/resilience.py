"""
Resilience Infrastructure.

Retry policies built on tenacity. Retries are reserved for failures the
service resolves on its own, such as a freshly generated note identifier
colliding with an existing row; storage and backend errors are surfaced to
the caller untouched.

Every retry is logged with `resilience_event="retry_attempt"`:

    jq 'select(.resilience_event != null)' logs/system.jsonl
"""

from typing import Any

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from notevault.backend.core.logging import get_logger

logger = get_logger(__name__)


def log_retry(retry_state: Any) -> None:
    """Tenacity before_sleep hook; retry_state is a tenacity.RetryCallState."""
    fn_name = getattr(retry_state.fn, "__name__", "unknown")

    elapsed_ms = None
    if retry_state.start_time and retry_state.outcome_timestamp:
        elapsed_ms = round((retry_state.outcome_timestamp - retry_state.start_time) * 1000)

    outcome = retry_state.outcome
    error = str(outcome.exception()) if outcome is not None and outcome.failed else None

    logger.warning(
        f"Retrying {fn_name} (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": fn_name,
            "attempt": retry_state.attempt_number,
            "duration_ms": elapsed_ms,
            "error": error,
        },
    )


def retry_on(
    exc_type: type[BaseException] | tuple[type[BaseException], ...],
    max_attempts: int,
) -> AsyncRetrying:
    """
    Immediate-retry policy for an internally resolvable failure.

    No backoff: the next attempt changes its input (a new random identifier),
    so waiting buys nothing. Exhaustion raises tenacity.RetryError.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(exc_type),
        before_sleep=log_retry,
    )
