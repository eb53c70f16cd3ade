"""
Request Context Middleware.

Binds a request id and client source to structlog for the duration of each
request and reports timing in the response headers.

Headers:
- X-Request-ID: Unique request identifier (generated if not provided)
- X-Frontend-ID: Client kind (web, cli, api, internal); anything else is "unknown"
- X-Response-Time: Response duration in milliseconds

Query strings are never bound to the log context: capability tokens travel
in ?token= and must not reach the logs.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notevault.backend.core.logging import VALID_SOURCES, get_logger

logger = get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _client_source(header: str | None) -> str:
    source = (header or "").strip().lower()
    return source if source in VALID_SOURCES else "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets request.state.request_id and request.state.source for handlers."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        source = _client_source(request.headers.get("X-Frontend-ID"))

        request.state.request_id = request_id
        request.state.source = source
        start = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            source=source,
            method=request.method,
            path=request.url.path,
        )

        logger.debug(
            "Request started",
            extra={"client_host": request.client.host if request.client else None},
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed with exception",
                extra={
                    "duration_ms": _elapsed_ms(start),
                    "error_type": type(exc).__name__,
                },
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()

        duration_ms = _elapsed_ms(start)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        logger.debug(
            "Request completed",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
