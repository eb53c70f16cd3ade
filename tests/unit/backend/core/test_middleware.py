"""
Unit Tests for Request Context Middleware.

Tests the RequestContextMiddleware functionality including:
- Request ID generation and propagation
- Source extraction from X-Frontend-ID header
- Response timing headers
- Structlog context binding without query strings
"""

import pytest
from unittest.mock import MagicMock, patch

from starlette.requests import Request
from starlette.responses import Response


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    @pytest.fixture
    def middleware(self):
        from notevault.backend.core.middleware import RequestContextMiddleware

        return RequestContextMiddleware(MagicMock())

    @pytest.fixture
    def mock_request(self):
        request = MagicMock(spec=Request)
        request.headers = {}
        request.method = "DELETE"
        request.url = MagicMock()
        request.url.path = "/api/v1/notes/abc234"
        request.url.query = "token=secret-capability"
        request.client = MagicMock()
        request.client.host = "127.0.0.1"
        request.state = MagicMock()
        return request

    @staticmethod
    async def ok(request):
        return Response(content="OK", status_code=200)

    # -------------------------------------------------------------------------
    # Source (X-Frontend-ID)
    # -------------------------------------------------------------------------

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("web", "web"),
            ("cli", "cli"),
            ("WEB", "web"),
            ("custom-client", "unknown"),
            (None, "unknown"),
        ],
    )
    async def test_source_from_header(self, middleware, mock_request, header, expected):
        if header is not None:
            mock_request.headers = {"X-Frontend-ID": header}
        seen = {}

        async def call_next(request):
            seen["source"] = request.state.source
            return Response(content="OK", status_code=200)

        with patch("notevault.backend.core.middleware.structlog.contextvars") as mock_ctx:
            await middleware.dispatch(mock_request, call_next)

        assert seen["source"] == expected
        assert mock_ctx.bind_contextvars.call_args[1]["source"] == expected

    # -------------------------------------------------------------------------
    # X-Request-ID
    # -------------------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_generates_request_id_when_not_provided(self, middleware, mock_request):
        with patch("notevault.backend.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, self.ok)

        assert len(mock_request.state.request_id) == 36
        assert response.headers["X-Request-ID"] == mock_request.state.request_id

    @pytest.mark.asyncio
    async def test_uses_provided_request_id(self, middleware, mock_request):
        mock_request.headers = {"X-Request-ID": "custom-request-id-123"}

        with patch("notevault.backend.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, self.ok)

        assert response.headers["X-Request-ID"] == "custom-request-id-123"

    @pytest.mark.asyncio
    async def test_adds_response_time_header(self, middleware, mock_request):
        with patch("notevault.backend.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, self.ok)

        assert response.headers["X-Response-Time"].endswith("ms")

    # -------------------------------------------------------------------------
    # Structlog context
    # -------------------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_binds_path_without_query(self, middleware, mock_request):
        with patch("notevault.backend.core.middleware.structlog.contextvars") as mock_ctx:
            await middleware.dispatch(mock_request, self.ok)

        call_kwargs = mock_ctx.bind_contextvars.call_args[1]
        assert call_kwargs["method"] == "DELETE"
        assert call_kwargs["path"] == "/api/v1/notes/abc234"
        assert "secret-capability" not in repr(call_kwargs)

    @pytest.mark.asyncio
    async def test_clears_context_after_request(self, middleware, mock_request):
        with patch("notevault.backend.core.middleware.structlog.contextvars") as mock_ctx:
            await middleware.dispatch(mock_request, self.ok)

        assert mock_ctx.clear_contextvars.call_count == 2

    @pytest.mark.asyncio
    async def test_clears_context_and_reraises_on_exception(self, middleware, mock_request):
        async def call_next(request):
            raise RuntimeError("Something went wrong")

        with patch("notevault.backend.core.middleware.structlog.contextvars") as mock_ctx:
            with pytest.raises(RuntimeError, match="Something went wrong"):
                await middleware.dispatch(mock_request, call_next)

        assert mock_ctx.clear_contextvars.call_count == 2

    @pytest.mark.asyncio
    async def test_handles_missing_client(self, middleware, mock_request):
        mock_request.client = None

        with patch("notevault.backend.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, self.ok)

        assert response.status_code == 200
