"""
Unit Test Fixtures.

Nothing here touches a database, Redis or the filesystem: sessions are
AsyncMocks, secrets are MagicMocks and notes are detached ORM instances.
"""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notevault.backend.core.config_schema import (
    CapabilityTokenSchema,
    IdentifierSchema,
    LifetimePolicySchema,
    NotesSchema,
    PassphrasePolicySchema,
    SearchSchema,
    SweeperSchema,
    TitlePolicySchema,
)
from notevault.backend.models.note import Note

TEST_TOKEN_SECRET = "unit-test-token-secret-that-is-long-enough"

NOTE_CREATED_AT = datetime(2026, 1, 2, 3, 4, 5, 678901)


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """AsyncSession stand-in; `add` is synchronous on the real thing."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def notes_config() -> NotesSchema:
    """Note policy with the shipped defaults."""
    return NotesSchema(
        passphrase=PassphrasePolicySchema(),
        title=TitlePolicySchema(),
        lifetime=LifetimePolicySchema(),
        identifiers=IdentifierSchema(),
        search=SearchSchema(),
        sweeper=SweeperSchema(),
    )


@pytest.fixture
def mock_settings() -> MagicMock:
    settings = MagicMock()
    settings.db_password = "test_pass"
    settings.redis_password = ""
    settings.token_secret = TEST_TOKEN_SECRET
    return settings


@pytest.fixture
def token_config() -> SimpleNamespace:
    """App config stand-in exposing only security.capability."""
    return SimpleNamespace(
        security=SimpleNamespace(capability=CapabilityTokenSchema(algorithm="HS512")),
    )


@pytest.fixture
def token_env(mock_settings, token_config):
    """Sign and verify capability tokens with the test secret."""
    with (
        patch("notevault.backend.core.security.get_settings", return_value=mock_settings),
        patch("notevault.backend.core.security.get_app_config", return_value=token_config),
    ):
        yield token_config


@pytest.fixture
def make_note():
    """
    Factory for detached Note rows.

    Usage:
        note = make_note(id="xyz789", backend_encryption=True)
    """

    def _make(**overrides) -> Note:
        values = {
            "id": "abc234",
            "title": None,
            "content": b"hello",
            "discoverable": False,
            "frontend_encryption": False,
            "backend_encryption": False,
            "allow_delete_with_passphrase": False,
            "delete_after_read": None,
            "created_at": NOTE_CREATED_AT,
            "expires_at": None,
        }
        values.update(overrides)
        return Note(**values)

    return _make


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()
