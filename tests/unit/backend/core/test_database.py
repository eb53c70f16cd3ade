"""Unit tests for session handling in notevault.backend.core.database."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notevault.backend.core import database
from notevault.backend.core.database import dispose_engine, transaction


@pytest.fixture
def session_factory(mock_db_session):
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_db_session
    factory.return_value.__aexit__.return_value = False
    return factory


class TestTransaction:
    @pytest.mark.asyncio
    async def test_commits_on_clean_exit(self, session_factory, mock_db_session):
        async with transaction(session_factory) as session:
            assert session is mock_db_session

        mock_db_session.commit.assert_awaited_once()
        mock_db_session.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises(self, session_factory, mock_db_session):
        with pytest.raises(RuntimeError):
            async with transaction(session_factory):
                raise RuntimeError("boom")

        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_defaults_to_shared_factory(self, session_factory):
        with patch.object(database, "get_session_factory", return_value=session_factory):
            async with transaction():
                pass

        session_factory.assert_called_once()


class TestDisposeEngine:
    @pytest.mark.asyncio
    async def test_disposes_and_resets(self):
        engine = MagicMock()
        engine.dispose = AsyncMock()

        with patch.object(database, "_engine", engine), patch.object(database, "_session_factory", MagicMock()):
            await dispose_engine()
            assert database._engine is None
            assert database._session_factory is None

        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_noop_without_engine(self):
        with patch.object(database, "_engine", None):
            await dispose_engine()
