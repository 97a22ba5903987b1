"""Tests for database module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from escalator import database
from escalator.database import check_database_connection, close_database


class TestDatabaseConnection:
    """Tests for database connection utilities."""

    @pytest.mark.asyncio
    async def test_check_database_connection_returns_true_when_connected(self):
        """
        check_database_connection returns True when database is reachable.
        """
        with patch("escalator.database.get_engine") as mock_get_engine:
            mock_conn = AsyncMock()
            mock_conn.execute = AsyncMock()

            mock_connect = AsyncMock()
            mock_connect.__aenter__ = AsyncMock(return_value=mock_conn)
            mock_connect.__aexit__ = AsyncMock(return_value=None)

            mock_engine = MagicMock()
            mock_engine.connect.return_value = mock_connect
            mock_get_engine.return_value = mock_engine

            result = await check_database_connection()

            assert result is True
            mock_conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_check_database_connection_returns_false_on_exception(self):
        """
        check_database_connection returns False when database connection fails.
        """
        with patch("escalator.database.get_engine") as mock_get_engine:
            mock_engine = MagicMock()
            mock_engine.connect.side_effect = Exception("Connection refused")
            mock_get_engine.return_value = mock_engine

            result = await check_database_connection()

            assert result is False


class TestCloseDatabase:
    """Tests for engine disposal."""

    @pytest.mark.asyncio
    async def test_close_disposes_engine_and_session_maker(self):
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()

        with (
            patch.object(database, "_engine", mock_engine),
            patch.object(database, "_async_session_maker", MagicMock()),
        ):
            await close_database()

            mock_engine.dispose.assert_awaited_once()
            assert database._engine is None
            assert database._async_session_maker is None

    @pytest.mark.asyncio
    async def test_close_without_engine_is_noop(self):
        with patch.object(database, "_engine", None):
            await close_database()

            assert database._engine is None
