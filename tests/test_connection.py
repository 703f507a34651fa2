"""Tests for database pool setup (no database needed)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from alertbot.db import connection
from alertbot.db.kv import PostgresKV
from alertbot.errors import BackendUnavailable


def test_redact_dsn():
    assert connection.redact_dsn("postgresql://bot:s3cr:et@db:5432/alertbot") == "postgresql://bot:***@db:5432/alertbot"
    assert connection.redact_dsn("postgresql://db/alertbot") == "postgresql://db/alertbot"


class TestInitDb:

    @pytest.fixture(autouse=True)
    def reset_pool(self, monkeypatch):
        monkeypatch.setattr(connection, "_pool", None)

    @pytest.mark.asyncio
    async def test_retries_until_database_is_ready(self, monkeypatch):
        pool = MagicMock()
        create_pool = AsyncMock(side_effect=[OSError("refused"), OSError("refused"), pool])
        monkeypatch.setattr(connection.asyncpg, "create_pool", create_pool)

        assert await connection.init_db("postgresql://db/x", retry_delays=(0, 0, 0)) is pool
        assert create_pool.await_count == 3
        assert connection.get_pool() is pool

    @pytest.mark.asyncio
    async def test_gives_up(self, monkeypatch):
        monkeypatch.setattr(connection.asyncpg, "create_pool", AsyncMock(side_effect=OSError("refused")))
        with pytest.raises(BackendUnavailable):
            await connection.init_db("postgresql://db/x", retry_delays=(0,))

    @pytest.mark.asyncio
    async def test_store_without_pool_is_unavailable(self):
        with pytest.raises(BackendUnavailable):
            await PostgresKV().get("telegram/chats/1")
