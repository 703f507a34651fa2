"""PostgresKV tests against a real database.

Skipped unless ALERTBOT_TEST_DATABASE_URL points at a disposable PostgreSQL.
"""

import os
import uuid

import pytest

from alertbot.db.connection import close_db, get_connection, init_db
from alertbot.db.kv import PostgresKV
from alertbot.errors import NotFound

DATABASE_URL = os.environ.get("ALERTBOT_TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not DATABASE_URL, reason="ALERTBOT_TEST_DATABASE_URL not set")


@pytest.fixture
async def pg_kv():
    await init_db(DATABASE_URL)
    kv = PostgresKV()
    await kv.ensure_schema()
    prefix = f"test/{uuid.uuid4().hex}"
    yield kv, prefix
    async with get_connection() as conn:
        await conn.execute("DELETE FROM kv_store WHERE key LIKE $1", prefix + "/%")
    await close_db()


class TestPostgresKV:

    @pytest.mark.asyncio
    async def test_put_get_overwrite(self, pg_kv):
        kv, prefix = pg_kv
        await kv.put(f"{prefix}/a", b"one")
        await kv.put(f"{prefix}/a", b"two")
        assert await kv.get(f"{prefix}/a") == b"two"

    @pytest.mark.asyncio
    async def test_get_missing(self, pg_kv):
        kv, prefix = pg_kv
        with pytest.raises(NotFound):
            await kv.get(f"{prefix}/missing")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, pg_kv):
        kv, prefix = pg_kv
        await kv.put(f"{prefix}/a", b"x")
        await kv.delete(f"{prefix}/a")
        await kv.delete(f"{prefix}/a")
        with pytest.raises(NotFound):
            await kv.get(f"{prefix}/a")

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_directory(self, pg_kv):
        kv, prefix = pg_kv
        await kv.put(f"{prefix}/chats/2", b"b")
        await kv.put(f"{prefix}/chats/1", b"a")
        await kv.put(f"{prefix}/chats_other/1", b"nope")

        assert await kv.list(f"{prefix}/chats") == [
            (f"{prefix}/chats/1", b"a"),
            (f"{prefix}/chats/2", b"b"),
        ]
