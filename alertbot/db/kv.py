"""Key-value store capability.

Only single-key atomic operations are offered: get, put, delete and a
prefix listing. Keys look like ``<namespace>/<entity-id>``.
"""

import logging
from abc import ABC, abstractmethod

import asyncpg

from ..errors import BackendUnavailable, NotFound
from .connection import get_connection

logger = logging.getLogger("alertbot.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value BYTEA NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

_DB_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)


class KVStore(ABC):
    """Single-key store used by the subscription layer."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the value for key, raising NotFound if absent."""

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Create or overwrite key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key. Deleting a missing key is not an error."""

    @abstractmethod
    async def list(self, prefix: str) -> list[tuple[str, bytes]]:
        """Return every (key, value) pair under the ``prefix/`` directory."""


def _directory(prefix: str) -> str:
    return prefix if prefix.endswith("/") else prefix + "/"


class MemoryKV(KVStore):
    """Dict-backed store. Listing follows insertion order."""

    def __init__(self):
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes:
        try:
            return self._data[key]
        except KeyError:
            raise NotFound(key) from None

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self, prefix: str) -> list[tuple[str, bytes]]:
        directory = _directory(prefix)
        return [(k, v) for k, v in self._data.items() if k.startswith(directory)]


class PostgresKV(KVStore):
    """Store backed by the ``kv_store`` table. Listing is ordered by key."""

    async def ensure_schema(self) -> None:
        """Create the kv_store table if missing."""
        try:
            async with get_connection() as conn:
                await conn.execute(SCHEMA)
        except _DB_ERRORS as e:
            raise BackendUnavailable(f"schema setup failed: {e}") from e

    async def get(self, key: str) -> bytes:
        try:
            async with get_connection() as conn:
                row = await conn.fetchrow("SELECT value FROM kv_store WHERE key = $1", key)
        except _DB_ERRORS as e:
            raise BackendUnavailable(f"get {key}: {e}") from e
        if row is None:
            raise NotFound(key)
        return bytes(row["value"])

    async def put(self, key: str, value: bytes) -> None:
        try:
            async with get_connection() as conn:
                await conn.execute("""
                    INSERT INTO kv_store (key, value) VALUES ($1, $2)
                    ON CONFLICT (key) DO UPDATE SET value = $2, updated_at = NOW()
                """, key, value)
        except _DB_ERRORS as e:
            raise BackendUnavailable(f"put {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            async with get_connection() as conn:
                await conn.execute("DELETE FROM kv_store WHERE key = $1", key)
        except _DB_ERRORS as e:
            raise BackendUnavailable(f"delete {key}: {e}") from e

    async def list(self, prefix: str) -> list[tuple[str, bytes]]:
        directory = _directory(prefix)
        # LIKE metacharacters in the prefix are escaped
        pattern = directory.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        try:
            async with get_connection() as conn:
                rows = await conn.fetch(
                    "SELECT key, value FROM kv_store WHERE key LIKE $1 ORDER BY key", pattern
                )
        except _DB_ERRORS as e:
            raise BackendUnavailable(f"list {prefix}: {e}") from e
        return [(row["key"], bytes(row["value"])) for row in rows]
