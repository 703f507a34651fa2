"""Persistence: connection pool and key-value store capability."""

from .kv import KVStore, MemoryKV, PostgresKV

__all__ = ["KVStore", "MemoryKV", "PostgresKV"]
