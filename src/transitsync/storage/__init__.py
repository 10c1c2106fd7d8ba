"""Persistence backends."""

from transitsync.storage.kv import InMemoryKeyValueStore, JsonFileKeyValueStore

__all__ = ["InMemoryKeyValueStore", "JsonFileKeyValueStore"]
