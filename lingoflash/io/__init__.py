"""Storage collaborators for credentials, conversations, cache, and preferences."""

from .storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore

__all__ = ["InMemoryKeyValueStore", "JsonFileKeyValueStore", "KeyValueStore"]
