"""Key-value storage collaborators.

Responsibilities:
- Define the `get(keys) -> mapping` / `set(mapping)` storage contract.
- Provide an in-memory store and a JSON-file-backed store.

No cross-key transactions are offered; a single `set` call writes all of its
keys together, which callers use to keep paired values consistent.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
import threading
from typing import Any, Iterable, Mapping, Protocol


class KeyValueStore(Protocol):
    """Protocol for the host key-value store used by gateway components."""

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return stored values for the requested keys that exist."""

    def set(self, values: Mapping[str, Any]) -> None:
        """Persist all key/value pairs in `values`."""


class InMemoryKeyValueStore:
    """Process-local key-value store, mainly for tests and embedding."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        """Initialize the store with an optional seed mapping."""

        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._lock = threading.Lock()

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return deep copies of the requested values that exist."""

        with self._lock:
            return {
                key: copy.deepcopy(self._data[key]) for key in keys if key in self._data
            }

    def set(self, values: Mapping[str, Any]) -> None:
        """Store deep copies of the given values."""

        with self._lock:
            for key, value in values.items():
                self._data[key] = copy.deepcopy(value)

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of every stored key."""

        with self._lock:
            return copy.deepcopy(self._data)


class JsonFileKeyValueStore:
    """Key-value store persisted as one JSON object on disk.

    Every `set` rewrites the whole file through a temporary sibling file and
    an atomic rename.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store for a JSON file path (created lazily)."""

        self.path = path
        self._lock = threading.Lock()

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return stored values for the requested keys that exist."""

        with self._lock:
            payload = self._read()
        return {key: payload[key] for key in keys if key in payload}

    def set(self, values: Mapping[str, Any]) -> None:
        """Merge `values` into the file and persist it."""

        with self._lock:
            payload = self._read()
            payload.update(values)
            self._write(payload)

    def _read(self) -> dict[str, Any]:
        """Load the JSON object from disk, or an empty mapping when missing."""

        if not self.path.exists():
            return {}
        raw_text = self.path.read_text(encoding="utf-8")
        if not raw_text.strip():
            return {}
        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Storage file `{self.path}` is not valid JSON.") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"Storage file `{self.path}` must contain a JSON object.")
        return payload

    def _write(self, payload: Mapping[str, Any]) -> None:
        """Write the JSON object to disk atomically."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f"{self.path.name}.tmp")
        temp_path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        temp_path.replace(self.path)
