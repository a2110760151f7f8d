"""Storage backends for the recitation store.

A backend persists one list of serialized records per key (teachers,
students, recitations), much like a browser's key-value storage. The
store hands every changed collection to its backend after each mutation.

Backends:
- MemoryStorage: in-process dict, used by tests and throwaway sessions
- JsonFileStorage: one <key>.json file per key under a state directory
- SqliteStorage: see tilawa.db.storage_repository
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)

STORAGE_KEYS = ("teachers", "students", "recitations")


class StorageBackend(Protocol):
    """Key-value persistence for serialized record lists."""

    def load(self, key: str) -> list[dict[str, Any]] | None:
        """Return the stored records, or None if nothing usable is stored."""
        ...

    def save(self, key: str, records: list[dict[str, Any]]) -> None:
        """Replace the records stored under key."""
        ...

    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        ...


class MemoryStorage:
    """Backend that keeps deep copies of the records in a dict."""

    def __init__(self, initial: dict[str, list[dict[str, Any]]] | None = None):
        self._data: dict[str, list[dict[str, Any]]] = copy.deepcopy(initial or {})

    def load(self, key: str) -> list[dict[str, Any]] | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def save(self, key: str, records: list[dict[str, Any]]) -> None:
        self._data[key] = copy.deepcopy(records)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Backend writing each key to ``<state_dir>/<key>.json``."""

    def __init__(self, state_dir: Path | None = None):
        self.state_dir = state_dir or Path("data") / "state"

    def _path(self, key: str) -> Path:
        return self.state_dir / f"{key}.json"

    def load(self, key: str) -> list[dict[str, Any]] | None:
        path = self._path(key)
        if not path.exists():
            logger.debug("storage_key_not_found", key=key, path=str(path))
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("storage_load_failed", key=key, path=str(path), error=str(e))
            return None

        if not isinstance(data, list):
            logger.warning("storage_invalid_payload", key=key, got=type(data).__name__)
            return None
        return data

    def save(self, key: str, records: list[dict[str, Any]]) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)
        logger.debug("storage_saved", key=key, path=str(path), records=len(records))

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
