"""SQLite storage backend.

Stores each collection as a JSON array in one row of the kv_store table.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from tilawa.db.database import DEFAULT_DB_PATH, get_db, init_db

logger = structlog.get_logger(__name__)


class SqliteStorage:
    """Backend persisting record lists to a SQLite database."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DEFAULT_DB_PATH
        init_db(self.db_path)

    def load(self, key: str) -> list[dict[str, Any]] | None:
        """Load the records stored under key.

        Returns:
            List of records, or None if the key is missing or corrupted
        """
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()

        if row is None:
            return None

        try:
            data = json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.error("sqlite_storage.load_failed", key=key, error=str(e))
            return None

        if not isinstance(data, list):
            logger.warning("sqlite_storage.invalid_payload", key=key)
            return None
        return data

    def save(self, key: str, records: list[dict[str, Any]]) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, datetime('now'))
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, json.dumps(records, ensure_ascii=False)),
            )

        logger.debug("sqlite_storage.saved", key=key, records=len(records))

    def delete(self, key: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
