"""SQLite connection and schema management for the SQLite storage backend.

The schema is a single key/value table holding one JSON array per
collection. PRAGMA user_version tracks the schema revision.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_DB_PATH = Path("db/tilawa.db")
SCHEMA_VERSION = 1

# Path used when get_db() is called without one (set by init_db)
_db_path: Path | None = None


def init_db(db_path: Path | None = None) -> Path:
    """Create the database file and schema if needed.

    Args:
        db_path: Path to database file. Defaults to db/tilawa.db

    Returns:
        The database path in use
    """
    global _db_path
    _db_path = db_path or DEFAULT_DB_PATH

    with get_db(_db_path) as conn:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        if version < SCHEMA_VERSION:
            _create_schema(conn)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            logger.info("database.schema_created", path=str(_db_path), version=SCHEMA_VERSION)

    logger.debug("database.initialized", path=str(_db_path))
    return _db_path


@contextmanager
def get_db(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Open a connection; commit when the block succeeds, roll back otherwise.

    Example:
        with get_db() as conn:
            keys = [row["key"] for row in conn.execute("SELECT key FROM kv_store")]
    """
    path = db_path or _db_path or DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )
