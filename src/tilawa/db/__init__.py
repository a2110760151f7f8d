"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- SqliteStorage backend for the recitation store
"""

from tilawa.db.database import get_db, init_db
from tilawa.db.storage_repository import SqliteStorage

__all__ = ["get_db", "init_db", "SqliteStorage"]
