"""Application configuration loader.

Loads configuration from data/config/tilawa_config_v1.yaml, falling back
to built-in defaults when the file is missing.

Usage:
    from tilawa.config.app_config import load_app_config, create_storage

    config = load_app_config()
    storage = create_storage(config)
"""

from __future__ import annotations

import hmac
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from tilawa.core.models import MAX_RECORDS
from tilawa.core.storage import JsonFileStorage, MemoryStorage, StorageBackend

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/tilawa_config_v1.yaml")

# Environment override for the storage backend
BACKEND_ENV = "TILAWA_STORAGE_BACKEND"

STORAGE_BACKENDS = ("json", "sqlite", "memory")


@dataclass
class StorageConfig:
    """Where the store keeps its collections."""

    backend: str = "json"
    state_dir: str = "data/state"
    db_path: str = "db/tilawa.db"


@dataclass
class LimitsConfig:
    """Capacity limits."""

    max_records: int = MAX_RECORDS


@dataclass
class ManagementConfig:
    """Settings for the management view (backup, reports, roster)."""

    passphrase: str = "321"


@dataclass
class AppConfig:
    """Application-wide configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    management: ManagementConfig = field(default_factory=ManagementConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "storage": {
            "backend": "json",
            "state_dir": "data/state",
            "db_path": "db/tilawa.db",
        },
        "limits": {
            "max_records": MAX_RECORDS,
        },
        "management": {
            "passphrase": "321",
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    storage_data = {**defaults["storage"], **(data.get("storage") or {})}
    backend = os.environ.get(BACKEND_ENV) or storage_data["backend"]
    if backend not in STORAGE_BACKENDS:
        logger.warning("unknown_storage_backend", backend=backend, fallback="json")
        backend = "json"

    storage = StorageConfig(
        backend=backend,
        state_dir=str(storage_data["state_dir"]),
        db_path=str(storage_data["db_path"]),
    )

    limits_data = {**defaults["limits"], **(data.get("limits") or {})}
    limits = LimitsConfig(max_records=int(limits_data["max_records"]))

    management_data = {**defaults["management"], **(data.get("management") or {})}
    management = ManagementConfig(passphrase=str(management_data["passphrase"]))

    return AppConfig(storage=storage, limits=limits, management=management)


def load_app_config(
    config_path: Path | None = None, force_reload: bool = False
) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        config_path: YAML file to read. Defaults to CONFIG_FILE.
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and config_path is None:
        return _cached_config

    path = config_path or CONFIG_FILE
    data: dict[str, Any]

    if path.exists():
        logger.debug("loading_app_config", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    config = _parse_config(data)
    if config_path is None:
        _cached_config = config
    return config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None


def verify_passphrase(candidate: str | None, config: AppConfig | None = None) -> bool:
    """Check a management passphrase in constant time."""
    if not candidate:
        return False
    expected = (config or load_app_config()).management.passphrase
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def create_storage(config: AppConfig | None = None, data_dir: Path | None = None) -> StorageBackend:
    """Build the storage backend named in the configuration.

    Args:
        config: Configuration to use. Defaults to load_app_config().
        data_dir: If given, relative state/db paths are resolved against it.

    Returns:
        A StorageBackend instance
    """
    config = config or load_app_config()
    storage = config.storage

    def _resolve(raw: str) -> Path:
        path = Path(raw)
        if data_dir is None or path.is_absolute():
            return path
        # "data/state" -> <data_dir>/state
        if path.parts and path.parts[0] == "data":
            return data_dir.joinpath(*path.parts[1:])
        return data_dir / path

    if storage.backend == "memory":
        return MemoryStorage()
    if storage.backend == "sqlite":
        # Imported here so the db package is only loaded when used
        from tilawa.db.storage_repository import SqliteStorage

        return SqliteStorage(_resolve(storage.db_path))
    return JsonFileStorage(_resolve(storage.state_dir))
