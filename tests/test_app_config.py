"""Tests for app configuration.

Covers YAML loading, defaults, the backend override and storage creation.
"""

from pathlib import Path

from tilawa.config.app_config import (
    BACKEND_ENV,
    AppConfig,
    StorageConfig,
    clear_config_cache,
    create_storage,
    load_app_config,
    verify_passphrase,
)
from tilawa.core.storage import JsonFileStorage, MemoryStorage
from tilawa.db.storage_repository import SqliteStorage


def _write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadAppConfig:
    """Tests for load_app_config."""

    def test_defaults_when_missing(self, tmp_path):
        """Missing file falls back to built-in defaults."""
        config = load_app_config(tmp_path / "nope.yaml")
        assert isinstance(config, AppConfig)
        assert config.storage.backend == "json"
        assert config.limits.max_records == 999
        assert config.management.passphrase == "321"

    def test_load_from_yaml(self, tmp_path):
        path = _write_config(
            tmp_path / "config.yaml",
            "storage:\n  backend: sqlite\nlimits:\n  max_records: 50\n",
        )
        config = load_app_config(path)
        assert config.storage.backend == "sqlite"
        assert config.storage.state_dir == "data/state"
        assert config.limits.max_records == 50

    def test_env_overrides_backend(self, tmp_path, monkeypatch):
        monkeypatch.setenv(BACKEND_ENV, "memory")
        config = load_app_config(tmp_path / "nope.yaml")
        assert config.storage.backend == "memory"

    def test_unknown_backend_falls_back(self, tmp_path):
        path = _write_config(tmp_path / "config.yaml", "storage:\n  backend: redis\n")
        assert load_app_config(path).storage.backend == "json"

    def test_cache(self, tmp_path, monkeypatch):
        """The default config is cached until cleared."""
        monkeypatch.chdir(tmp_path)
        first = load_app_config()
        assert load_app_config() is first
        clear_config_cache()
        assert load_app_config() is not first


class TestVerifyPassphrase:
    """Tests for verify_passphrase."""

    def test_default_passphrase(self):
        config = AppConfig()
        assert verify_passphrase("321", config)
        assert not verify_passphrase("123", config)
        assert not verify_passphrase("", config)
        assert not verify_passphrase(None, config)


class TestCreateStorage:
    """Tests for create_storage."""

    def test_json_under_data_dir(self, tmp_path):
        storage = create_storage(AppConfig(), data_dir=tmp_path)
        assert isinstance(storage, JsonFileStorage)
        assert storage.state_dir == tmp_path / "state"

    def test_sqlite_under_data_dir(self, tmp_path):
        config = AppConfig(storage=StorageConfig(backend="sqlite"))
        storage = create_storage(config, data_dir=tmp_path)
        assert isinstance(storage, SqliteStorage)
        assert storage.db_path == tmp_path / "db" / "tilawa.db"

    def test_memory(self):
        config = AppConfig(storage=StorageConfig(backend="memory"))
        assert isinstance(create_storage(config), MemoryStorage)
