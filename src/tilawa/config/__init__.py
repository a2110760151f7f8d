"""Configuration package for the recitation tracker."""

from tilawa.config.app_config import (
    AppConfig,
    LimitsConfig,
    ManagementConfig,
    StorageConfig,
    clear_config_cache,
    create_storage,
    load_app_config,
    verify_passphrase,
)

__all__ = [
    "AppConfig",
    "LimitsConfig",
    "ManagementConfig",
    "StorageConfig",
    "clear_config_cache",
    "create_storage",
    "load_app_config",
    "verify_passphrase",
]
