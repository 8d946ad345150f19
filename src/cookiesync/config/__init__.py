"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, optional_env_var
from .errors import ConfigurationError
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_policy_path,
    get_storage_config,
)
from .sync import SyncConfig, get_sync_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "get_database_config",
    "get_policy_path",
    "get_storage_config",
    "get_sync_config",
    "optional_env_var",
]
