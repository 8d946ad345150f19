"""Synchronization defaults for the reconciliation core."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_float, optional_env_var
from .errors import ConfigurationError

DEFAULT_STORAGE_KEY = "cookieSettings"
DEFAULT_POLL_SECONDS = 2.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    storage_key: str = DEFAULT_STORAGE_KEY
    poll_seconds: float = DEFAULT_POLL_SECONDS
    serialize_operations: bool = True

    def __post_init__(self) -> None:
        if not self.storage_key:
            raise ConfigurationError("Storage key must not be empty")
        if self.poll_seconds <= 0:
            raise ConfigurationError("Poll interval must be positive")


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        storage_key=optional_env_var("COOKIESYNC_STORAGE_KEY") or DEFAULT_STORAGE_KEY,
        poll_seconds=env_float("COOKIESYNC_POLL_SECONDS", DEFAULT_POLL_SECONDS),
        serialize_operations=env_bool("COOKIESYNC_SERIALIZE", default=True),
    )
