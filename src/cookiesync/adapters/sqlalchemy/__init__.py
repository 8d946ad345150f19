"""SQLAlchemy adapter package for cookiesync."""

from __future__ import annotations

from .mappings import create_all_tables, metadata, synced_items_table
from .store import (
    SqlAlchemySyncedStore,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemySyncedStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
    "synced_items_table",
]
