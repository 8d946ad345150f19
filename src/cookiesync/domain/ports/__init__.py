"""Domain port definitions for adapters."""

from __future__ import annotations

from .rule_engine import RuleEngine
from .synced_store import (
    ChangeFeed,
    ChangeListener,
    ListenerRegistry,
    StorageChange,
    StorageChanges,
    StoredItems,
    StoredValue,
    SyncedStore,
)

__all__ = [
    "ChangeFeed",
    "ChangeListener",
    "ListenerRegistry",
    "RuleEngine",
    "StorageChange",
    "StorageChanges",
    "StoredItems",
    "StoredValue",
    "SyncedStore",
]
