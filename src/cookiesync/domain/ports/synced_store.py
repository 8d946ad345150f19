"""Port for the synchronized canonical store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

type StoredValue = object
type StoredItems = dict[str, StoredValue]
type ItemsCallback = Callable[[StoredItems], object]
type Completion = Callable[[], object]


@dataclass(frozen=True, slots=True)
class StorageChange:
    """Old and new value of one key; ``None`` means absent."""

    old_value: StoredValue | None = None
    new_value: StoredValue | None = None


type StorageChanges = Mapping[str, StorageChange]
type ChangeListener = Callable[[StorageChanges], object]


@runtime_checkable
class ChangeFeed(Protocol):
    """Notification feed for changes made by this or any other replica."""

    def add_listener(self, listener: ChangeListener, /) -> None: ...

    def remove_listener(self, listener: ChangeListener, /) -> None: ...

    def has_listener(self, listener: ChangeListener, /) -> bool: ...


@runtime_checkable
class SyncedStore(Protocol):
    """Callback-style persistent key-value store replicated across devices.

    ``get`` delivers a mapping that contains the key only when it has a value.
    Errors are reported through the shared callback runtime.
    """

    @property
    def on_changed(self) -> ChangeFeed: ...

    def get(self, key: str, callback: ItemsCallback, /) -> None: ...

    def set(self, items: Mapping[str, StoredValue], callback: Completion, /) -> None: ...

    def clear(self, callback: Completion, /) -> None: ...


class ListenerRegistry:
    """Plain :class:`ChangeFeed` implementation shared by store adapters."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def add_listener(self, listener: ChangeListener, /) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener, /) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def has_listener(self, listener: ChangeListener, /) -> bool:
        return listener in self._listeners

    def emit(self, changes: StorageChanges) -> None:
        if not changes:
            return
        for listener in tuple(self._listeners):
            listener(changes)
