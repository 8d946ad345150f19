"""Synchronized store backed by a shared SQLAlchemy database.

Every process pointing at the same database acts as one replica. Local writes
notify listeners directly; writes from other replicas are picked up by
:meth:`SqlAlchemySyncedStore.poll`.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import create_engine, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cookiesync.config import get_database_config
from cookiesync.domain.ports import ListenerRegistry, StorageChange

from .mappings import create_all_tables, synced_items_table

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

    from cookiesync.common import CallbackRuntime
    from cookiesync.domain.ports import ChangeFeed, StorageChanges, StoredValue
    from cookiesync.domain.ports.synced_store import Completion, ItemsCallback

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy store not initialised. Call cookiesync.adapters.sqlalchemy."
                "store.startup() before creating a store."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, tables, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy store already initialised. Pass force=True to reconfigure.")

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


@dataclass(frozen=True, slots=True)
class _KnownItem:
    version: str
    value: StoredValue


class SqlAlchemySyncedStore:
    """Callback-style key-value store; values are stored as JSON text."""

    def __init__(
        self,
        runtime: CallbackRuntime,
        *,
        session_factory: sessionmaker[Session] | None = None,
    ) -> None:
        self._runtime = runtime
        self._session_factory = session_factory or _STATE.session_factory
        self._feed = ListenerRegistry()
        self._known: dict[str, _KnownItem] | None = None

    @property
    def on_changed(self) -> ChangeFeed:
        return self._feed

    def get(self, key: str, callback: ItemsCallback, /) -> None:
        try:
            self._baseline()
            with self._session_factory() as session:
                raw = session.execute(
                    select(synced_items_table.c.value).where(synced_items_table.c.key == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            self._runtime.fail(callback, f"Could not read {key!r} from the store: {exc}")
            return
        self._runtime.complete(callback, {} if raw is None else {key: json.loads(raw)})

    def set(self, items: Mapping[str, StoredValue], callback: Completion, /) -> None:
        try:
            encoded = {key: json.dumps(value, sort_keys=True) for key, value in items.items()}
        except (TypeError, ValueError) as exc:
            self._runtime.fail(callback, f"Value is not JSON serializable: {exc}")
            return

        written: dict[str, _KnownItem] = {}
        try:
            known = self._baseline()
            now = datetime.now(UTC)
            with self._session_factory.begin() as session:
                for key, raw in encoded.items():
                    version = uuid4().hex
                    exists = session.execute(
                        select(synced_items_table.c.key).where(synced_items_table.c.key == key)
                    ).scalar_one_or_none()
                    values = {"value": raw, "version": version, "updated_at": now}
                    if exists is None:
                        session.execute(insert(synced_items_table).values(key=key, **values))
                    else:
                        session.execute(
                            update(synced_items_table)
                            .where(synced_items_table.c.key == key)
                            .values(**values)
                        )
                    written[key] = _KnownItem(version=version, value=json.loads(raw))
        except SQLAlchemyError as exc:
            self._runtime.fail(callback, f"Could not write to the store: {exc}")
            return

        changes: dict[str, StorageChange] = {}
        for key, item in written.items():
            previous = known.get(key)
            old_value = previous.value if previous is not None else None
            known[key] = item
            if old_value != item.value:
                changes[key] = StorageChange(old_value=old_value, new_value=item.value)
        self._notify(changes)
        self._runtime.complete(callback)

    def clear(self, callback: Completion, /) -> None:
        try:
            known = self._baseline()
            with self._session_factory.begin() as session:
                session.execute(delete(synced_items_table))
        except SQLAlchemyError as exc:
            self._runtime.fail(callback, f"Could not clear the store: {exc}")
            return

        changes = {
            key: StorageChange(old_value=item.value, new_value=None) for key, item in known.items()
        }
        known.clear()
        self._notify(changes)
        self._runtime.complete(callback)

    def poll(self) -> StorageChanges:
        """Notify listeners about writes made by other replicas since the last look."""

        if self._known is None:
            self._known = self._read_all()
            return {}

        current = self._read_all()
        changes: dict[str, StorageChange] = {}
        for key, item in current.items():
            previous = self._known.get(key)
            if previous is None or previous.version != item.version:
                old_value = previous.value if previous is not None else None
                changes[key] = StorageChange(old_value=old_value, new_value=item.value)
        for key in self._known.keys() - current.keys():
            changes[key] = StorageChange(old_value=self._known[key].value, new_value=None)

        self._known = current
        if changes:
            log.info("Picked up %s change(s) from other replicas", len(changes))
            self._feed.emit(changes)
        return changes

    async def watch(self, interval: float, *, stop: asyncio.Event | None = None) -> None:
        """Poll every ``interval`` seconds until ``stop`` is set."""

        while stop is None or not stop.is_set():
            try:
                self.poll()
            except SQLAlchemyError:
                log.exception("Polling the synchronized store failed")
            if stop is None:
                await asyncio.sleep(interval)
                continue
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                continue

    def _baseline(self) -> dict[str, _KnownItem]:
        if self._known is None:
            self._known = self._read_all()
        return self._known

    def _read_all(self) -> dict[str, _KnownItem]:
        with self._session_factory() as session:
            rows = session.execute(
                select(
                    synced_items_table.c.key,
                    synced_items_table.c.value,
                    synced_items_table.c.version,
                )
            ).all()
        return {
            row.key: _KnownItem(version=row.version, value=json.loads(row.value)) for row in rows
        }

    def _notify(self, changes: StorageChanges) -> None:
        if changes:
            asyncio.get_running_loop().call_soon(self._feed.emit, changes)
