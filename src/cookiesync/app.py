"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from cookiesync.adapters.policy_file import PolicyFileRuleEngine
from cookiesync.adapters.sqlalchemy.store import SqlAlchemySyncedStore, is_started, startup
from cookiesync.common import CallbackRuntime, bind_runtime, with_status
from cookiesync.config import get_policy_path, get_sync_config
from cookiesync.domain.reconciliation import (
    CanonicalStoreMirror,
    ReconciliationEngine,
    StatusReporter,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from pathlib import Path

    from cookiesync.config import SyncConfig
    from cookiesync.domain.model import Rule, RuleKey
    from cookiesync.domain.ports import RuleEngine, SyncedStore
    from cookiesync.domain.reconciliation import OperationResult, RuleSetObserver

log = getLogger(__name__)


@dataclass(slots=True)
class RuleSyncSession:
    """Everything one process needs to reconcile rules, wired together."""

    runtime: CallbackRuntime
    store: SyncedStore
    rule_engine: RuleEngine
    mirror: CanonicalStoreMirror
    status: StatusReporter
    engine: ReconciliationEngine

    async def open(self) -> Mapping[RuleKey, Rule]:
        """Start listening for store changes and load the canonical rule set."""

        self.mirror.start()
        return await self.mirror.load()

    def close(self) -> None:
        self.mirror.stop()


def build_session(
    *,
    store: SyncedStore,
    rule_engine: RuleEngine,
    runtime: CallbackRuntime,
    config: SyncConfig | None = None,
    status_sink: Callable[[str], object] | None = None,
    on_rules: RuleSetObserver | None = None,
) -> RuleSyncSession:
    """Wire a session around already constructed collaborators."""

    sync_config = config or get_sync_config()
    status = StatusReporter(sink=status_sink)
    api = with_status(status)(bind_runtime(runtime))
    mirror = CanonicalStoreMirror(store, api, storage_key=sync_config.storage_key)
    if on_rules is not None:
        mirror.subscribe(on_rules)
    engine = ReconciliationEngine(
        rule_engine=rule_engine,
        mirror=mirror,
        api=api,
        serialize_operations=sync_config.serialize_operations,
    )
    return RuleSyncSession(
        runtime=runtime,
        store=store,
        rule_engine=rule_engine,
        mirror=mirror,
        status=status,
        engine=engine,
    )


def build_default_session(
    *,
    policy_path: Path | None = None,
    config: SyncConfig | None = None,
    status_sink: Callable[[str], object] | None = None,
    on_rules: RuleSetObserver | None = None,
) -> RuleSyncSession:
    """Session backed by the configured database and policy file."""

    if not is_started():
        startup()
    runtime = CallbackRuntime()
    return build_session(
        store=SqlAlchemySyncedStore(runtime),
        rule_engine=PolicyFileRuleEngine(policy_path or get_policy_path(), runtime),
        runtime=runtime,
        config=config,
        status_sink=status_sink,
        on_rules=on_rules,
    )


type SessionFactory = Callable[[], RuleSyncSession]


def _run[T](
    session_factory: SessionFactory | None,
    action: Callable[[RuleSyncSession], Awaitable[T]],
) -> T:
    async def runner() -> T:
        session = (session_factory or build_default_session)()
        await session.open()
        try:
            return await action(session)
        finally:
            session.close()

    return asyncio.run(runner())


def list_rules(*, session_factory: SessionFactory | None = None) -> dict[RuleKey, Rule]:
    async def action(session: RuleSyncSession) -> dict[RuleKey, Rule]:
        return session.mirror.snapshot()

    return _run(session_factory, action)


def add_rule(rule: Rule, *, session_factory: SessionFactory | None = None) -> OperationResult:
    """Set ``rule`` in the rule engine and persist it to the synchronized store."""

    async def action(session: RuleSyncSession) -> OperationResult:
        return await session.engine.add_or_replace(rule)

    result = _run(session_factory, action)
    log.info("Add finished: ok=%s", result.ok)
    return result


def remove_rule(key: RuleKey, *, session_factory: SessionFactory | None = None) -> OperationResult:
    async def action(session: RuleSyncSession) -> OperationResult:
        return await session.engine.remove(key)

    result = _run(session_factory, action)
    log.info(
        "Remove finished: ok=%s, replayed=%s, failed=%s",
        result.ok,
        result.issued,
        len(result.failed_keys),
    )
    return result


def set_all_rules(*, session_factory: SessionFactory | None = None) -> OperationResult:
    async def action(session: RuleSyncSession) -> OperationResult:
        return await session.engine.set_all()

    result = _run(session_factory, action)
    log.info("Set-all finished: ok=%s, issued=%s", result.ok, result.issued)
    return result


def clear_all_rules(*, session_factory: SessionFactory | None = None) -> OperationResult:
    async def action(session: RuleSyncSession) -> OperationResult:
        return await session.engine.clear_all()

    return _run(session_factory, action)


class RebuildScheduler:
    """Start a rebuild for every replaced rule set and track the ones still running."""

    def __init__(self, engine: ReconciliationEngine) -> None:
        self._engine = engine
        self.pending: set[asyncio.Task[OperationResult]] = set()

    def __call__(self, rules: Mapping[RuleKey, Rule]) -> None:
        log.info("Canonical rule set changed (%s rule(s)), rebuilding", len(rules))
        task = asyncio.get_running_loop().create_task(self._engine.rebuild())
        self.pending.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[OperationResult]) -> None:
        self.pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.error("Rebuild crashed", exc_info=error)
            return
        result = task.result()
        if not result.ok:
            log.warning("Rebuild finished with errors: %s", result.error)

    async def drain(self) -> None:
        if self.pending:
            await asyncio.gather(*self.pending, return_exceptions=True)


def watch_rules(
    *,
    interval: float | None = None,
    session_factory: SessionFactory | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Follow replicated changes and re-apply them to the rule engine until stopped."""

    async def action(session: RuleSyncSession) -> None:
        store = session.store
        if not isinstance(store, SqlAlchemySyncedStore):
            raise TypeError(f"Watching requires a pollable store, got {type(store).__name__}")

        rebuilds = RebuildScheduler(session.engine)
        session.mirror.subscribe(rebuilds)
        await session.engine.rebuild()
        await store.watch(interval or get_sync_config().poll_seconds, stop=stop)
        await rebuilds.drain()

    _run(session_factory, action)
