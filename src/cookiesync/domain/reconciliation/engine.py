"""Keep the live rule engine consistent with the canonical rule set.

The rule engine can only set one rule or clear everything, so removing a
single rule is done by clearing the engine and replaying every remaining rule.
The canonical set in the synchronized store stays the source of truth: a rule
whose replay fails is still persisted, so a later :meth:`set_all` or
:meth:`add_or_replace` can restore it in the engine.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from cookiesync.common import CallbackApiError
from cookiesync.domain.model import rule_key, with_rule, without_key

from .settle import settle_all

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from cookiesync.common import CallApi
    from cookiesync.domain.model import Rule, RuleKey
    from cookiesync.domain.ports import RuleEngine

    from .mirror import CanonicalStoreMirror

log = getLogger(__name__)


class Operation(StrEnum):
    ADD_OR_REPLACE = "add_or_replace"
    SET_ALL = "set_all"
    REMOVE = "remove"
    CLEAR_ALL = "clear_all"
    REBUILD = "rebuild"


class ReconciliationPhase(StrEnum):
    """Progress of a clear-then-replay run (remove, rebuild); never moves backwards."""

    IDLE = "idle"
    CLEARING = "clearing"
    REPLAYING = "replaying"
    PERSISTING = "persisting"


@dataclass(slots=True, kw_only=True)
class OperationResult:
    """Summary of one reconciliation operation."""

    operation: Operation
    ok: bool
    error: str | None = None
    issued: int = 0
    failed_keys: tuple[RuleKey, ...] = ()


@dataclass(slots=True)
class ReconciliationEngine:
    """Apply rule-set intents to the rule engine and the synchronized store.

    None of the operations raise for failed external calls; failures end up in
    the returned :class:`OperationResult` (and in the status observer attached
    to ``api``).

    ``pending_replays`` counts set-calls still outstanding across every running
    replay.
    """

    rule_engine: RuleEngine
    mirror: CanonicalStoreMirror
    api: CallApi
    serialize_operations: bool = True
    phase: ReconciliationPhase = field(default=ReconciliationPhase.IDLE, init=False)
    pending_replays: int = field(default=0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def add_or_replace(self, rule: Rule) -> OperationResult:
        """Set ``rule`` in the engine, then persist it under its key."""

        async with self._exclusive():
            log.info("Setting rule %s to %s", rule_key(rule), rule.setting)
            try:
                await self.api(self.rule_engine, "set", rule)
                updated = with_rule(self.mirror.rules, rule)
                await self.mirror.persist(updated)
            except CallbackApiError as exc:
                return _failed(Operation.ADD_OR_REPLACE, exc, issued=1)
            self.mirror.accept(updated)
            return OperationResult(operation=Operation.ADD_OR_REPLACE, ok=True, issued=1)

    async def set_all(self) -> OperationResult:
        """Replay every canonical rule into the engine; the canonical set is untouched."""

        async with self._exclusive():
            rules = self.mirror.snapshot()
            log.info("Replaying %s rule(s) into the rule engine", len(rules))
            failures = await self._replay(rules)
            return _replay_result(Operation.SET_ALL, issued=len(rules), failures=failures)

    async def remove(self, key: RuleKey) -> OperationResult:
        """Remove one rule by clearing the engine and replaying the others."""

        async with self._exclusive():
            log.info("Removing rule %s", key)
            self.phase = ReconciliationPhase.CLEARING
            try:
                try:
                    await self.api(self.rule_engine, "clear_all")
                except CallbackApiError as exc:
                    return _failed(Operation.REMOVE, exc)

                current = self.mirror.rules
                if key not in current:
                    log.warning("Rule %s is not in the canonical set", key)
                remaining = without_key(current, key)

                self.phase = ReconciliationPhase.REPLAYING
                failures = await self._replay(remaining)

                # Rules whose replay failed are persisted all the same.
                self.phase = ReconciliationPhase.PERSISTING
                try:
                    await self.mirror.persist(remaining)
                except CallbackApiError as exc:
                    return _failed(
                        Operation.REMOVE,
                        exc,
                        issued=len(remaining),
                        failed_keys=tuple(failed_key for failed_key, _ in failures),
                    )
                self.mirror.accept(remaining)
            finally:
                self.phase = ReconciliationPhase.IDLE

            return _replay_result(Operation.REMOVE, issued=len(remaining), failures=failures)

    async def rebuild(self) -> OperationResult:
        """Clear the engine and replay the whole canonical set without persisting."""

        async with self._exclusive():
            log.info("Rebuilding rule engine state from the canonical set")
            self.phase = ReconciliationPhase.CLEARING
            try:
                try:
                    await self.api(self.rule_engine, "clear_all")
                except CallbackApiError as exc:
                    return _failed(Operation.REBUILD, exc)
                rules = self.mirror.snapshot()
                self.phase = ReconciliationPhase.REPLAYING
                failures = await self._replay(rules)
            finally:
                self.phase = ReconciliationPhase.IDLE
            return _replay_result(Operation.REBUILD, issued=len(rules), failures=failures)

    async def clear_all(self) -> OperationResult:
        """Clear the engine, then the synchronized store."""

        async with self._exclusive():
            log.info("Clearing all rules")
            try:
                await self.api(self.rule_engine, "clear_all")
                await self.mirror.clear_persisted()
            except CallbackApiError as exc:
                return _failed(Operation.CLEAR_ALL, exc)
            self.mirror.accept({})
            return OperationResult(operation=Operation.CLEAR_ALL, ok=True)

    async def _replay(self, rules: Mapping[RuleKey, Rule]) -> list[tuple[RuleKey, BaseException]]:
        keys = list(rules)
        self.pending_replays += len(keys)

        async def replay_one(key: RuleKey) -> None:
            try:
                await self.api(self.rule_engine, "set", rules[key])
            finally:
                self.pending_replays -= 1

        outcomes = await settle_all(replay_one(key) for key in keys)
        failures: list[tuple[RuleKey, BaseException]] = []
        for key, outcome in zip(keys, outcomes, strict=True):
            if outcome.error is not None:
                log.warning("Replaying rule %s failed: %s", key, outcome.error)
                failures.append((key, outcome.error))
        return failures

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        if not self.serialize_operations:
            yield
            return
        async with self._lock:
            yield


def _failed(
    operation: Operation,
    error: CallbackApiError,
    *,
    issued: int = 0,
    failed_keys: tuple[RuleKey, ...] = (),
) -> OperationResult:
    log.warning("%s stopped after failed %s: %s", operation, error.operation, error)
    return OperationResult(
        operation=operation,
        ok=False,
        error=str(error),
        issued=issued,
        failed_keys=failed_keys,
    )


def _replay_result(
    operation: Operation,
    *,
    issued: int,
    failures: list[tuple[RuleKey, BaseException]],
) -> OperationResult:
    if not failures:
        return OperationResult(operation=operation, ok=True, issued=issued)
    _, last_error = failures[-1]
    return OperationResult(
        operation=operation,
        ok=False,
        error=str(last_error),
        issued=issued,
        failed_keys=tuple(key for key, _ in failures),
    )
