"""In-process mirror of the canonical rule set held by the synchronized store."""

from __future__ import annotations

from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from .schema import decode_rule_set, encode_rule_set

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from cookiesync.common import CallApi
    from cookiesync.domain.model import Rule, RuleKey, RuleSet
    from cookiesync.domain.ports import StorageChanges, SyncedStore

type RuleSetObserver = Callable[[Mapping[RuleKey, Rule]], object]

log = getLogger(__name__)


class CanonicalStoreMirror:
    """Single writer of the local copy of the canonical rule set.

    The local copy changes through :meth:`load`, store change notifications and
    :meth:`accept`. :meth:`persist` only writes to the store; the writer passes
    the persisted set to :meth:`accept` once the write succeeded, so the copy is
    current whether or not the store has notified yet. Every replacement is
    wholesale: the last writer from any device wins.
    """

    def __init__(self, store: SyncedStore, api: CallApi, *, storage_key: str) -> None:
        self._store = store
        self._api = api
        self.storage_key = storage_key
        self._rules: RuleSet = {}
        self._observers: list[RuleSetObserver] = []

    @property
    def rules(self) -> Mapping[RuleKey, Rule]:
        return MappingProxyType(self._rules)

    def snapshot(self) -> RuleSet:
        return dict(self._rules)

    def subscribe(self, observer: RuleSetObserver) -> None:
        self._observers.append(observer)

    def start(self) -> None:
        """Register for store change notifications (idempotent)."""

        if not self._store.on_changed.has_listener(self.on_external_change):
            self._store.on_changed.add_listener(self.on_external_change)

    def stop(self) -> None:
        self._store.on_changed.remove_listener(self.on_external_change)

    async def load(self) -> Mapping[RuleKey, Rule]:
        items = await self._api(self._store, "get", self.storage_key)
        value = items.get(self.storage_key) if items else None
        self._replace(decode_rule_set(value))
        log.info("Loaded %s rule(s) from the synchronized store", len(self._rules))
        return self.rules

    def on_external_change(self, changes: StorageChanges) -> None:
        change = changes.get(self.storage_key)
        if change is None:
            return
        self._replace(decode_rule_set(change.new_value))
        log.debug("Rule set replaced by store notification (%s rule(s))", len(self._rules))

    async def persist(self, rules: Mapping[RuleKey, Rule]) -> None:
        await self._api(self._store, "set", {self.storage_key: encode_rule_set(rules)})

    def accept(self, rules: Mapping[RuleKey, Rule]) -> None:
        """Adopt ``rules`` after they were persisted; observers hear about it from the store."""

        self._rules = dict(rules)

    async def clear_persisted(self) -> None:
        await self._api(self._store, "clear")

    def _replace(self, rules: RuleSet) -> None:
        self._rules = rules
        view = self.rules
        for observer in tuple(self._observers):
            observer(view)
