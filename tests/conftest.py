from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from cookiesync.adapters.sqlalchemy import shutdown, startup
from cookiesync.app import RuleSyncSession, build_session
from cookiesync.common import CallbackRuntime
from cookiesync.config import SyncConfig
from cookiesync.domain.model import Rule, Setting
from tests.support.fakes import STORAGE_KEY, FakeRuleEngine, FakeSyncedStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def runtime() -> CallbackRuntime:
    return CallbackRuntime()


@pytest.fixture
def rule_engine(runtime: CallbackRuntime) -> FakeRuleEngine:
    return FakeRuleEngine(runtime)


@pytest.fixture
def store(runtime: CallbackRuntime) -> FakeSyncedStore:
    return FakeSyncedStore(runtime)


@pytest.fixture
def session(
    runtime: CallbackRuntime,
    rule_engine: FakeRuleEngine,
    store: FakeSyncedStore,
) -> RuleSyncSession:
    return build_session(
        store=store,
        rule_engine=rule_engine,
        runtime=runtime,
        config=SyncConfig(storage_key=STORAGE_KEY),
    )


@pytest.fixture
def rule_a() -> Rule:
    return Rule(primary_pattern="https://a.com/*", setting=Setting.BLOCK)


@pytest.fixture
def rule_b() -> Rule:
    return Rule(
        primary_pattern="https://b.com/*",
        secondary_pattern="https://tracker.net/*",
        setting=Setting.ALLOW,
    )


@pytest.fixture
def rule_c() -> Rule:
    return Rule(primary_pattern="https://c.com/*", setting=Setting.SESSION_ONLY)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def started_store_engine(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()
