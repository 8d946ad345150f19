from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import pytest

from cookiesync.adapters import PolicyFileRuleEngine
from cookiesync.common import CallbackApiError, CallbackRuntime, call_api
from cookiesync.domain.model import Rule, Setting, build_rule_set

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def policy_path(tmp_path: Path) -> Path:
    return tmp_path / "nested" / "policy.jsonl"


@pytest.fixture
def policy(policy_path: Path, runtime: CallbackRuntime) -> PolicyFileRuleEngine:
    return PolicyFileRuleEngine(policy_path, runtime)


def test_set_appends_json_line(
    policy: PolicyFileRuleEngine,
    policy_path: Path,
    runtime: CallbackRuntime,
    rule_b: Rule,
) -> None:
    asyncio.run(call_api(runtime, policy, "set", rule_b))

    assert policy_path.read_text(encoding="utf-8").splitlines() == [
        '{"primaryPattern":"https://b.com/*","secondaryPattern":"https://tracker.net/*",'
        '"setting":"allow"}'
    ]


def test_later_lines_override_earlier_ones(
    policy: PolicyFileRuleEngine, runtime: CallbackRuntime, rule_a: Rule, rule_c: Rule
) -> None:
    replacement = Rule(primary_pattern=rule_a.primary_pattern, setting=Setting.ALLOW)

    async def scenario() -> None:
        for rule in (rule_a, rule_c, replacement):
            await call_api(runtime, policy, "set", rule)

    asyncio.run(scenario())

    assert policy.rules() == build_rule_set([replacement, rule_c])


def test_clear_all_truncates(
    policy: PolicyFileRuleEngine, policy_path: Path, runtime: CallbackRuntime, rule_a: Rule
) -> None:
    async def scenario() -> None:
        await call_api(runtime, policy, "set", rule_a)
        await call_api(runtime, policy, "clear_all")

    asyncio.run(scenario())

    assert policy_path.read_text(encoding="utf-8") == ""
    assert policy.rules() == {}


def test_rules_of_missing_file_are_empty(policy: PolicyFileRuleEngine) -> None:
    assert policy.rules() == {}


def test_rules_skip_malformed_lines(
    policy: PolicyFileRuleEngine,
    policy_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    policy_path.parent.mkdir(parents=True)
    policy_path.write_text(
        "not json\n"
        "\n"
        '{"primaryPattern":"https://a.com/*","setting":"block"}\n'
        '{"primaryPattern":"https://b.com/*","setting":"sometimes"}\n',
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING):
        rules = policy.rules()

    assert list(rules) == ["https://a.com/*;"]
    assert "line 1" in caplog.text
    assert "line 4" in caplog.text


def test_write_errors_are_reported_through_runtime(
    tmp_path: Path, runtime: CallbackRuntime, rule_a: Rule
) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    policy = PolicyFileRuleEngine(blocker / "policy.jsonl", runtime)

    with pytest.raises(CallbackApiError, match="Could not write policy file"):
        asyncio.run(call_api(runtime, policy, "set", rule_a))
    with pytest.raises(CallbackApiError, match="Could not clear policy file"):
        asyncio.run(call_api(runtime, policy, "clear_all"))
