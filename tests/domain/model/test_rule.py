from __future__ import annotations

import pytest

from cookiesync.domain.model import (
    InvalidRuleError,
    Rule,
    Setting,
    build_rule_set,
    complete_pattern,
    rule_key,
    sorted_rules,
    with_rule,
    without_key,
)


def test_rule_key_ignores_setting() -> None:
    blocked = Rule(primary_pattern="https://a.com/*", setting=Setting.BLOCK)
    allowed = Rule(primary_pattern="https://a.com/*", setting=Setting.ALLOW)

    assert rule_key(blocked) == rule_key(allowed) == "https://a.com/*;"


def test_rule_key_distinguishes_secondary_patterns() -> None:
    anywhere = Rule(primary_pattern="https://a.com/*", setting=Setting.BLOCK)
    scoped = Rule(
        primary_pattern="https://a.com/*",
        secondary_pattern="https://ads.net/*",
        setting=Setting.BLOCK,
    )

    assert rule_key(anywhere) != rule_key(scoped)
    assert scoped.key == "https://a.com/*;https://ads.net/*"


def test_blank_secondary_pattern_means_any() -> None:
    rule = Rule(primary_pattern="https://a.com/*", secondary_pattern="  ", setting="allow")

    assert rule.secondary_pattern is None
    assert rule.display_secondary_pattern == "*"
    assert rule.setting is Setting.ALLOW


def test_blank_primary_pattern_is_rejected() -> None:
    with pytest.raises(InvalidRuleError):
        Rule(primary_pattern=" ", setting=Setting.BLOCK)


def test_unknown_setting_is_rejected() -> None:
    with pytest.raises(InvalidRuleError, match="Unknown setting"):
        Rule(primary_pattern="https://a.com/*", setting="forbid")  # type: ignore[arg-type]


def test_with_rule_overwrites_same_key(rule_a: Rule) -> None:
    replacement = Rule(primary_pattern=rule_a.primary_pattern, setting=Setting.ALLOW)

    rules = with_rule(build_rule_set([rule_a]), replacement)

    assert rules == {rule_key(rule_a): replacement}


def test_without_key_returns_copy(rule_a: Rule, rule_b: Rule) -> None:
    rules = build_rule_set([rule_a, rule_b])

    remaining = without_key(rules, rule_key(rule_a))

    assert remaining == {rule_key(rule_b): rule_b}
    assert len(rules) == 2


def test_build_rule_set_keeps_last_duplicate(rule_a: Rule) -> None:
    later = Rule(primary_pattern=rule_a.primary_pattern, setting=Setting.SESSION_ONLY)

    assert build_rule_set([rule_a, later]) == {rule_key(rule_a): later}


def test_sorted_rules_orders_by_key(rule_a: Rule, rule_b: Rule, rule_c: Rule) -> None:
    rules = build_rule_set([rule_c, rule_a, rule_b])

    assert [rule for _, rule in sorted_rules(rules)] == [rule_a, rule_b, rule_c]


@pytest.mark.parametrize(
    ("entered", "expected"),
    [
        ("https://example.com", "https://example.com/*"),
        ("https://example.com/", "https://example.com/*"),
        ("  http://[*.]example.com  ", "http://[*.]example.com/*"),
        ("https://example.com/path/*", "https://example.com/path/*"),
        ("example.com", "example.com"),
    ],
)
def test_complete_pattern(entered: str, expected: str) -> None:
    assert complete_pattern(entered) == expected


def test_patterns_are_stripped_before_keying() -> None:
    rule = Rule(
        primary_pattern=" https://a.com/* ",
        secondary_pattern=" https://b.com/* ",
        setting=Setting.BLOCK,
    )

    assert rule.primary_pattern == "https://a.com/*"
    assert rule.secondary_pattern == "https://b.com/*"
    assert rule_key(rule) == "https://a.com/*;https://b.com/*"
    assert rule == Rule(
        primary_pattern="https://a.com/*",
        secondary_pattern="https://b.com/*",
        setting=Setting.BLOCK,
    )
