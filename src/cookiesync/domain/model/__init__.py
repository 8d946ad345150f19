"""Domain model for cookie setting rules."""

from __future__ import annotations

from .enums import Setting
from .patterns import complete_pattern
from .rule import (
    ANY_PATTERN,
    KEY_SEPARATOR,
    InvalidRuleError,
    Rule,
    RuleKey,
    RuleSet,
    build_rule_set,
    rule_key,
    sorted_rules,
    with_rule,
    without_key,
)

__all__ = [
    "ANY_PATTERN",
    "KEY_SEPARATOR",
    "InvalidRuleError",
    "Rule",
    "RuleKey",
    "RuleSet",
    "Setting",
    "build_rule_set",
    "complete_pattern",
    "rule_key",
    "sorted_rules",
    "with_rule",
    "without_key",
]
