"""Rule value object and the keyed canonical rule set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .enums import Setting

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

KEY_SEPARATOR: Final[str] = ";"
ANY_PATTERN: Final[str] = "*"

type RuleKey = str
type RuleSet = dict[RuleKey, Rule]


class InvalidRuleError(ValueError):
    """Raised when a rule cannot be constructed from the given values."""


@dataclass(frozen=True, slots=True, kw_only=True)
class Rule:
    """A pattern pair plus the setting enforced for matching requests.

    ``secondary_pattern`` of ``None`` matches anything. Both patterns are stored
    stripped of surrounding whitespace.
    """

    primary_pattern: str
    setting: Setting
    secondary_pattern: str | None = None

    def __post_init__(self) -> None:
        primary = self.primary_pattern.strip() if self.primary_pattern else ""
        if not primary:
            raise InvalidRuleError("Primary pattern must not be blank")
        object.__setattr__(self, "primary_pattern", primary)
        if self.secondary_pattern is not None:
            object.__setattr__(self, "secondary_pattern", self.secondary_pattern.strip() or None)
        if not isinstance(self.setting, Setting):
            try:
                object.__setattr__(self, "setting", Setting(self.setting))
            except ValueError as exc:
                raise InvalidRuleError(f"Unknown setting: {self.setting!r}") from exc

    @property
    def key(self) -> RuleKey:
        return rule_key(self)

    @property
    def display_secondary_pattern(self) -> str:
        return self.secondary_pattern or ANY_PATTERN


def rule_key(rule: Rule) -> RuleKey:
    """Identity of ``rule`` within a rule set; the setting does not take part."""

    return f"{rule.primary_pattern}{KEY_SEPARATOR}{rule.secondary_pattern or ''}"


def with_rule(rules: Mapping[RuleKey, Rule], rule: Rule) -> RuleSet:
    """Return a copy of ``rules`` with ``rule`` inserted or overwriting its key."""

    updated = dict(rules)
    updated[rule_key(rule)] = rule
    return updated


def without_key(rules: Mapping[RuleKey, Rule], key: RuleKey) -> RuleSet:
    return {existing: rule for existing, rule in rules.items() if existing != key}


def build_rule_set(rules: Iterable[Rule]) -> RuleSet:
    """Key ``rules``; later rules win over earlier ones with the same key."""

    result: RuleSet = {}
    for rule in rules:
        result[rule_key(rule)] = rule
    return result


def sorted_rules(rules: Mapping[RuleKey, Rule]) -> list[tuple[RuleKey, Rule]]:
    """Display order: lexicographic by key."""

    return [(key, rules[key]) for key in sorted(rules)]
