"""Pydantic models describing the persisted canonical rule set."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, cast

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cookiesync.domain.model import InvalidRuleError, Rule, Setting

if TYPE_CHECKING:
    from cookiesync.domain.model import RuleKey, RuleSet

log = getLogger(__name__)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class RulePayload(BaseModel):
    """One persisted rule, using the engine's camelCase field names."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    primary_pattern: str = Field(alias="primaryPattern", min_length=1)
    secondary_pattern: str | None = Field(default=None, alias="secondaryPattern")
    setting: Setting

    _normalize_secondary = field_validator("secondary_pattern", mode="before")(_blank_to_none)

    @classmethod
    def from_rule(cls, rule: Rule) -> RulePayload:
        return cls(
            primary_pattern=rule.primary_pattern,
            secondary_pattern=rule.secondary_pattern,
            setting=rule.setting,
        )

    def to_rule(self) -> Rule:
        return Rule(
            primary_pattern=self.primary_pattern,
            secondary_pattern=self.secondary_pattern,
            setting=self.setting,
        )


def encode_rule_set(rules: Mapping[RuleKey, Rule]) -> dict[str, dict[str, str]]:
    """Serialize ``rules`` to the persisted mapping shape."""

    return {
        key: RulePayload.from_rule(rule).model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        for key, rule in rules.items()
    }


def decode_rule_set(value: object) -> RuleSet:
    """Parse a persisted value; ``None`` is the empty set.

    Entries that do not validate are skipped so that one damaged rule written by
    another device does not hide the rest.
    """

    if value is None:
        return {}
    if not isinstance(value, Mapping):
        log.warning("Ignoring persisted rule set of unexpected type %s", type(value).__name__)
        return {}

    rules: RuleSet = {}
    for key, payload in cast("Mapping[object, object]", value).items():
        try:
            rules[str(key)] = RulePayload.model_validate(payload).to_rule()
        except (ValidationError, InvalidRuleError) as exc:
            log.warning("Skipping invalid persisted rule %r: %s", key, exc)
    return rules
