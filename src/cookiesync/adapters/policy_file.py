"""Rule engine backed by an append-only JSON lines policy file.

Consumers read the file top to bottom and let later lines override earlier ones
with the same key. The file can only grow or be truncated, which is exactly the
set-one/clear-all contract of :class:`~cookiesync.domain.ports.RuleEngine`.
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from cookiesync.domain.model import InvalidRuleError, build_rule_set
from cookiesync.domain.reconciliation.schema import RulePayload

if TYPE_CHECKING:
    from pathlib import Path

    from cookiesync.common import CallbackRuntime
    from cookiesync.domain.model import Rule, RuleSet
    from cookiesync.domain.ports.rule_engine import Completion

log = getLogger(__name__)


class PolicyFileRuleEngine:
    def __init__(self, path: Path, runtime: CallbackRuntime) -> None:
        self.path = path
        self._runtime = runtime

    def set(self, rule: Rule, callback: Completion, /) -> None:
        line = RulePayload.from_rule(rule).model_dump_json(by_alias=True, exclude_none=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as exc:
            self._runtime.fail(callback, f"Could not write policy file: {exc}")
            return
        self._runtime.complete(callback)

    def clear_all(self, callback: Completion, /) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding="utf-8")
        except OSError as exc:
            self._runtime.fail(callback, f"Could not clear policy file: {exc}")
            return
        self._runtime.complete(callback)

    def rules(self) -> RuleSet:
        """Effective rules as a consumer of the policy file sees them."""

        if not self.path.exists():
            return {}
        parsed: list[Rule] = []
        with self.path.open(encoding="utf-8") as handle:
            for number, raw in enumerate(handle, start=1):
                line = raw.strip()
                if not line:
                    continue
                try:
                    parsed.append(RulePayload.model_validate(json.loads(line)).to_rule())
                except (json.JSONDecodeError, ValidationError, InvalidRuleError) as exc:
                    log.warning(
                        "Skipping malformed policy line %s in %s: %s", number, self.path, exc
                    )
        return build_rule_set(parsed)
