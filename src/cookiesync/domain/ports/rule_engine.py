"""Port for the live rule engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from cookiesync.domain.model import Rule

type Completion = Callable[[], object]


@runtime_checkable
class RuleEngine(Protocol):
    """Callback-style engine enforcing rules live.

    It can set one rule or clear all of them; there is no way to remove a single
    rule. Errors are reported through the shared callback runtime.
    """

    def set(self, rule: Rule, callback: Completion, /) -> None: ...

    def clear_all(self, callback: Completion, /) -> None: ...
