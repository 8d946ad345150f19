"""Join over concurrent awaitables that never short-circuits."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable


@dataclass(frozen=True, slots=True)
class Settled[T]:
    """Outcome of one awaitable: either ``value`` or ``error``."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all[T](awaitables: Iterable[Awaitable[T]]) -> list[Settled[T]]:
    """Wait for every awaitable and return their outcomes in input order.

    All awaitables run concurrently. A failure in one never cancels or hides the
    others.
    """

    results = await asyncio.gather(*awaitables, return_exceptions=True)
    outcomes: list[Settled[T]] = []
    for result in results:
        if isinstance(result, BaseException):
            outcomes.append(Settled(error=result))
        else:
            outcomes.append(Settled(value=result))
    return outcomes
