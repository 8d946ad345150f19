"""Outcome of the most recent external call."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class StatusReporter:
    """Keeps the latest status message; empty string means the last call succeeded.

    Earlier errors are overwritten, never queued.
    """

    def __init__(self, sink: Callable[[str], object] | None = None) -> None:
        self._sink = sink
        self.message = ""

    @property
    def ok(self) -> bool:
        return not self.message

    def __call__(self, error: BaseException | None) -> None:
        if error is None:
            self.message = ""
        else:
            self.message = str(error) or UNKNOWN_ERROR_MESSAGE
            log.error(self.message)
        if self._sink is not None:
            self._sink(self.message)
