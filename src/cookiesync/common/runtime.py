"""Ambient error signal shared by callback-style collaborators."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LastError:
    """Error reported by the most recent completion, visible while its callback runs."""

    message: str | None = None


class CallbackRuntime:
    """Delivers completions to callbacks and exposes ``last_error`` while they run.

    Collaborators never hand errors to the callback directly: they report them
    through :meth:`fail`, and the callback inspects :attr:`last_error`. The signal
    is cleared as soon as the callback returns, so it cannot leak into unrelated
    completions.
    """

    def __init__(self) -> None:
        self._last_error: LastError | None = None

    @property
    def last_error(self) -> LastError | None:
        return self._last_error

    def complete(self, callback: Callable[..., object], value: object = None) -> None:
        """Schedule ``callback`` with ``value`` and no error."""

        self._schedule(callback, value, None)

    def fail(self, callback: Callable[..., object], message: str | None) -> None:
        """Schedule ``callback`` with ``last_error`` set to ``message``."""

        self._schedule(callback, None, LastError(message=message))

    def _schedule(
        self,
        callback: Callable[..., object],
        value: object,
        error: LastError | None,
    ) -> None:
        loop = asyncio.get_running_loop()
        loop.call_soon(self._dispatch, callback, value, error)

    def _dispatch(
        self,
        callback: Callable[..., object],
        value: object,
        error: LastError | None,
    ) -> None:
        self._last_error = error
        try:
            if value is None:
                callback()
            else:
                callback(value)
        finally:
            self._last_error = None
