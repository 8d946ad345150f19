"""Turn callback-terminated operations into awaitables.

External collaborators in this system follow one calling convention: the last
positional argument of an operation is a completion callback, and failures are
not passed to that callback but published on the shared
:class:`~cookiesync.common.runtime.CallbackRuntime` while it runs::

    store.set({"cookieSettings": payload}, callback)

:func:`call_api` hides that convention behind a coroutine::

    await call_api(runtime, store, "set", {"cookieSettings": payload})

which returns the value handed to the callback or raises
:class:`CallbackApiError`. :func:`with_status` wraps such a caller so that an
observer learns the outcome of every call once it has settled.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

    from .runtime import CallbackRuntime

log = getLogger(__name__)


class CallbackApiError(RuntimeError):
    """Raised when a callback-style operation reports an error."""

    def __init__(self, message: str | None, *, operation: str, target: str) -> None:
        super().__init__(message or "")
        self.message = message
        self.operation = operation
        self.target = target

    def __str__(self) -> str:
        return self.message or ""

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, operation={self.operation!r}, "
            f"target={self.target!r})"
        )


class CallApi(Protocol):
    """Awaitable form of a callback-terminated operation on ``target``."""

    async def __call__(self, target: object, operation: str, *args: object) -> Any: ...


class StatusObserver(Protocol):
    """Receives the outcome of every settled call: ``None`` on success."""

    def __call__(self, error: BaseException | None) -> None: ...


async def call_api(
    runtime: CallbackRuntime,
    target: object,
    operation: str,
    *args: object,
) -> Any:
    """Invoke ``target.operation(*args, callback)`` and await its completion."""

    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()
    target_name = type(target).__name__

    def callback(value: object = None) -> None:
        if future.done():
            log.warning("Ignoring repeated completion of %s.%s", target_name, operation)
            return
        last_error = runtime.last_error
        if last_error is not None:
            future.set_exception(
                CallbackApiError(last_error.message, operation=operation, target=target_name)
            )
        else:
            future.set_result(value)

    try:
        method: Callable[..., object] = getattr(target, operation)
        method(*args, callback)
    except Exception as exc:  # noqa: BLE001
        if not future.done():
            error = CallbackApiError(str(exc), operation=operation, target=target_name)
            error.__cause__ = exc
            future.set_exception(error)

    return await future


def bind_runtime(runtime: CallbackRuntime) -> CallApi:
    """Return :func:`call_api` with ``runtime`` applied."""

    async def bound(target: object, operation: str, *args: object) -> Any:
        return await call_api(runtime, target, operation, *args)

    return bound


def with_status(observer: StatusObserver) -> Callable[[CallApi], CallApi]:
    """Decorate a caller so ``observer`` sees each call's outcome exactly once."""

    def decorator(api: CallApi) -> CallApi:
        async def wrapper(target: object, operation: str, *args: object) -> Any:
            try:
                result = await api(target, operation, *args)
            except Exception as exc:
                observer(exc)
                raise
            observer(None)
            return result

        return wrapper

    return decorator
