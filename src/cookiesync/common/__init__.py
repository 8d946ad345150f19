"""Shared helpers for talking to callback-style collaborators."""

from __future__ import annotations

from .callback_api import (
    CallApi,
    CallbackApiError,
    StatusObserver,
    bind_runtime,
    call_api,
    with_status,
)
from .runtime import CallbackRuntime, LastError

__all__ = [
    "CallApi",
    "CallbackApiError",
    "CallbackRuntime",
    "LastError",
    "StatusObserver",
    "bind_runtime",
    "call_api",
    "with_status",
]
