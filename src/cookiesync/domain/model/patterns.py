"""Helpers for user-entered match patterns."""

from __future__ import annotations

import re

_ORIGIN_ONLY = re.compile(r"^(.+//[^/]+)(/)?$")


def complete_pattern(pattern: str) -> str:
    """Add a ``/*`` path wildcard to origin-only patterns.

    ``https://example.com`` and ``https://example.com/`` both become
    ``https://example.com/*``; patterns that already carry a path are returned
    unchanged.
    """

    stripped = pattern.strip()
    match = _ORIGIN_ONLY.match(stripped)
    if match:
        return f"{match.group(1)}/*"
    return stripped
