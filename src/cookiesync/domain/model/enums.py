"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Setting(StrEnum):
    """Cookie setting applied to requests matching a rule."""

    ALLOW = "allow"
    BLOCK = "block"
    SESSION_ONLY = "session_only"
