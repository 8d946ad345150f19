"""Concrete callback-style collaborators."""

from __future__ import annotations

from .policy_file import PolicyFileRuleEngine

__all__ = ["PolicyFileRuleEngine"]
