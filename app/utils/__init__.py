"""Utility helpers for reusable functionality."""

from .datetime import ensure_utc, is_valid_timezone, resolve_timezone, utcnow

__all__ = [
    "ensure_utc",
    "is_valid_timezone",
    "resolve_timezone",
    "utcnow",
]
