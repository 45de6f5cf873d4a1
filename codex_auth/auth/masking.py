"""Redaction of secrets for display."""

from __future__ import annotations

REDACTION_MARKER = "***"

_MIN_MASKABLE_LENGTH = 14
_PREFIX_LENGTH = 8
_SUFFIX_LENGTH = 5


def mask_key(key: str) -> str:
    """Return a display-safe form of ``key``.

    Keys of 13 characters or fewer reveal nothing. Longer keys keep their
    first 8 and last 5 characters, e.g. ``sk-proj-***ABCDE``.
    """
    if len(key) < _MIN_MASKABLE_LENGTH:
        return REDACTION_MARKER
    return key[:_PREFIX_LENGTH] + REDACTION_MARKER + key[-_SUFFIX_LENGTH:]
