"""Custom exceptions raised by codex-auth."""

from __future__ import annotations


class CodexAuthError(Exception):
    """Base exception for all codex-auth failures."""


class ConfigError(CodexAuthError):
    """Raised when configuration overrides cannot be parsed or applied."""


class StoreError(CodexAuthError):
    """Raised when the credential file cannot be read, parsed, or written.

    A missing credential file is never a StoreError; it means "not logged in".
    """


class LaunchError(CodexAuthError):
    """Raised when the local login server cannot be started."""


class HandshakeError(CodexAuthError):
    """Raised when the browser login does not complete successfully."""


class SessionError(CodexAuthError):
    """Raised by session operations; the original failure is chained as ``__cause__``."""
