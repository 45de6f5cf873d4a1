"""codex-auth - login, logout and status for the codex command-line tool."""

from importlib.metadata import PackageNotFoundError, version

from .auth.types import AuthMode, LoginStatus, LogoutStatus, StatusReport
from .config import CliConfigOverrides, Config
from .exceptions import (
    CodexAuthError,
    ConfigError,
    HandshakeError,
    LaunchError,
    SessionError,
    StoreError,
)
from .session import SessionManager

__all__ = [
    "AuthMode",
    "CliConfigOverrides",
    "CodexAuthError",
    "Config",
    "ConfigError",
    "HandshakeError",
    "LaunchError",
    "LoginStatus",
    "LogoutStatus",
    "SessionError",
    "SessionManager",
    "StatusReport",
    "StoreError",
]

try:
    __version__ = version("codex-auth")
except PackageNotFoundError:
    __version__ = "0.1.0"
