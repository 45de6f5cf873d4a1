"""Authentication utilities for codex.

Lightweight imports (credentials, masking, types) are eager. Heavyweight
imports (server, which pulls in http.server, threading, webbrowser and httpx)
are lazy so that status and logout never pay for them.
"""

from .credentials import get_auth_file, login_with_api_key, remove, resolve, save_tokens
from .masking import mask_key
from .types import (
    ApiKeyCredential,
    AuthMode,
    ChatGPTCredential,
    Credential,
    LoginStatus,
    LogoutStatus,
    StatusReport,
    TokenData,
)


def __getattr__(name: str):
    if name in ("LoginServer", "ServerOptions", "run_login_server"):
        from . import server

        return getattr(server, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "get_auth_file",
    "login_with_api_key",
    "mask_key",
    "remove",
    "resolve",
    "run_login_server",
    "save_tokens",
    "ApiKeyCredential",
    "AuthMode",
    "ChatGPTCredential",
    "Credential",
    "LoginServer",
    "LoginStatus",
    "LogoutStatus",
    "ServerOptions",
    "StatusReport",
    "TokenData",
]
