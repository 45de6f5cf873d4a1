"""Typed values for authentication state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class AuthMode(str, Enum):
    """Which kind of credential is active."""

    API_KEY = "api_key"
    CHATGPT = "chatgpt"


class LoginStatus(str, Enum):
    LOGGED_IN = "logged_in"
    NOT_LOGGED_IN = "not_logged_in"


class LogoutStatus(str, Enum):
    LOGGED_OUT = "logged_out"
    NOT_LOGGED_IN = "not_logged_in"


@dataclass(frozen=True)
class TokenData:
    """Tokens returned by the identity provider after a browser login."""

    id_token: str
    access_token: str
    refresh_token: str
    account_id: Optional[str] = None

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "id_token": self.id_token,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "account_id": self.account_id,
        }


@dataclass(frozen=True)
class ApiKeyCredential:
    """A static API key stored in the credential file."""

    api_key: str

    @property
    def mode(self) -> AuthMode:
        return AuthMode.API_KEY

    def get_token(self) -> str:
        return self.api_key


@dataclass(frozen=True)
class ChatGPTCredential:
    """A ChatGPT session backed by tokens in the credential file.

    ``get_token`` re-reads the store so callers always see the current
    access token rather than the snapshot taken when this value was loaded.
    """

    tokens: TokenData
    codex_home: Path
    last_refresh: Optional[datetime] = None

    @property
    def mode(self) -> AuthMode:
        return AuthMode.CHATGPT

    def get_token(self) -> str:
        from .credentials import load_tokens

        return load_tokens(self.codex_home).access_token


Credential = Union[ApiKeyCredential, ChatGPTCredential]


@dataclass(frozen=True)
class StatusReport:
    """Outcome of a status query.

    ``mode`` is set exactly when ``status`` is LOGGED_IN.
    """

    status: LoginStatus
    mode: Optional[AuthMode] = None

    def __post_init__(self) -> None:
        if (self.status is LoginStatus.LOGGED_IN) != (self.mode is not None):
            raise ValueError(f"{self.status.value} status cannot have mode {self.mode!r}")

    @classmethod
    def logged_in(cls, mode: AuthMode) -> StatusReport:
        return cls(status=LoginStatus.LOGGED_IN, mode=mode)

    @classmethod
    def not_logged_in(cls) -> StatusReport:
        return cls(status=LoginStatus.NOT_LOGGED_IN)

    @property
    def is_logged_in(self) -> bool:
        return self.status is LoginStatus.LOGGED_IN
