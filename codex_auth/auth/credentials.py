"""Credential storage for codex.

The active credential lives in ``<codex_home>/auth.json`` with restrictive
permissions. Exactly one credential kind is stored at a time: saving an API
key clears any ChatGPT tokens and vice versa.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..exceptions import StoreError
from .constants import AUTH_FILE
from .types import ApiKeyCredential, ChatGPTCredential, Credential, TokenData

logger = logging.getLogger(__name__)

_API_KEY_FIELD = "OPENAI_API_KEY"


def get_auth_file(codex_home: Path) -> Path:
    return Path(codex_home) / AUTH_FILE


def _read_auth_json(codex_home: Path) -> dict[str, Any] | None:
    """Load the raw auth.json contents.

    Returns None if the file doesn't exist. Corrupt or unreadable files raise StoreError.
    """
    auth_file = get_auth_file(codex_home)
    try:
        text = auth_file.read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StoreError(f"Could not read {auth_file}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StoreError(f"Could not parse {auth_file}: {e}") from e
    if not isinstance(data, dict):
        raise StoreError(f"Could not parse {auth_file}: expected a JSON object")
    return data


def _parse_tokens(raw: Any, auth_file: Path) -> TokenData | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise StoreError(f"Could not parse {auth_file}: 'tokens' must be an object")
    try:
        return TokenData(
            id_token=raw["id_token"],
            access_token=raw["access_token"],
            refresh_token=raw["refresh_token"],
            account_id=raw.get("account_id"),
        )
    except KeyError as e:
        raise StoreError(f"Could not parse {auth_file}: missing token field {e}") from e


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str):
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def resolve(codex_home: Path) -> Credential | None:
    """Resolve the credential stored under ``codex_home``.

    ChatGPT tokens win over an API key if a file somehow holds both.
    Returns None when nothing is stored; that is never an error.
    """
    data = _read_auth_json(codex_home)
    if data is None:
        return None

    auth_file = get_auth_file(codex_home)
    tokens = _parse_tokens(data.get("tokens"), auth_file)
    if tokens is not None:
        return ChatGPTCredential(
            tokens=tokens,
            codex_home=Path(codex_home),
            last_refresh=_parse_timestamp(data.get("last_refresh")),
        )

    api_key = data.get(_API_KEY_FIELD)
    if isinstance(api_key, str) and api_key:
        return ApiKeyCredential(api_key=api_key)

    return None


def load_tokens(codex_home: Path) -> TokenData:
    """Return the stored ChatGPT tokens, raising StoreError if there are none."""
    data = _read_auth_json(codex_home)
    auth_file = get_auth_file(codex_home)
    tokens = _parse_tokens(data.get("tokens"), auth_file) if data else None
    if tokens is None:
        raise StoreError(f"No ChatGPT tokens found in {auth_file}")
    return tokens


def _write_auth_json(codex_home: Path, payload: dict[str, Any]) -> None:
    """Write auth.json with atomic replace and restrictive permissions.

    - Directory: created if missing
    - File: 0600 (owner read/write only)
    - Atomic: writes to temp file in same dir, then os.replace()
    """
    auth_file = get_auth_file(codex_home)
    auth_dir = auth_file.parent
    try:
        auth_dir.mkdir(parents=True, exist_ok=True)
        content = json.dumps(payload, indent=2)

        fd, tmp_path = tempfile.mkstemp(dir=auth_dir, prefix=".auth_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, auth_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as e:
        raise StoreError(f"Could not write {auth_file}: {e}") from e
    logger.debug("Wrote credentials to %s", auth_file)


def login_with_api_key(codex_home: Path, api_key: str) -> None:
    """Store an API key, replacing whatever credential was there."""
    _write_auth_json(
        codex_home,
        {_API_KEY_FIELD: api_key, "tokens": None, "last_refresh": None},
    )


def save_tokens(codex_home: Path, tokens: TokenData) -> None:
    """Store a ChatGPT session, replacing whatever credential was there."""
    _write_auth_json(
        codex_home,
        {
            _API_KEY_FIELD: None,
            "tokens": tokens.to_dict(),
            "last_refresh": datetime.now(timezone.utc).isoformat(),
        },
    )


def remove(codex_home: Path) -> bool:
    """Delete the credential file.

    Returns:
        True if a file was removed, False if there was nothing to remove.
    """
    auth_file = get_auth_file(codex_home)
    try:
        auth_file.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StoreError(f"Could not remove {auth_file}: {e}") from e
    logger.debug("Removed credentials at %s", auth_file)
    return True
