"""Configuration helpers for codex-auth.

Only what authentication needs is modelled: the resolved ``codex_home``
directory plus any ``-c key=value`` overrides passed on the command line.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .auth.constants import CODEX_HOME_ENV_VAR, DEFAULT_CODEX_HOME_DIR
from .exceptions import ConfigError


def find_codex_home() -> Path:
    """Locate the storage root.

    ``CODEX_HOME`` wins when set and must point at an existing directory;
    otherwise ``~/.codex`` is used (it is created on first write).
    """
    env_home = os.environ.get(CODEX_HOME_ENV_VAR)
    if env_home:
        path = Path(env_home).expanduser()
        if not path.is_dir():
            raise ConfigError(f"{CODEX_HOME_ENV_VAR} points to {env_home!r}, which is not a directory")
        return path.resolve()
    return Path.home() / DEFAULT_CODEX_HOME_DIR


def _parse_value(raw: str) -> Any:
    """Parse an override value as JSON, falling back to the literal string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@dataclass
class CliConfigOverrides:
    """Raw ``-c key=value`` strings as given on the command line."""

    raw_overrides: list[str] = field(default_factory=list)

    def parse_overrides(self) -> list[tuple[str, Any]]:
        parsed = []
        for raw in self.raw_overrides:
            key, sep, value = raw.partition("=")
            key = key.strip()
            if not sep:
                raise ConfigError(f"Invalid override (missing '='): {raw}")
            if not key:
                raise ConfigError(f"Empty key in override: {raw}")
            parsed.append((key, _parse_value(value.strip())))
        return parsed


def _apply_override(target: dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


@dataclass
class Config:
    """Resolved configuration; ``codex_home`` is the credential storage root."""

    codex_home: Path
    overrides: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load_with_cli_overrides(
        cls,
        cli_overrides: Sequence[tuple[str, Any]],
        codex_home: Path | None = None,
    ) -> Config:
        overrides: dict[str, Any] = {}
        for key, value in cli_overrides:
            if key == "codex_home":
                raise ConfigError(f"codex_home cannot be overridden; set {CODEX_HOME_ENV_VAR} instead")
            _apply_override(overrides, key, value)
        home = Path(codex_home) if codex_home is not None else find_codex_home()
        return cls(codex_home=home, overrides=overrides)
