"""Tests for configuration overrides and CODEX_HOME resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from codex_auth.config import CliConfigOverrides, Config, find_codex_home
from codex_auth.exceptions import ConfigError


class TestParseOverrides:
    def test_empty(self):
        assert CliConfigOverrides().parse_overrides() == []

    def test_values_parsed_as_json(self):
        overrides = CliConfigOverrides(raw_overrides=["a=1", "b=true", 'c="quoted"', "d=[1, 2]"])
        assert overrides.parse_overrides() == [("a", 1), ("b", True), ("c", "quoted"), ("d", [1, 2])]

    def test_unparseable_value_kept_as_string(self):
        assert CliConfigOverrides(raw_overrides=["model=o3"]).parse_overrides() == [("model", "o3")]

    def test_value_may_contain_equals(self):
        assert CliConfigOverrides(raw_overrides=["x=a=b"]).parse_overrides() == [("x", "a=b")]

    def test_missing_equals(self):
        with pytest.raises(ConfigError, match="missing '='"):
            CliConfigOverrides(raw_overrides=["bad"]).parse_overrides()

    def test_empty_key(self):
        with pytest.raises(ConfigError, match="Empty key"):
            CliConfigOverrides(raw_overrides=["=value"]).parse_overrides()


class TestFindCodexHome:
    def test_defaults_to_home_dot_codex(self):
        assert find_codex_home() == Path.home() / ".codex"

    def test_env_var(self, codex_home, monkeypatch):
        monkeypatch.setenv("CODEX_HOME", str(codex_home))
        assert find_codex_home() == codex_home.resolve()

    def test_env_var_must_exist(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CODEX_HOME", str(tmp_path / "missing"))
        with pytest.raises(ConfigError, match="not a directory"):
            find_codex_home()


class TestLoadWithCliOverrides:
    def test_nested_overrides(self, codex_home):
        config = Config.load_with_cli_overrides(
            [("sandbox.mode", "read-only"), ("sandbox.network", False), ("model", "o3")],
            codex_home=codex_home,
        )
        assert config.codex_home == codex_home
        assert config.overrides == {"sandbox": {"mode": "read-only", "network": False}, "model": "o3"}

    def test_uses_env_codex_home(self, codex_home, monkeypatch):
        monkeypatch.setenv("CODEX_HOME", str(codex_home))
        assert Config.load_with_cli_overrides([]).codex_home == codex_home.resolve()

    def test_codex_home_cannot_be_overridden(self, codex_home):
        with pytest.raises(ConfigError, match="codex_home"):
            Config.load_with_cli_overrides([("codex_home", "/tmp/elsewhere")], codex_home=codex_home)
