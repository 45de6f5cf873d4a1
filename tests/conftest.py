"""Test configuration for codex-auth tests."""

import io

import pytest
from rich.console import Console

from codex_auth import Config, SessionManager


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real home directory and API key."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("CODEX_HOME", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def codex_home(tmp_path):
    home = tmp_path / "codex_home"
    home.mkdir()
    return home


@pytest.fixture
def console():
    """Console writing to an in-memory buffer; read it with ``console.file.getvalue()``."""
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def manager(codex_home, console):
    return SessionManager(Config(codex_home=codex_home), console=console)
