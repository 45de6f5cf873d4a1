"""Tests for credential storage and key masking."""

from __future__ import annotations

import json
import stat
from pathlib import Path

import pytest

from codex_auth.auth.credentials import (
    get_auth_file,
    load_tokens,
    login_with_api_key,
    remove,
    resolve,
    save_tokens,
)
from codex_auth.auth.masking import mask_key
from codex_auth.auth.types import ApiKeyCredential, AuthMode, ChatGPTCredential, TokenData
from codex_auth.exceptions import StoreError

TOKENS = TokenData(
    id_token="header.payload.sig",
    access_token="access-123",
    refresh_token="refresh-456",
    account_id="acct-1",
)


class TestResolve:
    def test_missing_file_is_not_logged_in(self, codex_home):
        assert resolve(codex_home) is None

    def test_missing_directory_is_not_logged_in(self, tmp_path):
        assert resolve(tmp_path / "does-not-exist") is None

    def test_api_key(self, codex_home):
        login_with_api_key(codex_home, "sk-test-key")
        credential = resolve(codex_home)
        assert credential == ApiKeyCredential(api_key="sk-test-key")
        assert credential.mode is AuthMode.API_KEY
        assert credential.get_token() == "sk-test-key"

    def test_chatgpt_session(self, codex_home):
        save_tokens(codex_home, TOKENS)
        credential = resolve(codex_home)
        assert isinstance(credential, ChatGPTCredential)
        assert credential.mode is AuthMode.CHATGPT
        assert credential.tokens == TOKENS
        assert credential.last_refresh is not None

    def test_chatgpt_token_accessor_rereads_store(self, codex_home):
        save_tokens(codex_home, TOKENS)
        credential = resolve(codex_home)
        save_tokens(codex_home, TokenData("i", "access-new", "r"))
        assert credential.get_token() == "access-new"

    def test_chatgpt_token_accessor_raises_after_logout(self, codex_home):
        save_tokens(codex_home, TOKENS)
        credential = resolve(codex_home)
        remove(codex_home)
        with pytest.raises(StoreError):
            credential.get_token()

    def test_tokens_win_over_api_key(self, codex_home):
        get_auth_file(codex_home).write_text(
            json.dumps({"OPENAI_API_KEY": "sk-x", "tokens": TOKENS.to_dict(), "last_refresh": None})
        )
        assert isinstance(resolve(codex_home), ChatGPTCredential)

    def test_empty_object_is_not_logged_in(self, codex_home):
        get_auth_file(codex_home).write_text("{}")
        assert resolve(codex_home) is None

    def test_corrupt_json_raises(self, codex_home):
        get_auth_file(codex_home).write_text("not valid json{{{")
        with pytest.raises(StoreError, match="Could not parse"):
            resolve(codex_home)

    def test_non_object_raises(self, codex_home):
        get_auth_file(codex_home).write_text(json.dumps(["not", "a", "dict"]))
        with pytest.raises(StoreError):
            resolve(codex_home)

    def test_incomplete_tokens_raise(self, codex_home):
        get_auth_file(codex_home).write_text(json.dumps({"tokens": {"id_token": "x"}}))
        with pytest.raises(StoreError, match="missing token field"):
            resolve(codex_home)


class TestWrite:
    def test_creates_directory(self, tmp_path):
        home = tmp_path / "new" / "home"
        login_with_api_key(home, "sk-key")
        assert get_auth_file(home).exists()

    def test_file_permissions_0600(self, codex_home):
        login_with_api_key(codex_home, "sk-key")
        mode = get_auth_file(codex_home).stat().st_mode & 0o777
        assert mode == stat.S_IRUSR | stat.S_IWUSR

    def test_no_temp_files_left(self, codex_home):
        login_with_api_key(codex_home, "sk-key")
        save_tokens(codex_home, TOKENS)
        assert [p.name for p in codex_home.iterdir()] == ["auth.json"]

    def test_api_key_replaces_chatgpt_session(self, codex_home):
        save_tokens(codex_home, TOKENS)
        login_with_api_key(codex_home, "sk-key")
        data = json.loads(get_auth_file(codex_home).read_text())
        assert data == {"OPENAI_API_KEY": "sk-key", "tokens": None, "last_refresh": None}

    def test_chatgpt_session_replaces_api_key(self, codex_home):
        login_with_api_key(codex_home, "sk-key")
        save_tokens(codex_home, TOKENS)
        data = json.loads(get_auth_file(codex_home).read_text())
        assert data["OPENAI_API_KEY"] is None
        assert data["tokens"]["access_token"] == "access-123"
        assert data["tokens"]["account_id"] == "acct-1"

    def test_unwritable_root_raises(self, tmp_path):
        not_a_dir = tmp_path / "file"
        not_a_dir.write_text("")
        with pytest.raises(StoreError, match="Could not write"):
            login_with_api_key(not_a_dir, "sk-key")

    def test_load_tokens_without_session_raises(self, codex_home):
        login_with_api_key(codex_home, "sk-key")
        with pytest.raises(StoreError, match="No ChatGPT tokens"):
            load_tokens(codex_home)


class TestRemove:
    def test_remove_existing(self, codex_home):
        login_with_api_key(codex_home, "sk-key")
        assert remove(codex_home) is True
        assert not get_auth_file(codex_home).exists()

    def test_remove_missing_returns_false(self, codex_home):
        assert remove(codex_home) is False

    def test_remove_is_idempotent(self, codex_home):
        login_with_api_key(codex_home, "sk-key")
        assert remove(codex_home) is True
        assert remove(codex_home) is False

    def test_remove_only_touches_its_root(self, tmp_path):
        a, b = Path(tmp_path / "a"), Path(tmp_path / "b")
        login_with_api_key(a, "sk-a")
        login_with_api_key(b, "sk-b")
        remove(a)
        assert resolve(b) == ApiKeyCredential(api_key="sk-b")

    def test_remove_failure_raises(self, codex_home):
        get_auth_file(codex_home).mkdir()
        with pytest.raises(StoreError, match="Could not remove"):
            remove(codex_home)


class TestMaskKey:
    def test_long_key(self):
        assert mask_key("sk-proj-1234567890ABCDE") == "sk-proj-***ABCDE"

    def test_thirteen_chars_fully_masked(self):
        assert mask_key("sk-proj-12345") == "***"

    def test_fourteen_chars_masked_with_windows(self):
        assert mask_key("abcdefghijklmn") == "abcdefgh***jklmn"

    @pytest.mark.parametrize("key", ["", "a", "sk-test-key"])
    def test_short_keys_reveal_nothing(self, key):
        assert mask_key(key) == "***"

    def test_middle_never_revealed(self):
        key = "sk-" + "SECRETMIDDLE" * 3 + "tail1"
        masked = mask_key(key)
        assert "SECRETMIDDLE" not in masked
        assert masked.startswith(key[:8])
        assert masked.endswith(key[-5:])
