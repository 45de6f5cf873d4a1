"""Constants for codex authentication and credential storage."""

from __future__ import annotations

import os

# OAuth configuration
CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
DEFAULT_ISSUER = os.environ.get("CODEX_AUTH_ISSUER", "https://auth.openai.com")
OAUTH_SCOPE = "openid profile email offline_access"

# Callback server. Bind to 127.0.0.1 but advertise localhost in the redirect URI.
CALLBACK_HOST = "127.0.0.1"
CALLBACK_PATH = "/auth/callback"
DEFAULT_LOGIN_PORT = 0  # 0 asks the OS for an ephemeral port
AUTH_TIMEOUT_SECONDS = 600
TOKEN_EXCHANGE_TIMEOUT_SECONDS = 30.0

# Environment
OPENAI_API_KEY_ENV_VAR = "OPENAI_API_KEY"
CODEX_HOME_ENV_VAR = "CODEX_HOME"

# Credential storage
DEFAULT_CODEX_HOME_DIR = ".codex"
AUTH_FILE = "auth.json"

# Error messages
ERROR_AUTH_TIMEOUT = "Login timed out. Please try again."
ERROR_STATE_MISMATCH = "Security validation failed (state mismatch). Please try again."
ERROR_MISSING_CODE = "No authorization code received"
ERROR_LOGIN_CANCELLED = "Login was cancelled"
ERROR_TOKEN_EXCHANGE = "Token exchange failed"


def build_redirect_uri(port: int) -> str:
    """Build the redirect URI registered with the identity provider for a given port."""
    return f"http://localhost:{port}{CALLBACK_PATH}"
