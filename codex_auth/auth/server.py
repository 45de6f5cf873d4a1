"""Local OAuth 2.0 + PKCE login server for ChatGPT sign-in.

Flow: bind a loopback callback server -> open the browser at the authorize URL
-> receive the redirect -> exchange the code for tokens -> persist them.
Nothing here prints; callers decide what to show the user.
"""

from __future__ import annotations

import base64
import hashlib
import html
import http.server
import json
import logging
import secrets
import threading
import webbrowser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from ..exceptions import HandshakeError, LaunchError, StoreError
from .constants import (
    AUTH_TIMEOUT_SECONDS,
    CALLBACK_HOST,
    CALLBACK_PATH,
    CLIENT_ID,
    DEFAULT_ISSUER,
    DEFAULT_LOGIN_PORT,
    ERROR_AUTH_TIMEOUT,
    ERROR_LOGIN_CANCELLED,
    ERROR_MISSING_CODE,
    ERROR_STATE_MISMATCH,
    ERROR_TOKEN_EXCHANGE,
    OAUTH_SCOPE,
    TOKEN_EXCHANGE_TIMEOUT_SECONDS,
    build_redirect_uri,
)
from .credentials import save_tokens
from .types import TokenData

logger = logging.getLogger(__name__)

_AUTH_CLAIMS_NAMESPACE = "https://api.openai.com/auth"


@dataclass
class ServerOptions:
    """Settings for a single browser login attempt."""

    codex_home: Path
    client_id: str = CLIENT_ID
    issuer: str = DEFAULT_ISSUER
    port: int = DEFAULT_LOGIN_PORT
    open_browser: bool = True
    force_state: str | None = None


def generate_pkce() -> tuple[str, str]:
    """Generate PKCE code verifier and S256 challenge."""
    code_verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(code_verifier.encode()).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
    return code_verifier, code_challenge


def build_auth_url(issuer: str, client_id: str, redirect_uri: str, code_challenge: str, state: str) -> str:
    """Build the OAuth authorization URL the user opens in a browser."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": OAUTH_SCOPE,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "id_token_add_organizations": "true",
        "state": state,
    }
    return f"{issuer.rstrip('/')}/oauth/authorize?{urlencode(params)}"


def parse_jwt_claims(token: str) -> dict[str, Any]:
    """Decode the payload of a JWT without verifying its signature."""
    parts = token.split(".")
    if len(parts) != 3 or not parts[1]:
        raise ValueError("Invalid ID token format")
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    claims = json.loads(base64.urlsafe_b64decode(payload))
    if not isinstance(claims, dict):
        raise ValueError("Invalid ID token payload")
    return claims


def exchange_code_for_tokens(
    issuer: str,
    client_id: str,
    code: str,
    code_verifier: str,
    redirect_uri: str,
) -> TokenData:
    """Exchange an authorization code for ID, access and refresh tokens.

    Raises httpx errors on transport or HTTP failures and ValueError/KeyError
    when the response does not have the expected shape.
    """
    with httpx.Client(timeout=TOKEN_EXCHANGE_TIMEOUT_SECONDS) as client:
        response = client.post(
            f"{issuer.rstrip('/')}/oauth/token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": client_id,
                "code_verifier": code_verifier,
            },
        )
        response.raise_for_status()
        payload = response.json()

    if not isinstance(payload, dict):
        raise ValueError("Token response is not a JSON object")
    id_token = payload["id_token"]
    if not isinstance(id_token, str):
        raise ValueError("Token response has a non-string id_token")
    auth_claims = parse_jwt_claims(id_token).get(_AUTH_CLAIMS_NAMESPACE) or {}
    if not isinstance(auth_claims, dict):
        raise ValueError(f"ID token claim {_AUTH_CLAIMS_NAMESPACE!r} is not an object")
    return TokenData(
        id_token=id_token,
        access_token=payload["access_token"],
        refresh_token=payload["refresh_token"],
        account_id=auth_claims.get("chatgpt_account_id"),
    )


def _format_http_error(e: httpx.HTTPStatusError) -> str:
    detail = ""
    try:
        detail = f": {e.response.text}"
    except Exception:
        pass
    return f"{ERROR_TOKEN_EXCHANGE} ({e.response.status_code}){detail}"


class _CallbackResult:
    """Thread-safe, write-once outcome of the OAuth callback.

    ``received`` is set exactly once, under ``lock``: either by ``commit``
    after tokens are persisted or by ``fail`` (rejection, timeout, cancel).
    The token exchange itself runs without the lock held.
    """

    def __init__(self) -> None:
        self.error: str | None = None
        self.received = threading.Event()
        self.lock = threading.Lock()
        self._claimed = False

    def claim(self) -> bool:
        """Reserve this result for the first callback; later callbacks get False."""
        with self.lock:
            if self._claimed or self.received.is_set():
                return False
            self._claimed = True
            return True

    def commit(self, persist: Callable[[], None]) -> bool:
        """Run ``persist`` and mark success, unless a failure was recorded first."""
        with self.lock:
            if self.received.is_set():
                return False
            persist()
            self.received.set()
            return True

    def fail(self, error: str) -> bool:
        with self.lock:
            if self.received.is_set():
                return False
            self.error = error
            self.received.set()
            return True


@dataclass
class _LoginContext:
    options: ServerOptions
    state: str
    code_verifier: str
    redirect_uri: str
    result: _CallbackResult = field(default_factory=_CallbackResult)


class _LoginHTTPServer(http.server.HTTPServer):
    allow_reuse_address = True
    login_context: _LoginContext


class _CallbackHandler(http.server.BaseHTTPRequestHandler):
    """HTTP handler for the OAuth redirect callback."""

    server: _LoginHTTPServer

    def log_message(self, format: str, *args: Any) -> None:
        pass  # Suppress HTTP server logs

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path == "/favicon.ico":
            self.send_response(204)
            self.end_headers()
            return
        if parsed.path != CALLBACK_PATH:
            self.send_error(404)
            return

        ctx = self.server.login_context
        result = ctx.result
        if not result.claim():
            self._send_html("<h1>Login already handled</h1><p>You can close this window.</p>")
            return

        error: str | None = ERROR_TOKEN_EXCHANGE
        try:
            error = self._complete_login(ctx, parse_qs(parsed.query))
        finally:
            if error:
                result.fail(error)

        if error:
            self._send_html(f"<h1>Login Failed</h1><p>{html.escape(error)}</p>")
        else:
            self._send_html(
                "<h1>Signed in to Codex</h1><p>You can close this window and return to your terminal.</p>"
            )

    def _complete_login(self, ctx: _LoginContext, params: dict[str, list[str]]) -> str | None:
        """Validate the redirect and persist tokens. Returns an error message on failure."""
        if "error" in params:
            return params.get("error_description", params["error"])[0]
        if params.get("state", [None])[0] != ctx.state:
            return ERROR_STATE_MISMATCH
        code = params.get("code", [None])[0]
        if not code:
            return ERROR_MISSING_CODE

        opts = ctx.options
        try:
            tokens = exchange_code_for_tokens(
                opts.issuer, opts.client_id, code, ctx.code_verifier, ctx.redirect_uri
            )
        except httpx.HTTPStatusError as e:
            return _format_http_error(e)
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.debug("Token exchange failed", exc_info=True)
            return f"{ERROR_TOKEN_EXCHANGE}: {e}"

        try:
            committed = ctx.result.commit(lambda: save_tokens(opts.codex_home, tokens))
        except StoreError as e:
            return str(e)
        if not committed:
            # Timed out or cancelled while the exchange was in flight.
            return ctx.result.error or ERROR_LOGIN_CANCELLED
        logger.debug("ChatGPT login completed for account %s", tokens.account_id)
        return None

    def _send_html(self, body: str) -> None:
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(f"<html><body>{body}</body></html>".encode())


class LoginServer:
    """Handle for a running login server.

    Exposes the bound port and the URL to open. ``block_until_done`` is the
    only blocking call; it always stops the server before returning.
    """

    def __init__(self, server: _LoginHTTPServer, thread: threading.Thread, auth_url: str) -> None:
        self._server = server
        self._thread = thread
        self._closed = False
        self.actual_port: int = server.server_address[1]
        self.auth_url = auth_url

    @property
    def _result(self) -> _CallbackResult:
        return self._server.login_context.result

    def block_until_done(self, timeout: float | None = AUTH_TIMEOUT_SECONDS) -> None:
        """Wait for the browser callback.

        Returns once tokens have been persisted. Raises HandshakeError on
        timeout, cancellation, rejection, or a failed exchange; in those
        cases nothing is written, even if a callback is still in flight.
        """
        try:
            if not self._result.received.wait(timeout=timeout):
                self._result.fail(ERROR_AUTH_TIMEOUT)
        finally:
            self.shutdown()

        if self._result.error:
            raise HandshakeError(self._result.error)

    def cancel(self) -> None:
        """Abort a pending login; a waiting ``block_until_done`` raises HandshakeError."""
        if self._result.fail(ERROR_LOGIN_CANCELLED):
            logger.debug("Login on port %s cancelled", self.actual_port)

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._server.shutdown()
        self._thread.join(timeout=2)
        self._server.server_close()


def run_login_server(options: ServerOptions) -> LoginServer:
    """Start the callback server and return without waiting for the login.

    Raises LaunchError if the local port cannot be bound.
    """
    code_verifier, code_challenge = generate_pkce()
    state = options.force_state or secrets.token_urlsafe(32)

    try:
        server = _LoginHTTPServer((CALLBACK_HOST, options.port), _CallbackHandler)
    except OSError as e:
        if "Address already in use" in str(e):
            raise LaunchError(
                f"Port {options.port} is already in use. Close other applications and try again."
            ) from e
        raise LaunchError(f"Could not start login server: {e}") from e

    port = server.server_address[1]
    redirect_uri = build_redirect_uri(port)
    auth_url = build_auth_url(options.issuer, options.client_id, redirect_uri, code_challenge, state)
    server.login_context = _LoginContext(
        options=options,
        state=state,
        code_verifier=code_verifier,
        redirect_uri=redirect_uri,
    )

    thread = threading.Thread(target=server.serve_forever, name="codex-login-server", daemon=True)
    thread.start()
    logger.debug("Login server listening on %s:%s", CALLBACK_HOST, port)

    if options.open_browser:
        try:
            opened = webbrowser.open(auth_url)
        except webbrowser.Error:
            opened = False
        if not opened:
            logger.warning("Could not open browser. Open this URL manually:\n  %s", auth_url)

    return LoginServer(server, thread, auth_url)
