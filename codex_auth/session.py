"""Login, logout and status for the codex CLI.

``SessionManager`` owns the user-facing lines for each operation and maps
store and login-server outcomes onto ``LoginStatus`` / ``LogoutStatus``.
The ``run_*`` functions resolve configuration first and then delegate, so a
bad ``-c`` override fails before anything touches the credential store.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.console import Console

from .auth import credentials
from .auth.constants import AUTH_TIMEOUT_SECONDS, CLIENT_ID, OPENAI_API_KEY_ENV_VAR
from .auth.masking import mask_key
from .auth.types import ApiKeyCredential, ChatGPTCredential, LogoutStatus, StatusReport
from .config import CliConfigOverrides, Config
from .exceptions import ConfigError, HandshakeError, LaunchError, SessionError, StoreError

if TYPE_CHECKING:
    from .auth.server import ServerOptions


def default_console() -> Console:
    """Console for user-facing diagnostics; everything goes to stderr."""
    return Console(stderr=True)


def _print(console: Console, message: str, style: Optional[str] = None) -> None:
    # Messages carry paths and error text, so never interpret them as markup.
    console.print(message, style=style, markup=False, highlight=False, soft_wrap=True)


class SessionManager:
    """Authentication operations against a single storage root.

    Args:
        config: Resolved configuration; only ``codex_home`` is used.
        env_api_key: Value of the API key environment variable, if any. It is
            only used to tell the user where a stored key came from.
        console: Where user-facing lines are written (stderr by default).
    """

    def __init__(
        self,
        config: Config,
        *,
        env_api_key: Optional[str] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.config = config
        self.env_api_key = env_api_key
        self.console = console or default_console()

    @property
    def codex_home(self) -> Path:
        return self.config.codex_home

    def _emit(self, message: str, style: Optional[str] = None) -> None:
        _print(self.console, message, style)

    def login_api_key(self, api_key: str) -> None:
        try:
            credentials.login_with_api_key(self.codex_home, api_key)
        except StoreError as e:
            self._emit(f"Error logging in: {e}", style="red")
            raise SessionError(f"Error logging in: {e}") from e
        self._emit("Successfully logged in", style="green")

    def login_chatgpt(
        self,
        options: Optional[ServerOptions] = None,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        """Sign in through the browser and block until the session is stored.

        ``options`` defaults to ``ServerOptions(codex_home, CLIENT_ID)``.
        """
        from .auth.server import ServerOptions, run_login_server

        if options is None:
            options = ServerOptions(codex_home=self.codex_home, client_id=CLIENT_ID)

        try:
            server = run_login_server(options)
            self._emit(
                f"Starting local login server on http://localhost:{server.actual_port}.\n"
                "If your browser did not open, navigate to this URL to authenticate:\n\n"
                f"{server.auth_url}"
            )
            server.block_until_done(timeout=AUTH_TIMEOUT_SECONDS if timeout is None else timeout)
        except (LaunchError, HandshakeError) as e:
            self._emit(f"Error logging in: {e}", style="red")
            raise SessionError(f"Error logging in: {e}") from e
        self._emit("Successfully logged in", style="green")

    def status(self) -> StatusReport:
        try:
            credential = credentials.resolve(self.codex_home)
        except StoreError as e:
            self._emit(f"Error checking login status: {e}", style="red")
            raise SessionError(f"Error checking login status: {e}") from e

        if credential is None:
            self._emit("Not logged in", style="yellow")
            return StatusReport.not_logged_in()

        if isinstance(credential, ApiKeyCredential):
            try:
                api_key = credential.get_token()
            except StoreError as e:
                self._emit(f"Unexpected error retrieving API key: {e}", style="red")
                raise SessionError(f"Unexpected error retrieving API key: {e}") from e

            self._emit(f"Logged in using an API key - {mask_key(api_key)}")
            # Informational only: the stored key is what gets used either way.
            if self.env_api_key is not None and self.env_api_key == api_key:
                self._emit(
                    f"   API loaded from {OPENAI_API_KEY_ENV_VAR} environment variable or .env file"
                )
            return StatusReport.logged_in(credential.mode)

        if isinstance(credential, ChatGPTCredential):
            self._emit("Logged in using ChatGPT")
            return StatusReport.logged_in(credential.mode)

        raise SessionError(f"Unsupported credential type: {type(credential).__name__}")

    def logout(self) -> LogoutStatus:
        try:
            removed = credentials.remove(self.codex_home)
        except StoreError as e:
            self._emit(f"Error logging out: {e}", style="red")
            raise SessionError(f"Error logging out: {e}") from e

        if removed:
            self._emit("Successfully logged out", style="green")
            return LogoutStatus.LOGGED_OUT
        self._emit("Not logged in", style="yellow")
        return LogoutStatus.NOT_LOGGED_IN


def load_config(
    cli_overrides: CliConfigOverrides,
    console: Optional[Console] = None,
) -> Config:
    """Resolve configuration, reporting failures to the user before raising SessionError."""
    console = console or default_console()
    try:
        parsed = cli_overrides.parse_overrides()
    except ConfigError as e:
        _print(console, f"Error parsing -c overrides: {e}", "red")
        raise SessionError(f"Error parsing -c overrides: {e}") from e

    try:
        return Config.load_with_cli_overrides(parsed)
    except ConfigError as e:
        _print(console, f"Error loading configuration: {e}", "red")
        raise SessionError(f"Error loading configuration: {e}") from e


def _manager(
    cli_overrides: CliConfigOverrides,
    env_api_key: Optional[str],
    console: Optional[Console],
) -> SessionManager:
    console = console or default_console()
    config = load_config(cli_overrides, console)
    return SessionManager(config, env_api_key=env_api_key, console=console)


def run_login_with_api_key(
    cli_overrides: CliConfigOverrides,
    api_key: str,
    *,
    console: Optional[Console] = None,
) -> None:
    _manager(cli_overrides, None, console).login_api_key(api_key)


def run_login_with_chatgpt(
    cli_overrides: CliConfigOverrides,
    *,
    console: Optional[Console] = None,
) -> None:
    _manager(cli_overrides, None, console).login_chatgpt()


def run_login_status(
    cli_overrides: CliConfigOverrides,
    *,
    env_api_key: Optional[str] = None,
    console: Optional[Console] = None,
) -> StatusReport:
    return _manager(cli_overrides, env_api_key, console).status()


def run_logout(
    cli_overrides: CliConfigOverrides,
    *,
    console: Optional[Console] = None,
) -> LogoutStatus:
    return _manager(cli_overrides, None, console).logout()
