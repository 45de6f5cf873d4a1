"""Main entry point for the codex auth CLI."""

from __future__ import annotations

import os
from typing import List, Optional

import typer
from rich.console import Console

from ..auth.constants import OPENAI_API_KEY_ENV_VAR
from ..config import CliConfigOverrides
from ..exceptions import SessionError
from ..session import run_login_status, run_login_with_api_key, run_login_with_chatgpt, run_logout

app = typer.Typer(
    name="codex",
    help="Codex CLI - manage authentication",
    no_args_is_help=True,
)
login_app = typer.Typer(help="Log in with ChatGPT or an API key")
app.add_typer(login_app, name="login")

console = Console(stderr=True)


def _overrides(ctx: typer.Context) -> CliConfigOverrides:
    return ctx.obj if isinstance(ctx.obj, CliConfigOverrides) else CliConfigOverrides()


def _version_callback(value: bool) -> None:
    """Handle --version and exit early."""
    if value:
        from codex_auth import __version__

        typer.echo(f"codex {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: List[str] = typer.Option(
        [],
        "-c",
        "--config",
        help="Override a configuration value (key=value, value parsed as JSON). Repeatable.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the CLI version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Codex CLI root callback."""
    _ = version
    ctx.obj = CliConfigOverrides(raw_overrides=list(config))


@login_app.callback(invoke_without_command=True)
def login(
    ctx: typer.Context,
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="Log in with an API key instead of ChatGPT.",
    ),
) -> None:
    """Log in to Codex.

    Without --api-key, starts a local server and opens your browser to sign in with ChatGPT.
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        if api_key is not None:
            run_login_with_api_key(_overrides(ctx), api_key, console=console)
        else:
            run_login_with_chatgpt(_overrides(ctx), console=console)
    except SessionError:
        raise typer.Exit(1)


@login_app.command("status")
def status(ctx: typer.Context) -> None:
    """Show login status. Exits with code 1 when not logged in."""
    try:
        report = run_login_status(
            _overrides(ctx),
            env_api_key=os.environ.get(OPENAI_API_KEY_ENV_VAR),
            console=console,
        )
    except SessionError:
        raise typer.Exit(1)

    if not report.is_logged_in:
        raise typer.Exit(1)


@app.command()
def logout(ctx: typer.Context) -> None:
    """Remove stored authentication credentials."""
    try:
        run_logout(_overrides(ctx), console=console)
    except SessionError:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show the CLI version."""
    from codex_auth import __version__

    typer.echo(f"codex {__version__}")


if __name__ == "__main__":
    app()
