"""Auth commands -- OAuth2 login and token management.

Provides the ``gitlab auth`` sub-command group.

Typical workflow::

    gitlab auth login            # browser-based OAuth2 + PKCE login
    gitlab auth status           # which credential is in use, expiry
    gitlab auth token            # print a fresh bearer token for scripts
    gitlab auth logout           # forget stored credentials
"""

from __future__ import annotations

import threading
import webbrowser
from typing import Optional

import typer

from gitlab_cli.auth import (
    DEFAULT_CLIENT_ID,
    AuthFlow,
    ensure_fresh,
    get_current_bearer_token,
    refresh_token,
    wait_for_callback,
)
from gitlab_cli.commands import get_store
from gitlab_cli.output import info, print_data, print_table, success, suggest, warning


auth_app = typer.Typer(no_args_is_help=True)


def _open_browser(url: str) -> None:
    """Open *url* in a daemon thread; a failure only prints a warning."""

    def _open() -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error:
            opened = False
        if not opened:
            warning("Failed to open a browser. Open the URL above manually.")

    threading.Thread(target=_open, daemon=True).start()


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    client_id: Optional[str] = typer.Option(
        None,
        "--client-id",
        help="OAuth2 application id (defaults to the public gitlab.com CLI application).",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="GitLab host URL (overrides and replaces the configured host)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds to wait for the browser redirect (default: no limit)."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Only print the authorization URL."
    ),
) -> None:
    """Authenticate with OAuth2 (Authorization Code + PKCE).

    Prints the authorization URL and opens it in a browser, waits for the
    redirect on ``localhost:7171``, exchanges the code for tokens and
    saves them. A configured static token is removed, since the OAuth2
    token takes over.

    Example::

        gitlab auth login
        gitlab auth login --host https://gitlab.example.com --client-id <id>
    """
    store = get_store(ctx)
    auth_host = host.rstrip("/") if host else store.host
    flow = AuthFlow(auth_host, client_id or DEFAULT_CLIENT_ID)
    auth_url = flow.authorization_url()

    info("Opening browser for authorization...")
    info(f"If the browser doesn't open, visit: {auth_url}")

    on_listening = None if no_browser else (lambda: _open_browser(auth_url))
    info("Waiting for authorization callback...")
    code = wait_for_callback(timeout=timeout, on_listening=on_listening)

    info("Authorization code received, exchanging for token...")
    store.config.oauth2 = flow.exchange_code(code)
    store.config.token = None
    if host:
        store.config.host = auth_host
    store.save()
    success("Authentication successful!")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show which credential is configured and when it expires."""
    store = get_store(ctx)
    oauth2 = store.config.oauth2

    if oauth2 is not None:
        info("OAuth2 authenticated")
        print_table(
            ["Field", "Value"],
            [
                ["client_id", f"{oauth2.client_id[:8]}..."],
                ["expires_at", oauth2.expires_at.isoformat()],
                ["expired", str(oauth2.is_expired()).lower()],
            ],
            title="OAuth2 token",
        )
        return

    if store.static_token:
        info("Using static token (legacy)")
        return

    info("Not authenticated")
    suggest("Log in: gitlab auth login")


@auth_app.command("refresh")
def auth_refresh(ctx: typer.Context) -> None:
    """Refresh the OAuth2 token now, even if it has not expired."""
    store = get_store(ctx)
    token = refresh_token(store)
    success(f"Token refreshed, expires at {token.expires_at.isoformat()}")


@auth_app.command("token")
def auth_token(ctx: typer.Context) -> None:
    """Print the current bearer token to stdout, refreshing it first if expired.

    Example::

        curl -H "Authorization: Bearer $(gitlab auth token)" https://gitlab.com/api/v4/user
    """
    store = get_store(ctx)
    ensure_fresh(store)
    print_data(get_current_bearer_token(store))


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Remove the stored OAuth2 token and static token.

    Asks for confirmation unless the ``--force`` flag is active.
    """
    store = get_store(ctx)
    if store.config.oauth2 is None and not store.config.token:
        info("No stored credentials.")
        return

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f"Remove stored credentials from {store.path}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    store.config.oauth2 = None
    store.config.token = None
    store.save()
    success("Logged out.")
