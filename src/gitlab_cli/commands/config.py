"""Config commands -- view and modify ``config.json``.

Provides the ``gitlab config`` sub-command group::

    gitlab config show
    gitlab config set --host https://gitlab.example.com --project group/app
    gitlab config set --token glpat-xxxx
"""

from __future__ import annotations

from typing import Optional

import typer

from gitlab_cli.commands import get_store
from gitlab_cli.exceptions import InvalidUsageError
from gitlab_cli.output import info, print_table, success


config_app = typer.Typer(no_args_is_help=True)


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "(not set)"
    return f"{secret[:8]}..."


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective host, token and default project.

    Values coming from ``GITLAB_HOST``, ``GITLAB_TOKEN`` or ``GITLAB_PROJECT``
    are shown as they apply, even though they are never saved.
    """
    store = get_store(ctx)
    info(f"Config file: {store.path}")
    print_table(
        ["Setting", "Value"],
        [
            ["host", store.host],
            ["token", _mask(store.static_token)],
            ["project", store.project or "(not set)"],
        ],
        title="Current configuration",
    )


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(
        None, "--host", help="GitLab host URL (e.g. https://gitlab.com)."
    ),
    token: Optional[str] = typer.Option(
        None, "--token", help="Personal access token."
    ),
    project: Optional[str] = typer.Option(
        None, "--project", help="Default project (e.g. group/project)."
    ),
) -> None:
    """Set the host, static token and/or default project.

    Raises:
        InvalidUsageError: If no option is given.
    """
    if host is None and token is None and project is None:
        raise InvalidUsageError("Nothing to set. Use --host, --token or --project.")

    store = get_store(ctx)
    if host is not None:
        store.config.host = host.rstrip("/")
    if token is not None:
        store.config.token = token
    if project is not None:
        store.config.project = project
    store.save()
    success("Configuration saved.")
