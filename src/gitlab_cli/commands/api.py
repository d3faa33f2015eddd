"""Raw API command -- send any authenticated request to ``/api/v4``.

The endpoint may be given with or without the ``/api/v4`` prefix. A literal
``:id`` segment is replaced by the URL-encoded project (``--project`` or the
configured default)::

    gitlab api /user
    gitlab api /api/v4/projects/:id/merge_requests --project group/app
    gitlab api /projects/:id/issues -m POST -d '{"title": "Bug"}'
"""

from __future__ import annotations

from typing import Optional

import typer

from gitlab_cli.client import GitLabClient, format_api_response
from gitlab_cli.commands import get_store


def api_command(
    ctx: typer.Context,
    endpoint: str = typer.Argument(help="API endpoint, e.g. /projects or /api/v4/projects."),
    method: str = typer.Option("GET", "--method", "-m", help="HTTP method."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="JSON request body."),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project substituted for ':id' (overrides the default)."
    ),
) -> None:
    """Make an authenticated request to the REST API and print the response."""
    store = get_store(ctx)
    with GitLabClient(store, project=project) as client:
        if ":id" in endpoint.split("/"):
            endpoint = "/".join(client.encoded_project if seg == ":id" else seg for seg in endpoint.split("/"))
        response = client.raw_request(method, endpoint, data)
    format_api_response(response)
