"""HTTP client module for gitlab_cli.

:class:`GitLabClient` wraps :class:`httpx.Client` with the expiry gate,
bearer-token injection, retry with exponential backoff, and mapping of
error statuses onto the :mod:`gitlab_cli.exceptions` hierarchy.

Example::

    from gitlab_cli.client import GitLabClient

    with GitLabClient(store) as client:
        resp = client.get("/user")
"""

from gitlab_cli.client.response import extract_response_data, format_api_response
from gitlab_cli.client.sync_client import GitLabClient

__all__ = ["GitLabClient", "extract_response_data", "format_api_response"]
