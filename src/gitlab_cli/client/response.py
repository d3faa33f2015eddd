"""Bridge from :class:`httpx.Response` to the output system.

See Also:
    :mod:`gitlab_cli.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Any

import httpx

from gitlab_cli.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the status line to stderr (verbose only) and the body to stdout."""
    output = get_output()
    output.debug(f"HTTP {response.status_code} {response.reason_phrase or ''}")

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Return the decoded JSON body, the raw text if it is not JSON, or ``None`` if empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
