"""Authenticated HTTP client for the GitLab REST API (``/api/v4``).

:class:`GitLabClient` wraps :class:`httpx.Client` and layers on:

- **Expiry gate** -- on entry, an expired OAuth2 token is refreshed once
  via :func:`~gitlab_cli.auth.credentials.ensure_fresh`.
- **Bearer injection** -- ``Authorization: Bearer <token>`` on every
  request, resolved by
  :func:`~gitlab_cli.auth.credentials.get_current_bearer_token`.
- **Retry with backoff** -- 5xx replies and network errors are retried
  with exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- 401/403, 404 and other error statuses become
  :class:`AuthError`, :class:`NotFoundError` and :class:`ServerError`.
"""

from __future__ import annotations

import json
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx

from gitlab_cli.auth.credentials import ensure_fresh, get_current_bearer_token
from gitlab_cli.config import ConfigStore
from gitlab_cli.exceptions import (
    AuthError,
    ConfigError,
    ConnectionError_,
    InvalidUsageError,
    NotFoundError,
    ServerError,
)
from gitlab_cli.output import get_output

API_PREFIX = "/api/v4"
RAW_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


class GitLabClient:
    """Synchronous client for the REST API of one GitLab host.

    Must be used as a context manager: entering it runs the expiry gate and
    resolves the bearer token, so a missing or unrefreshable credential
    fails before any request is built.

    Args:
        store: Loaded configuration; supplies host, token and default project.
        project: Project path (``group/name``) or numeric id overriding the
            configured default.
        transport: Optional :mod:`httpx` transport, used by tests.

    Example::

        with GitLabClient(store, project="group/app") as client:
            mr = client.get(f"/projects/{client.encoded_project}/merge_requests/1").json()
    """

    def __init__(
        self,
        store: ConfigStore,
        project: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._store = store
        self._project = project
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def base_url(self) -> str:
        return f"{self._store.host}{API_PREFIX}"

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> GitLabClient:
        ensure_fresh(self._store)
        token = get_current_bearer_token(self._store)

        settings = self._store.config.request
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=settings.timeout,
            verify=settings.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    @property
    def project(self) -> str:
        """The effective project: the override, else the configured default.

        Raises:
            ConfigError: If no project is available.
        """
        project = self._project or self._store.project
        if not project:
            raise ConfigError(
                "No project specified. Use --project or run: "
                "gitlab config set --project <project>"
            )
        return project

    @property
    def encoded_project(self) -> str:
        """The project, percent-encoded for use as a single path segment."""
        return quote(self.project, safe="")

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Send a request relative to ``/api/v4`` and return the 2xx response.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On any other error status, after retries for 5xx.
            ConnectionError_: On network errors after all retries.
        """
        output = get_output()
        output.debug(f"{method.upper()} {self.base_url}{path}")
        response = self._execute_with_retry(method.upper(), path, params, json_body)
        self._map_response_error(response)
        return response

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def raw_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[str] = None,
    ) -> httpx.Response:
        """Send an arbitrary request, as used by ``gitlab api``.

        Args:
            method: One of GET, POST, PUT, PATCH, DELETE (any case).
            endpoint: Path with or without a leading ``/`` and with or
                without the ``api/v4/`` prefix.
            data: Optional JSON document sent as the request body.

        Raises:
            InvalidUsageError: For an unsupported method or invalid JSON.
        """
        verb = method.upper()
        if verb not in RAW_METHODS:
            raise InvalidUsageError(f"Unsupported HTTP method: {method}")

        json_body = None
        if data is not None:
            try:
                json_body = json.loads(data)
            except json.JSONDecodeError as exc:
                raise InvalidUsageError(f"Invalid JSON in --data: {exc}") from exc

        path = endpoint.lstrip("/")
        prefix = API_PREFIX.lstrip("/") + "/"
        if path.startswith(prefix):
            path = path[len(prefix):]
        return self.request(verb, f"/{path}", json_body=json_body)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _execute_with_retry(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]],
        json_body: Any,
    ) -> httpx.Response:
        assert self._client is not None, "Client not initialised -- use as context manager"

        max_retries = self._store.config.request.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                kwargs: dict[str, Any] = {"params": params}
                if json_body is not None:
                    kwargs["json"] = json_body
                response = self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Failed to send request after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(delay)
                continue
            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error statuses, embedding the raw body."""
        status = response.status_code
        if status < 400:
            return

        message = f"HTTP {status}: {response.text}" if response.text else f"HTTP {status}"
        if status in (401, 403):
            raise AuthError(message)
        if status == 404:
            raise NotFoundError(message)
        raise ServerError(message)
