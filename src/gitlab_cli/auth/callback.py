"""Single-shot local listener for the OAuth2 authorization redirect.

After the user approves access in the browser, GitLab redirects to
``http://localhost:7171/auth/redirect?code=...`` (or ``?error=...``). This
module binds that address, serves exactly one HTTP request, answers it with
a small HTML page, and hands the authorization code back to the caller.

:func:`parse_callback_request` is the pure part: it turns a raw request line
into an :class:`~gitlab_cli.models.AuthorizationCode` or
:class:`~gitlab_cli.models.AuthorizationDenied`. :func:`wait_for_callback`
is the blocking part and runs on the calling thread.
"""

from __future__ import annotations

import html
import logging
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl

from gitlab_cli.exceptions import AuthError, CallbackError
from gitlab_cli.models import AuthorizationCode, AuthorizationDenied, CallbackResult

logger = logging.getLogger(__name__)

LISTEN_ADDRESS = ("127.0.0.1", 7171)

_SUCCESS_PAGE = (
    "<html><body><h1>Authorization successful!</h1>"
    "<p>You can close this window and return to the terminal.</p></body></html>"
)
_FAILURE_PAGE = (
    "<html><body><h1>Authorization failed</h1>"
    "<p>{message}</p><p>You can close this window.</p></body></html>"
)


class _OneShotServer(HTTPServer):
    """HTTP server that records whether ``handle_request`` timed out."""

    timed_out = False

    def handle_timeout(self) -> None:
        self.timed_out = True


def parse_callback_request(request_line: str) -> CallbackResult:
    """Extract the authorization result from an HTTP request line.

    Args:
        request_line: e.g. ``"GET /auth/redirect?code=abc123 HTTP/1.1"``.

    Returns:
        :class:`AuthorizationCode` for the first ``code`` parameter, or
        :class:`AuthorizationDenied` for the first ``error`` parameter,
        whichever appears first in the query string.

    Raises:
        CallbackError: If the request line is malformed, the path has no
            query string, or the query carries neither ``code`` nor ``error``.
    """
    parts = request_line.split()
    if len(parts) < 2:
        raise CallbackError("Invalid HTTP request")

    path = parts[1]
    if "?" not in path:
        raise CallbackError("No query string in callback")

    pairs = parse_qsl(path.split("?", 1)[1])
    for key, value in pairs:
        if key == "code":
            return AuthorizationCode(code=value)
        if key == "error":
            description = next(
                (v for k, v in pairs if k == "error_description"), ""
            )
            return AuthorizationDenied(error=value, error_description=description)

    raise CallbackError("No authorization code in callback")


def wait_for_callback(
    address: tuple[str, int] = LISTEN_ADDRESS,
    timeout: Optional[float] = None,
    on_listening: Optional[Callable[[], None]] = None,
) -> str:
    """Block until the provider redirects the browser back, then return the code.

    Exactly one connection is accepted; the listening socket is closed
    before this function returns, whatever the outcome.

    Args:
        address: ``(host, port)`` to bind. Fixed in production because the
            redirect URI registered with the OAuth application names it.
        timeout: Seconds to wait for the redirect. ``None`` waits forever.
        on_listening: Called once the socket is bound and before waiting,
            e.g. to open the browser. Runs on the calling thread.

    Returns:
        The authorization code.

    Raises:
        AuthError: If the address cannot be bound, no request arrives before
            *timeout*, or the provider reported an authorization error.
        CallbackError: If the request cannot be parsed.
    """
    outcome: dict[str, Any] = {}
    deadline = None if timeout is None else time.monotonic() + timeout

    class CallbackHandler(BaseHTTPRequestHandler):
        def setup(self) -> None:
            # The accepted connection gets whatever is left of the overall timeout
            if deadline is not None:
                self.timeout = max(deadline - time.monotonic(), 0.001)
            super().setup()

        def do_GET(self) -> None:
            try:
                result = parse_callback_request(self.requestline)
            except CallbackError as exc:
                outcome["error"] = exc
                self._reply(400, _FAILURE_PAGE.format(message=html.escape(str(exc))))
                return

            outcome["result"] = result
            if isinstance(result, AuthorizationDenied):
                message = f"{result.error}: {result.error_description}"
                self._reply(200, _FAILURE_PAGE.format(message=html.escape(message)))
            else:
                self._reply(200, _SUCCESS_PAGE)

        def _reply(self, status: int, page: str) -> None:
            body = page.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("callback: " + format, *args)

    host, port = address
    try:
        server = _OneShotServer(address, CallbackHandler)
    except OSError as exc:
        raise AuthError(
            f"Failed to bind to {host}:{port}. Is another instance running? ({exc})"
        ) from exc

    server.timeout = timeout
    try:
        if on_listening is not None:
            on_listening()
        logger.debug("Waiting for authorization callback on %s:%s", host, port)
        server.handle_request()
    finally:
        server.server_close()

    if "error" in outcome:
        raise outcome["error"]

    if server.timed_out or (
        not outcome and deadline is not None and time.monotonic() >= deadline
    ):
        raise AuthError(f"No authorization callback received within {timeout:g}s")

    result = outcome.get("result")
    if result is None:
        raise CallbackError("Invalid HTTP request")

    if isinstance(result, AuthorizationDenied):
        raise AuthError(
            f"Authorization failed: {result.error} - {result.error_description}"
        )
    return result.code
