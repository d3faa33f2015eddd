"""Tests for the OAuth2 redirect listener."""

from __future__ import annotations

import socket
import threading
import time
from http.client import HTTPConnection

import pytest

from gitlab_cli.auth.callback import LISTEN_ADDRESS, parse_callback_request, wait_for_callback
from gitlab_cli.exceptions import AuthError, CallbackError
from gitlab_cli.models import AuthorizationCode, AuthorizationDenied


def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _simulate_callback(port: int, path: str, replies: list) -> None:
    """Send one GET to the local listener and record ``(status, body)``."""
    conn = HTTPConnection("127.0.0.1", port, timeout=5)
    conn.request("GET", path)
    response = conn.getresponse()
    replies.append((response.status, response.read().decode("utf-8")))
    conn.close()


class _Browser:
    """Stands in for the browser: sends the redirect once the listener is bound."""

    def __init__(self, port: int, path: str) -> None:
        self.replies: list = []
        self._thread = threading.Thread(
            target=_simulate_callback, args=(port, path, self.replies), daemon=True
        )

    def __call__(self) -> None:
        self._thread.start()

    def reply(self) -> tuple:
        self._thread.join(timeout=5)
        return self.replies[0]


# ---------------------------------------------------------------------------
# Request line parsing
# ---------------------------------------------------------------------------


class TestParseCallbackRequest:
    def test_code(self) -> None:
        result = parse_callback_request("GET /auth/redirect?code=abc123 HTTP/1.1")
        assert result == AuthorizationCode(code="abc123")

    def test_code_with_other_params(self) -> None:
        result = parse_callback_request("GET /auth/redirect?state=s&code=xyz HTTP/1.1")
        assert isinstance(result, AuthorizationCode)
        assert result.code == "xyz"

    def test_first_code_wins(self) -> None:
        result = parse_callback_request("GET /auth/redirect?code=one&code=two HTTP/1.1")
        assert result == AuthorizationCode(code="one")

    def test_code_is_percent_decoded(self) -> None:
        result = parse_callback_request("GET /auth/redirect?code=a%2Fb%3D HTTP/1.1")
        assert result == AuthorizationCode(code="a/b=")

    def test_error_with_description(self) -> None:
        result = parse_callback_request(
            "GET /auth/redirect?error=access_denied&error_description=User%20denied HTTP/1.1"
        )
        assert result == AuthorizationDenied(error="access_denied", error_description="User denied")

    def test_error_without_description(self) -> None:
        result = parse_callback_request("GET /auth/redirect?error=access_denied HTTP/1.1")
        assert isinstance(result, AuthorizationDenied)
        assert result.error_description == ""

    def test_description_before_error(self) -> None:
        result = parse_callback_request(
            "GET /auth/redirect?error_description=nope&error=access_denied HTTP/1.1"
        )
        assert result == AuthorizationDenied(error="access_denied", error_description="nope")

    def test_no_query_string(self) -> None:
        with pytest.raises(CallbackError, match="No query string in callback"):
            parse_callback_request("GET /auth/redirect HTTP/1.1")

    def test_neither_code_nor_error(self) -> None:
        with pytest.raises(CallbackError, match="No authorization code in callback"):
            parse_callback_request("GET /auth/redirect?foo=bar HTTP/1.1")

    def test_malformed_request_line(self) -> None:
        with pytest.raises(CallbackError, match="Invalid HTTP request"):
            parse_callback_request("GARBAGE")

    def test_empty_request_line(self) -> None:
        with pytest.raises(CallbackError, match="Invalid HTTP request"):
            parse_callback_request("")

    def test_callback_error_is_auth_error(self) -> None:
        assert issubclass(CallbackError, AuthError)


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


class TestWaitForCallback:
    """Integration-style tests that bind a real loopback socket."""

    def test_default_address(self) -> None:
        assert LISTEN_ADDRESS == ("127.0.0.1", 7171)

    def test_returns_code_and_serves_success_page(self) -> None:
        port = _find_free_port()
        browser = _Browser(port, "/auth/redirect?code=abc123")

        code = wait_for_callback(("127.0.0.1", port), timeout=5, on_listening=browser)

        assert code == "abc123"
        status, body = browser.reply()
        assert status == 200
        assert "Authorization successful!" in body

    def test_denied_raises_auth_error(self) -> None:
        port = _find_free_port()
        browser = _Browser(
            port, "/auth/redirect?error=access_denied&error_description=User+denied"
        )

        with pytest.raises(AuthError, match="Authorization failed: access_denied - User denied"):
            wait_for_callback(("127.0.0.1", port), timeout=5, on_listening=browser)

        status, body = browser.reply()
        assert status == 200
        assert "Authorization failed" in body

    def test_missing_code_raises_callback_error(self) -> None:
        port = _find_free_port()
        browser = _Browser(port, "/auth/redirect?foo=bar")

        with pytest.raises(CallbackError, match="No authorization code"):
            wait_for_callback(("127.0.0.1", port), timeout=5, on_listening=browser)

        status, _ = browser.reply()
        assert status == 400

    def test_socket_closed_after_request(self) -> None:
        port = _find_free_port()
        browser = _Browser(port, "/auth/redirect?code=x")
        wait_for_callback(("127.0.0.1", port), timeout=5, on_listening=browser)
        browser.reply()

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            assert sock.connect_ex(("127.0.0.1", port)) != 0

    def test_timeout(self) -> None:
        port = _find_free_port()
        with pytest.raises(AuthError, match="No authorization callback received within 0.2s"):
            wait_for_callback(("127.0.0.1", port), timeout=0.2)

    def test_bind_failure(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            with pytest.raises(AuthError, match=f"Failed to bind to 127.0.0.1:{port}"):
                wait_for_callback(("127.0.0.1", port), timeout=1)

    def test_on_listening_runs_once_before_waiting(self) -> None:
        port = _find_free_port()
        calls: list[str] = []
        browser = _Browser(port, "/auth/redirect?code=c")

        def hook() -> None:
            calls.append("listening")
            browser()

        assert wait_for_callback(("127.0.0.1", port), timeout=5, on_listening=hook) == "c"
        assert calls == ["listening"]

    def test_idle_connection_times_out(self) -> None:
        port = _find_free_port()
        idle: list[socket.socket] = []

        def open_without_sending() -> None:
            idle.append(socket.create_connection(("127.0.0.1", port), timeout=5))

        started = time.monotonic()
        try:
            with pytest.raises(AuthError, match="No authorization callback received within 0.5s"):
                wait_for_callback(("127.0.0.1", port), timeout=0.5, on_listening=open_without_sending)
        finally:
            for sock in idle:
                sock.close()
        assert time.monotonic() - started < 5
