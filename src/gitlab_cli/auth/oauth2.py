"""OAuth2 Authorization Code grant with PKCE against a GitLab instance.

This module implements the network half of ``gitlab auth login`` and the
transparent token refresh:

1. :class:`AuthFlow` generates a PKCE pair and builds the browser-facing
   authorization URL (:func:`build_authorization_url`).
2. The caller waits for the redirect with
   :func:`~gitlab_cli.auth.callback.wait_for_callback`.
3. :meth:`AuthFlow.exchange_code` posts the code and the verifier to
   ``{host}/oauth/token`` and returns an
   :class:`~gitlab_cli.models.OAuth2Token`.
4. :func:`refresh_token` later swaps the stored refresh token for a new
   token pair and persists it immediately.

Both token requests share :func:`parse_token_response`, which is the only
place ``expires_at`` is computed.

See Also:
    :mod:`gitlab_cli.auth.credentials` for the expiry gate that decides
    when :func:`refresh_token` runs.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote

import httpx

from gitlab_cli.auth.pkce import PKCEPair
from gitlab_cli.config import ConfigStore
from gitlab_cli.exceptions import AuthError, ConnectionError_
from gitlab_cli.models import OAuth2Token

REDIRECT_URI = "http://localhost:7171/auth/redirect"
SCOPES = "openid profile read_user write_repository api"
# Public application id registered on gitlab.com for command-line clients (same as glab)
DEFAULT_CLIENT_ID = "41d48f9422ebd655dd9cf2947d6979681dfaddc6d0c56f7628f6ada59559af1e"
DEFAULT_EXPIRES_IN = 7200
TOKEN_TIMEOUT = 30.0


def build_authorization_url(host: str, client_id: str, challenge: str) -> str:
    """Return the ``/oauth/authorize`` URL the user opens in a browser.

    Every query value is percent-encoded on its own (spaces in the scope
    list become ``%20``). ``redirect_uri`` and ``scope`` are fixed.

    Args:
        host: GitLab base URL, e.g. ``https://gitlab.com``.
        client_id: OAuth application id.
        challenge: S256 PKCE code challenge.
    """
    params = [
        ("client_id", client_id),
        ("redirect_uri", REDIRECT_URI),
        ("response_type", "code"),
        ("scope", SCOPES),
        ("code_challenge", challenge),
        ("code_challenge_method", "S256"),
    ]
    query = "&".join(f"{key}={quote(value, safe='')}" for key, value in params)
    return f"{host.rstrip('/')}/oauth/authorize?{query}"


def parse_token_response(
    client_id: str,
    body: str,
    now: Optional[datetime] = None,
) -> OAuth2Token:
    """Turn a token endpoint JSON body into an :class:`OAuth2Token`.

    ``access_token`` and ``refresh_token`` are required. ``expires_in``
    defaults to :data:`DEFAULT_EXPIRES_IN` seconds when missing or not an
    integer, and ``expires_at`` is ``now + expires_in``.

    Raises:
        AuthError: If the body is not JSON or a required field is missing.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        raise AuthError(f"Failed to parse token response: {exc}") from exc
    if not isinstance(data, dict):
        raise AuthError("Failed to parse token response: expected a JSON object")

    access_token = data.get("access_token")
    if not isinstance(access_token, str):
        raise AuthError("Token response missing access_token")
    refresh = data.get("refresh_token")
    if not isinstance(refresh, str):
        raise AuthError("Token response missing refresh_token")

    expires_in = data.get("expires_in")
    if not isinstance(expires_in, int) or isinstance(expires_in, bool):
        expires_in = DEFAULT_EXPIRES_IN

    if now is None:
        now = datetime.now(timezone.utc)
    return OAuth2Token(
        client_id=client_id,
        access_token=access_token,
        refresh_token=refresh,
        expires_at=now + timedelta(seconds=expires_in),
    )


def _post_token_request(host: str, data: dict[str, str], action: str) -> str:
    """POST *data* to the token endpoint and return the raw body of a 2xx reply.

    Args:
        action: Verb used in error messages (``"exchange"`` or ``"refresh"``).
    """
    try:
        response = httpx.post(
            f"{host}/oauth/token",
            data=data,
            headers={"Accept": "application/json"},
            timeout=TOKEN_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        what = "exchange authorization code" if action == "exchange" else "refresh token"
        raise ConnectionError_(f"Failed to {what}: {exc}") from exc

    if not response.is_success:
        raise AuthError(f"Token {action} failed: {response.text}")
    return response.text


class AuthFlow:
    """State for one interactive login attempt.

    Holds the host, the client id and the PKCE pair so that the verifier
    used in :meth:`exchange_code` is the one whose challenge went into
    :meth:`authorization_url`.

    Args:
        host: GitLab base URL. A trailing slash is stripped.
        client_id: OAuth application id.
        pkce: Pre-generated PKCE pair; a fresh one is generated when omitted.

    Example::

        flow = AuthFlow("https://gitlab.com", DEFAULT_CLIENT_ID)
        webbrowser.open(flow.authorization_url())
        token = flow.exchange_code(wait_for_callback())
    """

    def __init__(self, host: str, client_id: str, pkce: Optional[PKCEPair] = None) -> None:
        self.host = host.rstrip("/")
        self.client_id = client_id
        self._pkce = pkce or PKCEPair.generate()

    @property
    def code_challenge(self) -> str:
        return self._pkce.challenge

    def authorization_url(self) -> str:
        return build_authorization_url(self.host, self.client_id, self._pkce.challenge)

    def exchange_code(self, code: str) -> OAuth2Token:
        """Exchange an authorization code for an access/refresh token pair.

        Raises:
            ConnectionError_: If the token endpoint cannot be reached.
            AuthError: On a non-2xx reply (the raw body is included in the
                message) or a reply missing required fields.
        """
        body = _post_token_request(
            self.host,
            {
                "client_id": self.client_id,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": REDIRECT_URI,
                "code_verifier": self._pkce.verifier,
            },
            "exchange",
        )
        return parse_token_response(self.client_id, body)


def refresh_token(store: ConfigStore) -> OAuth2Token:
    """Mint a new token pair from the stored refresh token and save it.

    The stored record is replaced wholesale and the config file is written
    before this function returns; on any failure neither the in-memory nor
    the on-disk record changes.

    Returns:
        The new token record (also available as ``store.config.oauth2``).

    Raises:
        AuthError: If no OAuth2 record is stored (static tokens are never
            refreshed), or the token endpoint rejects the refresh.
        ConnectionError_: If the token endpoint cannot be reached.
    """
    current = store.config.oauth2
    if current is None:
        raise AuthError("No OAuth2 configuration found. Run: gitlab auth login")

    body = _post_token_request(
        store.host,
        {
            "client_id": current.client_id,
            "refresh_token": current.refresh_token,
            "grant_type": "refresh_token",
        },
        "refresh",
    )
    new_token = parse_token_response(current.client_id, body)
    store.config.oauth2 = new_token
    try:
        store.save()
    except BaseException:
        store.config.oauth2 = current
        raise
    return new_token
