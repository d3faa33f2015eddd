"""OAuth2 login and token lifecycle for gitlab_cli.

The login flow, leaves first:

- :mod:`~gitlab_cli.auth.pkce` -- code verifier and S256 challenge.
- :mod:`~gitlab_cli.auth.oauth2` -- authorization URL, code exchange and
  token refresh against ``{host}/oauth/token``.
- :mod:`~gitlab_cli.auth.callback` -- single-shot local listener that
  receives the browser redirect.
- :mod:`~gitlab_cli.auth.credentials` -- static-token/OAuth2 priority and
  the expiry gate run before authenticated commands.

Typical usage::

    from gitlab_cli.auth import ensure_fresh, get_current_bearer_token

    ensure_fresh(store)
    token = get_current_bearer_token(store)
"""

from gitlab_cli.auth.callback import LISTEN_ADDRESS, parse_callback_request, wait_for_callback
from gitlab_cli.auth.credentials import ensure_fresh, get_current_bearer_token, resolve_credential
from gitlab_cli.auth.oauth2 import (
    DEFAULT_CLIENT_ID,
    AuthFlow,
    build_authorization_url,
    parse_token_response,
    refresh_token,
)
from gitlab_cli.auth.pkce import PKCEPair, challenge_for, generate_verifier

__all__ = [
    "AuthFlow",
    "DEFAULT_CLIENT_ID",
    "LISTEN_ADDRESS",
    "PKCEPair",
    "build_authorization_url",
    "challenge_for",
    "ensure_fresh",
    "generate_verifier",
    "get_current_bearer_token",
    "parse_callback_request",
    "parse_token_response",
    "refresh_token",
    "resolve_credential",
    "wait_for_callback",
]
