"""Resolving "the current access token" and keeping it fresh.

Two credentials can be configured at once: a legacy static personal access
token and an OAuth2 token record. :func:`resolve_credential` is the single
place that decides between them -- an unexpired OAuth2 record always wins --
and returns the choice as a tagged union
(:class:`~gitlab_cli.models.OAuth2Credential` or
:class:`~gitlab_cli.models.StaticTokenCredential`).

:func:`ensure_fresh` is the expiry gate run once per command, before the
first authenticated request. A command that outlives the token (a long
polling loop, for instance) is not refreshed again mid-way.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from gitlab_cli.auth.oauth2 import refresh_token
from gitlab_cli.config import ConfigStore
from gitlab_cli.exceptions import ConfigError
from gitlab_cli.models import (
    Credential,
    OAuth2Credential,
    OAuth2Token,
    StaticTokenCredential,
)
from gitlab_cli.output import info


def resolve_credential(
    oauth2: Optional[OAuth2Token],
    static_token: Optional[str],
    now: Optional[datetime] = None,
) -> Optional[Credential]:
    """Pick the credential to send, or ``None`` when nothing usable is configured.

    Priority: unexpired OAuth2 record, then static token. An expired OAuth2
    record is skipped here; refreshing it is :func:`ensure_fresh`'s job.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if oauth2 is not None and not oauth2.is_expired(now):
        return OAuth2Credential(record=oauth2)
    if static_token:
        return StaticTokenCredential(token=static_token)
    return None


def get_current_bearer_token(store: ConfigStore) -> str:
    """Return the bearer token for API requests. Never touches the network.

    Raises:
        ConfigError: If neither an unexpired OAuth2 token nor a static token
            is configured.
    """
    credential = resolve_credential(store.config.oauth2, store.static_token)
    if credential is None:
        raise ConfigError("No token configured. Run: gitlab auth login")
    return credential.bearer


def ensure_fresh(store: ConfigStore) -> None:
    """Refresh the stored OAuth2 token if it has expired.

    Makes exactly one refresh request when the record is expired and none
    otherwise. Refresh failures propagate; the caller must not fall back to
    the stale token.
    """
    oauth2 = store.config.oauth2
    if oauth2 is not None and oauth2.is_expired():
        info("Token expired, refreshing...")
        refresh_token(store)
