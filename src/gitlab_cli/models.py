"""Canonical Pydantic models shared across all gitlab_cli modules.

The models fall into three groups:

**Config file models** -- serialised as JSON in the user's config directory:
    :class:`OAuth2Token`, :class:`RequestConfig` and :class:`Config`.

**Credential union** -- the two ways a bearer token can be supplied, as an
explicit tagged union resolved by
:func:`~gitlab_cli.auth.credentials.resolve_credential`:
    :class:`StaticTokenCredential` and :class:`OAuth2Credential`.

**Callback results** -- what the local OAuth2 redirect listener extracted
from the browser redirect:
    :class:`AuthorizationCode` and :class:`AuthorizationDenied`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# --- Config file ---


class OAuth2Token(BaseModel):
    """An OAuth2 access/refresh token pair as stored in the config file.

    Created by the authorization-code exchange or by a refresh, and always
    replaced wholesale -- fields are never updated individually.
    ``expires_at`` is computed once, at creation, from the token response's
    ``expires_in``.
    """

    client_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime = Field(description="Absolute UTC expiry, ISO-8601 in JSON")

    @field_validator("expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` once *now* (default: current UTC time) reaches ``expires_at``."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now >= self.expires_at


class RequestConfig(BaseModel):
    """HTTP settings applied to every REST API call."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=2, description="Retries on 5xx and network errors")


class Config(BaseModel):
    """Contents of ``config.json``.

    ``token`` is the legacy static personal access token; ``oauth2`` is the
    record written by ``gitlab auth login``. When both are present the
    unexpired OAuth2 token wins.
    """

    host: Optional[str] = None
    token: Optional[str] = None
    project: Optional[str] = None
    oauth2: Optional[OAuth2Token] = None
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Credentials ---


class StaticTokenCredential(BaseModel):
    """A personal access token with no expiry."""

    kind: Literal["static"] = "static"
    token: str

    @property
    def bearer(self) -> str:
        return self.token


class OAuth2Credential(BaseModel):
    """An unexpired OAuth2 token record."""

    kind: Literal["oauth2"] = "oauth2"
    record: OAuth2Token

    @property
    def bearer(self) -> str:
        return self.record.access_token


Credential = Annotated[
    Union[StaticTokenCredential, OAuth2Credential],
    Field(discriminator="kind"),
]


# --- OAuth2 callback ---


class AuthorizationCode(BaseModel):
    """The provider redirected back with an authorization code."""

    kind: Literal["code"] = "code"
    code: str


class AuthorizationDenied(BaseModel):
    """The provider redirected back with an ``error`` instead of a code."""

    kind: Literal["denied"] = "denied"
    error: str
    error_description: str = ""


CallbackResult = Annotated[
    Union[AuthorizationCode, AuthorizationDenied],
    Field(discriminator="kind"),
]
