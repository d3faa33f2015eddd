"""Tests for credential priority and the expiry gate."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest

from gitlab_cli.auth.credentials import ensure_fresh, get_current_bearer_token, resolve_credential
from gitlab_cli.config import ConfigStore
from gitlab_cli.exceptions import AuthError, ConfigError
from gitlab_cli.models import OAuth2Credential, StaticTokenCredential


POST_TARGET = "gitlab_cli.auth.oauth2.httpx.post"


def _refresh_reply() -> httpx.Response:
    return httpx.Response(
        status_code=200,
        json={"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 7200},
        request=httpx.Request("POST", "https://gitlab.com/oauth/token"),
    )


class TestResolveCredential:
    def test_unexpired_oauth2_wins_over_static(self, fresh_token) -> None:
        credential = resolve_credential(fresh_token, "glpat-static")
        assert isinstance(credential, OAuth2Credential)
        assert credential.bearer == "oauth-access"

    def test_expired_oauth2_falls_back_to_static(self, expired_token) -> None:
        credential = resolve_credential(expired_token, "glpat-static")
        assert isinstance(credential, StaticTokenCredential)
        assert credential.bearer == "glpat-static"

    def test_static_only(self) -> None:
        credential = resolve_credential(None, "glpat-static")
        assert credential == StaticTokenCredential(token="glpat-static")

    def test_nothing_configured(self) -> None:
        assert resolve_credential(None, None) is None

    def test_empty_static_token_is_not_a_credential(self) -> None:
        assert resolve_credential(None, "") is None

    def test_expired_oauth2_alone(self, expired_token) -> None:
        assert resolve_credential(expired_token, None) is None

    def test_expiry_boundary_uses_now(self, fresh_token) -> None:
        at_expiry = fresh_token.expires_at
        assert resolve_credential(fresh_token, None, now=at_expiry - timedelta(seconds=1)) is not None
        assert resolve_credential(fresh_token, None, now=at_expiry) is None


class TestGetCurrentBearerToken:
    def test_oauth2_token(self, store: ConfigStore, fresh_token) -> None:
        store.config.oauth2 = fresh_token
        store.config.token = "glpat-static"
        assert get_current_bearer_token(store) == "oauth-access"

    def test_static_token(self, store: ConfigStore) -> None:
        store.config.token = "glpat-static"
        assert get_current_bearer_token(store) == "glpat-static"

    def test_env_token(self, store: ConfigStore, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITLAB_TOKEN", "glpat-env")
        assert get_current_bearer_token(store) == "glpat-env"

    def test_nothing_configured_never_touches_network(self, store: ConfigStore) -> None:
        with patch(POST_TARGET) as mock_post:
            with pytest.raises(ConfigError, match="No token configured. Run: gitlab auth login"):
                get_current_bearer_token(store)
        mock_post.assert_not_called()

    def test_expired_oauth2_is_not_refreshed_here(self, store: ConfigStore, expired_token) -> None:
        store.config.oauth2 = expired_token
        with patch(POST_TARGET) as mock_post:
            with pytest.raises(ConfigError):
                get_current_bearer_token(store)
        mock_post.assert_not_called()


@pytest.mark.usefixtures("quiet_output")
class TestEnsureFresh:
    def test_expired_record_refreshed_exactly_once(self, store: ConfigStore, expired_token) -> None:
        store.config.oauth2 = expired_token
        with patch(POST_TARGET, return_value=_refresh_reply()) as mock_post:
            ensure_fresh(store)
            token = get_current_bearer_token(store)
        assert mock_post.call_count == 1
        assert token == "new-access"

    def test_fresh_record_not_refreshed(self, store: ConfigStore, fresh_token) -> None:
        store.config.oauth2 = fresh_token
        with patch(POST_TARGET) as mock_post:
            ensure_fresh(store)
        mock_post.assert_not_called()
        assert store.config.oauth2 == fresh_token

    def test_static_token_never_refreshed(self, store: ConfigStore) -> None:
        store.config.token = "glpat-static"
        with patch(POST_TARGET) as mock_post:
            ensure_fresh(store)
        mock_post.assert_not_called()

    def test_refresh_failure_propagates(self, store: ConfigStore, expired_token) -> None:
        store.config.oauth2 = expired_token
        store.config.token = "glpat-static"
        reply = httpx.Response(
            status_code=400,
            text='{"error":"invalid_grant"}',
            request=httpx.Request("POST", "https://gitlab.com/oauth/token"),
        )
        with patch(POST_TARGET, return_value=reply):
            with pytest.raises(AuthError, match="Token refresh failed"):
                ensure_fresh(store)
        assert store.config.oauth2 == expired_token

    def test_refreshed_record_is_persisted(self, store: ConfigStore, expired_token) -> None:
        store.config.oauth2 = expired_token
        with patch(POST_TARGET, return_value=_refresh_reply()):
            ensure_fresh(store)
        reloaded = ConfigStore.load(store.path)
        assert reloaded.config.oauth2 is not None
        assert reloaded.config.oauth2.access_token == "new-access"
        assert reloaded.config.oauth2.expires_at > datetime.now(timezone.utc)


@pytest.mark.usefixtures("plain_output")
def test_ensure_fresh_announces_refresh_on_stderr(
    store: ConfigStore, expired_token, capsys: pytest.CaptureFixture[str]
) -> None:
    store.config.oauth2 = expired_token
    with patch(POST_TARGET, return_value=_refresh_reply()):
        ensure_fresh(store)
    captured = capsys.readouterr()
    assert "Token expired, refreshing..." in captured.err
    assert captured.out == ""
