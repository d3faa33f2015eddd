"""Shared test fixtures for gitlab_cli.

Provides isolated config environments, OAuth2 token records, output
state management and a CLI runner. These fixtures are discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gitlab_cli.config import ConfigStore
from gitlab_cli.models import Config, OAuth2Token
from gitlab_cli.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager's Rich consoles hold references to the sys.stdout/sys.stderr
    that were current at creation time. CliRunner swaps those streams, so a
    manager left over from one test would write to a closed file in the next.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of tmp_path,
    clears the GITLAB_* overrides and changes the working directory to
    tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["GITLAB_HOST", "GITLAB_TOKEN", "GITLAB_PROJECT"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config_path(isolated_config: Path) -> Path:
    """Location of ``config.json`` inside the isolated config directory."""
    return isolated_config / "config" / "gitlab-cli" / "config.json"


# ---------------------------------------------------------------------------
# Token fixtures
# ---------------------------------------------------------------------------


def make_token(
    expires_in: int = 3600,
    access_token: str = "oauth-access",
    refresh_token: str = "oauth-refresh",
    client_id: str = "client-123",
) -> OAuth2Token:
    """Build a token record expiring *expires_in* seconds from now (negative: already expired)."""
    return OAuth2Token(
        client_id=client_id,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )


@pytest.fixture
def token_factory():
    """The :func:`make_token` builder, for tests that need several records."""
    return make_token


@pytest.fixture
def fresh_token() -> OAuth2Token:
    return make_token(expires_in=3600)


@pytest.fixture
def expired_token() -> OAuth2Token:
    return make_token(expires_in=-60, access_token="stale-access", refresh_token="stale-refresh")


@pytest.fixture
def store(isolated_config: Path, config_path: Path) -> ConfigStore:
    """An empty store whose :meth:`save` writes inside the isolated directory."""
    return ConfigStore(Config(), path=config_path)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless OutputManager so stderr is printed verbatim."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
