"""Configuration management with XDG paths, atomic writes, and env overrides.

This module handles all persistent state for gitlab_cli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.gitlab-cli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config store** -- :class:`ConfigStore` owns ``config.json`` (host,
  static token, default project, OAuth2 token record). It is loaded once
  per CLI invocation, passed explicitly to whatever needs it, and written
  back wholesale on every mutation.
* **Environment overrides** -- ``GITLAB_HOST``, ``GITLAB_TOKEN`` and
  ``GITLAB_PROJECT`` take precedence over the file when *reading*, but are
  never written back to disk.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so that a crash mid-write never leaves a truncated
config (and therefore never a half-written token record) behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from gitlab_cli.exceptions import ConfigError
from gitlab_cli.models import Config

_APP_NAME = "gitlab-cli"
_CONFIG_FILENAME = "config.json"

DEFAULT_HOST = "https://gitlab.com"

ENV_HOST = "GITLAB_HOST"
ENV_TOKEN = "GITLAB_TOKEN"
ENV_PROJECT = "GITLAB_PROJECT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/gitlab-cli/`` (default ``~/.config/gitlab-cli/``).
    On macOS/Windows: ``~/.gitlab-cli/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/gitlab-cli/`` (default ``~/.local/share/gitlab-cli/``).
    On macOS/Windows: ``~/.gitlab-cli/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path() -> Path:
    """Path of ``config.json`` inside :func:`get_config_dir`."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically with ``0o600`` permissions.

    The temporary file is created next to *path* so that ``os.replace`` is an
    atomic rename on POSIX. On any failure the temp file is removed and the
    previous contents of *path* are left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        # Tokens live in this file
        os.chmod(tmp_path, 0o600)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config store ---


class ConfigStore:
    """The loaded ``config.json`` plus the path it came from.

    Create one with :meth:`load` at the start of a command, mutate
    :attr:`config` in place, and call :meth:`save` after every change. There
    is no implicit reload and no module-level instance; callers hand the
    store to the functions that need it.

    Args:
        config: The in-memory configuration.
        path: Where :meth:`save` writes. Defaults to :func:`default_config_path`.

    Example::

        store = ConfigStore.load()
        store.config.project = "group/project"
        store.save()
    """

    def __init__(self, config: Optional[Config] = None, path: Optional[Path] = None) -> None:
        self.config = config if config is not None else Config()
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path of the backing config file."""
        if self._path is None:
            self._path = default_config_path()
        return self._path

    @classmethod
    def load(cls, path: Optional[Path] = None) -> ConfigStore:
        """Read the config file, returning defaults when it does not exist.

        Raises:
            ConfigError: If the file exists but is not valid JSON or does not
                match :class:`~gitlab_cli.models.Config`.
        """
        store = cls(path=path)
        if not store.path.is_file():
            return store
        try:
            text = store.path.read_text(encoding="utf-8")
            store.config = Config.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValueError) as exc:
            raise ConfigError(f"Invalid config at {store.path}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read config at {store.path}: {exc}") from exc
        return store

    def save(self) -> None:
        """Persist the whole configuration as pretty-printed JSON.

        Raises:
            ConfigError: If the file cannot be written. The previous file, if
                any, is left as it was.
        """
        data = self.config.model_dump(mode="json")
        for key in ("token", "oauth2"):
            if data.get(key) is None:
                data.pop(key, None)
        try:
            _atomic_write(self.path, json.dumps(data, indent=2) + "\n")
        except OSError as exc:
            raise ConfigError(f"Failed to save config at {self.path}: {exc}") from exc

    # --- effective values (environment first, never persisted) ---

    @property
    def host(self) -> str:
        """Base URL of the GitLab instance, without a trailing slash."""
        host = os.environ.get(ENV_HOST) or self.config.host or DEFAULT_HOST
        return host.rstrip("/")

    @property
    def static_token(self) -> Optional[str]:
        return os.environ.get(ENV_TOKEN) or self.config.token

    @property
    def project(self) -> Optional[str]:
        return os.environ.get(ENV_PROJECT) or self.config.project
