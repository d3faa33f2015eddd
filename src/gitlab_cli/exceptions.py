"""Exception hierarchy for gitlab_cli.

All exceptions inherit from :class:`GitLabCliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`gitlab_cli.exit_codes`.
:func:`gitlab_cli.app.main` catches ``GitLabCliError``, prints the message
and exits with that code.

Subclass hierarchy::

    GitLabCliError (exit 1)
    +-- ConfigError         (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    |   +-- CallbackError   (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- ConnectionError_    (exit 6)
"""

from gitlab_cli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class GitLabCliError(Exception):
    """Base exception for all gitlab_cli errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(GitLabCliError):
    """Raised for configuration problems (no token, no project, unreadable config file)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidUsageError(GitLabCliError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(GitLabCliError):
    """Raised when login, token exchange or refresh fails, or the API rejects the token."""

    exit_code = EXIT_AUTH_FAILURE


class CallbackError(AuthError):
    """Raised when the OAuth2 redirect received by the local listener cannot be parsed."""


class NotFoundError(GitLabCliError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(GitLabCliError):
    """Raised for other HTTP error statuses (5xx and unmapped 4xx)."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(GitLabCliError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
