"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant is referenced by the corresponding
:class:`~gitlab_cli.exceptions.GitLabCliError` subclass so that shell
scripts can tell failure classes apart without parsing stderr.

Example::

    $ gitlab api /user
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- token missing, expired or rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed: login, token exchange, refresh, or a 401/403."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The API returned an error status that is not auth or not-found."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
