"""gitlab_cli -- a command-line client for the GitLab REST API.

The client authenticates either with a static personal access token or with
an OAuth2 Authorization Code + PKCE login performed in the user's browser.
OAuth2 tokens are persisted in the config file and refreshed transparently
when they expire.

Typical workflow::

    gitlab auth login                    # browser-based OAuth2 login
    gitlab config set --project grp/app  # pick a default project
    gitlab api /projects/:id             # authenticated raw request

Modules:
    app: Typer application and CLI entry point.
    auth: PKCE, callback listener, token exchange and refresh.
    client: Authenticated HTTP client for the REST API.
    config: XDG paths and the on-disk config store.
    models: Pydantic models for the config file and token record.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
