"""Typer application and CLI entry point for gitlab_cli.

The root callback configures output and loads the
:class:`~gitlab_cli.config.ConfigStore` once per invocation; sub-commands
receive it through ``ctx.obj`` rather than a module-level global.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. It maps :class:`~gitlab_cli.exceptions.GitLabCliError`
to the error's exit code and writes a crash log for anything unexpected.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from gitlab_cli import __version__
from gitlab_cli.commands.api import api_command
from gitlab_cli.commands.auth import auth_app
from gitlab_cli.commands.config import config_app
from gitlab_cli.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="gitlab",
    help="GitLab CLI with OAuth2 login.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

app.add_typer(auth_app, name="auth", help="Authentication management.")
app.add_typer(config_app, name="config", help="Configure host, token and default project.")
app.command("api")(api_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"gitlab-cli {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.json (default: XDG config directory)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~gitlab_cli.output.OutputManager`, routes
    library logging to stderr when ``--verbose`` is set, and stores the
    loaded config store and shared flags in ``ctx.obj``.
    """
    from gitlab_cli.config import ConfigStore
    from gitlab_cli.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="[debug] %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["store"] = ConfigStore.load(config_path)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return the path."""
    from gitlab_cli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``gitlab`` console script.

    :class:`~gitlab_cli.exceptions.GitLabCliError` exits with the error's
    ``exit_code`` after printing its message; other exceptions produce a
    crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from gitlab_cli.exceptions import GitLabCliError
        from gitlab_cli.output import error

        if isinstance(exc, GitLabCliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
