"""studybuddy command line: global flags plus the ``serve`` subcommand."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from studybuddy import __version__
from studybuddy.logging import setup_logging

app = typer.Typer(
    name="studybuddy",
    help="Study Buddy - REST backend for the AI study assistant.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


@dataclass
class CLIState:
    """Flags from the root callback that subcommands read back."""

    config_path: Path | None = None
    verbose: bool = False
    quiet: bool = False


state = CLIState()


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"studybuddy {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Path | None = typer.Option(  # noqa: B008
        None, "--config", "-c", help="Config file (default ~/.studybuddy/config.json)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG on stderr."),  # noqa: B008
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only warnings and errors on stderr."),  # noqa: B008
    version: bool = typer.Option(  # noqa: B008
        False, "--version", callback=_print_version, is_eager=True, help="Print the version."
    ),
) -> None:
    """Study Buddy - REST backend for the AI study assistant."""
    state.config_path = config
    state.verbose, state.quiet = verbose, quiet
    setup_logging(verbose=verbose, quiet=quiet)


from studybuddy.cli.serve_cmd import serve_command  # noqa: E402

app.command(name="serve", help="Run the REST API under uvicorn.")(serve_command)
