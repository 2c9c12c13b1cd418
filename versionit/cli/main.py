"""version-it CLI - Main application entry point.

Registers the commands and captures the global options shared by all of
them (config path, structured output, verbosity).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from versionit.cli.commands import (
    auto_bump_command,
    bump_command,
    craft_command,
    monorepo_command,
    next_command,
)
from versionit.cli.console import set_verbose_mode
from versionit.cli.core import CliState
from versionit.core.logging import configure_logging

# Create main Typer application
app = typer.Typer(
    name="version-it",
    help="Compute, craft and write out the next version of a project",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show the tool version and exit."""
    if value:
        from versionit import __version__

        typer.echo(f"version-it {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: .version-it)"
    ),
    structured_output: bool = typer.Option(
        False, "--structured-output", help="Emit JSON reports on stdout"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Debug logging and full tracebacks on errors"
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write log records to this file"
    ),
    version_info: bool = typer.Option(
        False,
        "--version-info",
        callback=version_callback,
        is_eager=True,
        help="Show version-it version and exit",
    ),
) -> None:
    """version-it - next-version computation for CI pipelines."""
    configure_logging(level="DEBUG" if verbose else "WARNING", log_file=log_file)
    set_verbose_mode(verbose)
    ctx.obj = CliState(
        config_path=config,
        structured_output=structured_output,
        verbose=verbose,
    )


# Register commands
app.command("bump", rich_help_panel="Versioning")(bump_command)
app.command("next", rich_help_panel="Versioning")(next_command)
app.command("auto-bump", rich_help_panel="Versioning")(auto_bump_command)
app.command("craft", rich_help_panel="Crafting")(craft_command)
app.command("monorepo", rich_help_panel="Versioning")(monorepo_command)


def cli_main() -> None:
    """Entry point for console_scripts.

    This function is called when running the 'version-it' command.
    """
    app()


if __name__ == "__main__":
    cli_main()
