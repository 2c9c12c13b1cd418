"""Shared plumbing for CLI commands.

- CliState: global options captured by the app callback
- load_project_config: config loading honouring --config
- emit: plain or JSON output of a report
- CLIErrorHandler: error panel / JSON error and exit code 1
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, NoReturn, Optional, TypeVar

import typer
from pydantic import BaseModel

from versionit.cli.console import ErrorRenderer
from versionit.core.config import VersionItConfig, load_config
from versionit.core.exceptions import VersionItError, get_error_info
from versionit.core.logging import get_logger
from versionit.core.reports import ErrorReport
from versionit.core.versioning.types import BumpIntent, ReleaseChannel, Scheme

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CliState:
    """Global options shared by every command."""

    config_path: Optional[Path] = None
    structured_output: bool = False
    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    return CliState()


def load_project_config(state: CliState, required: bool = False) -> VersionItConfig:
    """Load the config named by --config (default .version-it in the cwd).

    The config's own ``structured-output`` switch is folded into the state.
    """
    try:
        config = load_config(state.config_path, required=required)
    except VersionItError as e:
        CLIErrorHandler.exit_on_error(e, state)
    if config.is_default:
        logger.debug("No config file found, using defaults")
    if config.structured_output:
        state.structured_output = True
    return config


def emit(state: CliState, report: BaseModel, text: Optional[str] = None) -> None:
    """Print a report: JSON when structured output is on, else ``text``."""
    if state.structured_output:
        typer.echo(report.model_dump_json())
    elif text is not None:
        typer.echo(text)


class CLIErrorHandler:
    """Centralized error handling with consistent formatting.

    Example:
        report = CLIErrorHandler.run(state, lambda: orchestrator.bump(request))
    """

    @staticmethod
    def exit_on_error(error: Exception, state: CliState, exit_code: int = 1) -> NoReturn:
        """Report an error and exit.

        Structured mode prints ``{"success": false, ...}`` on stdout;
        otherwise an error panel goes to stderr.

        Raises:
            typer.Exit: Always
        """
        if state.structured_output:
            info = get_error_info(error)
            report = ErrorReport(
                error=str(error),
                error_code=info["error_code"],
                how_to_fix=info["how_to_fix"],
            )
            typer.echo(report.model_dump_json())
        else:
            ErrorRenderer.render(error)
        logger.debug("Command failed", error_type=type(error).__name__, error=str(error))
        raise typer.Exit(exit_code)

    @staticmethod
    def run(state: CliState, operation: Callable[[], T]) -> T:
        """Run an operation, turning domain and OS errors into exit code 1."""
        try:
            return operation()
        except (VersionItError, OSError) as e:
            CLIErrorHandler.exit_on_error(e, state)


# ============================================================================
# Option parsers
# ============================================================================


def parse_intent(value: str) -> BumpIntent:
    """Parse --bump, rejecting unknown names as a usage error."""
    try:
        return BumpIntent.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def parse_scheme(value: Optional[str]) -> Optional[Scheme]:
    if value is None:
        return None
    try:
        return Scheme.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def parse_channel(value: Optional[str]) -> Optional[ReleaseChannel]:
    if value is None:
        return None
    return ReleaseChannel.parse(value)
