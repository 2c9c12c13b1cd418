"""bump, next and auto-bump commands."""

from __future__ import annotations

from typing import Optional

import typer

from versionit.cli.console import get_error_console
from versionit.cli.core import (
    CLIErrorHandler,
    CliState,
    emit,
    get_state,
    load_project_config,
    parse_channel,
    parse_intent,
    parse_scheme,
)
from versionit.core.orchestrator import BumpRequest, VersionOrchestrator
from versionit.core.reports import BumpReport


def _print_plan(state: CliState, report: BumpReport) -> None:
    """List planned writes on stderr for dry runs."""
    if state.structured_output or not report.dry_run or not report.planned:
        return
    console = get_error_console()
    console.print("[yellow]DRY RUN:[/yellow] would perform the following operations:")
    for operation in report.planned:
        console.print(f"  - {operation}", markup=False)


def bump_command(
    ctx: typer.Context,
    bump: str = typer.Option(..., "--bump", "-b", help="Bump type: major, minor, patch or none"),
    version: Optional[str] = typer.Option(
        None, "--version", "-v", help="Current version (default: version file or first-version)"
    ),
    scheme: Optional[str] = typer.Option(
        None, "--scheme", "-s", help="Versioning scheme (default: from config, else semantic)"
    ),
    channel: Optional[str] = typer.Option(
        None, "--channel", help="Release channel: stable, beta, nightly or a custom label"
    ),
    commit: bool = typer.Option(False, "--commit", help="Commit changes after bumping"),
    create_tag: bool = typer.Option(False, "--create-tag", help="Create a git tag after bumping"),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show what would be done without making changes"
    ),
) -> None:
    """Bump the version and write it out.

    Examples:
        version-it bump --version 1.2.3 --bump minor
        version-it bump --bump patch --channel beta --dry-run
    """
    state = get_state(ctx)
    request = BumpRequest(
        intent=parse_intent(bump),
        version=version,
        scheme=parse_scheme(scheme),
        channel=parse_channel(channel),
        dry_run=dry_run,
        commit=commit,
        create_tag=create_tag,
    )
    config = load_project_config(state)
    orchestrator = VersionOrchestrator(config)

    report = CLIErrorHandler.run(state, lambda: orchestrator.bump(request))
    _print_plan(state, report)
    emit(state, report, report.version)


def next_command(
    ctx: typer.Context,
    bump: str = typer.Option(..., "--bump", "-b", help="Bump type: major, minor, patch or none"),
    version: Optional[str] = typer.Option(
        None, "--version", "-v", help="Current version (default: version file or first-version)"
    ),
    scheme: Optional[str] = typer.Option(None, "--scheme", "-s", help="Versioning scheme"),
    channel: Optional[str] = typer.Option(None, "--channel", help="Release channel"),
) -> None:
    """Print the next version without changing anything.

    Examples:
        version-it next --version 25.12.15 --scheme calver --bump minor
    """
    state = get_state(ctx)
    request = BumpRequest(
        intent=parse_intent(bump),
        version=version,
        scheme=parse_scheme(scheme),
        channel=parse_channel(channel),
    )
    config = load_project_config(state)
    orchestrator = VersionOrchestrator(config)

    report = CLIErrorHandler.run(state, lambda: orchestrator.preview(request))
    emit(state, report, report.version)


def auto_bump_command(
    ctx: typer.Context,
    commit: bool = typer.Option(False, "--commit", help="Commit changes after bumping"),
    create_tag: bool = typer.Option(False, "--create-tag", help="Create a git tag after bumping"),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show what would be done without making changes"
    ),
) -> None:
    """Bump the version according to commit messages since the last version tag.

    Commits are matched against 'change-type-map'; the highest matching bump
    type wins. Requires a config file.
    """
    state = get_state(ctx)
    config = load_project_config(state, required=True)
    orchestrator = VersionOrchestrator(config)
    request = BumpRequest(dry_run=dry_run, commit=commit, create_tag=create_tag)

    report = CLIErrorHandler.run(state, lambda: orchestrator.auto_bump(request))
    _print_plan(state, report)
    emit(state, report, report.version if report.changed else report.message)
