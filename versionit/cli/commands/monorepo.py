"""monorepo command: bump every subproject listed in the root config."""

from __future__ import annotations

import typer
from rich.table import Table

from versionit.cli.console import get_console
from versionit.cli.core import (
    CLIErrorHandler,
    emit,
    get_state,
    load_project_config,
    parse_intent,
)
from versionit.core.exceptions import ConfigurationError
from versionit.core.orchestrator import BumpRequest, VersionOrchestrator
from versionit.core.reports import MonorepoReport


def _display_summary(report: MonorepoReport) -> None:
    """Render the per-subproject results table."""
    title = "Monorepo bump summary" + (" (dry run)" if report.dry_run else "")
    table = Table(title=title)
    table.add_column("Subproject", style="cyan")
    table.add_column("Status")
    table.add_column("Previous")
    table.add_column("Version", style="green")
    table.add_column("Error", style="red")

    for result in report.results:
        status = "[green]ok[/green]" if result.success else "[red]failed[/red]"
        table.add_row(
            result.path,
            status,
            result.previous or "",
            result.version or "",
            result.error or "",
        )

    console = get_console()
    console.print(table)
    console.print(f"Results: {report.succeeded} successful, {report.failed} failed")
    for operation in report.planned:
        prefix = "Would run" if report.dry_run else "Ran"
        console.print(f"  {prefix}: {operation}", markup=False)


def monorepo_command(
    ctx: typer.Context,
    bump: str = typer.Option(..., "--bump", "-b", help="Bump type: major, minor, patch or none"),
    commit: bool = typer.Option(False, "--commit", help="Commit all changes after bumping"),
    create_tag: bool = typer.Option(
        False, "--create-tag", help="Tag each subproject as <name>-<version>"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show what would be done without making changes"
    ),
) -> None:
    """Bump every subproject in 'subprojects', one after another.

    A failing subproject does not stop the others; the exit code is 1 if
    any subproject failed.
    """
    state = get_state(ctx)
    request = BumpRequest(
        intent=parse_intent(bump), dry_run=dry_run, commit=commit, create_tag=create_tag
    )
    config = load_project_config(state, required=True)
    if not config.subprojects:
        CLIErrorHandler.exit_on_error(
            ConfigurationError("No 'subprojects' configured", field="subprojects"), state
        )

    orchestrator = VersionOrchestrator(config)
    report = CLIErrorHandler.run(state, lambda: orchestrator.monorepo(request))

    if state.structured_output:
        emit(state, report)
    else:
        _display_summary(report)

    if not report.success:
        raise typer.Exit(1)
