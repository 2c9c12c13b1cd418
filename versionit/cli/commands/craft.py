"""craft command: compose versions from block templates."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from versionit.cli.console import get_error_console
from versionit.cli.core import CLIErrorHandler, CliState, emit, get_state, load_project_config
from versionit.core.config import load_template_file
from versionit.core.config.models import CraftSettings, VersionItConfig
from versionit.core.orchestrator import CraftRequest, VersionOrchestrator
from versionit.core.reports import CraftReport, TemplateListReport


def _craft_settings(config: VersionItConfig, config_file: Optional[Path]) -> CraftSettings:
    """Main-config craft settings overlaid with the template file, if any."""
    from_file = load_template_file(config_file, config.base_dir)
    if from_file is None:
        return config.craft
    return config.craft.merged_with(from_file)


def _print_templates(state: CliState, report: TemplateListReport) -> None:
    if state.structured_output:
        emit(state, report)
        return
    typer.echo("Available templates:")
    for name in report.templates:
        marker = " (default)" if name == report.default_template else ""
        typer.echo(f"  {name}{marker}")


def _print_counter_changes(state: CliState, report: CraftReport) -> None:
    if state.structured_output:
        return
    console = get_error_console()
    prefix = "DRY RUN: would set" if report.dry_run else "Set"
    for name, value in report.counters.items():
        before = report.counters_before.get(name)
        if before != value:
            previous = before if before is not None else 0
            console.print(f"{prefix} counter '{name}' {previous} -> {value}", markup=False)


def craft_command(
    ctx: typer.Context,
    template: Optional[str] = typer.Option(
        None, "--template", "-t", help="Template name (default: default-template)"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config-file", help="Template file (default: version-templates.yaml)"
    ),
    list_templates: bool = typer.Option(False, "--list-templates", help="List available templates"),
    increment_counter: Optional[str] = typer.Option(
        None, "--increment-counter", help="Increment a counter before crafting"
    ),
    set_counter: Optional[str] = typer.Option(
        None, "--set-counter", help="Set a counter before crafting (NAME:VALUE)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Compute without saving counter changes"
    ),
    structured_output: bool = typer.Option(
        False, "--structured-output", help="Emit the composed version and block values as JSON"
    ),
) -> None:
    """Craft a custom version string from a block template.

    Counter changes are applied before the template is resolved, so
    '--increment-counter build' yields the new build number.

    Examples:
        version-it craft --list-templates
        version-it craft --template release --increment-counter build
        version-it --structured-output craft --set-counter build:10 --dry-run
    """
    state = get_state(ctx)
    if structured_output:
        state.structured_output = True
    config = load_project_config(state)
    settings = CLIErrorHandler.run(state, lambda: _craft_settings(config, config_file))
    orchestrator = VersionOrchestrator(config, craft_settings=settings)

    if list_templates:
        _print_templates(state, CLIErrorHandler.run(state, orchestrator.list_templates))
        return

    request = CraftRequest(
        template=template,
        increment_counter=increment_counter,
        set_counter=set_counter,
        dry_run=dry_run,
    )
    report = CLIErrorHandler.run(state, lambda: orchestrator.craft(request))
    _print_counter_changes(state, report)
    emit(state, report, report.version)
