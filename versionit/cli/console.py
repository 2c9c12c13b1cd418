"""Console output for version-it.

Stdout carries only results (version strings, the monorepo table, JSON) so
CI scripts can capture it; log lines, dry-run plans and error panels go to
the stderr console.
"""

from __future__ import annotations

import traceback
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

_console: Console | None = None
_error_console: Console | None = None

# Set from the global --verbose flag
_verbose_mode: bool = False


def get_console() -> Console:
    """Console for results (stdout)."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_error_console() -> Console:
    """Console for diagnostics (stderr)."""
    global _error_console
    if _error_console is None:
        _error_console = Console(stderr=True)
    return _error_console


def set_verbose_mode(enabled: bool) -> None:
    """Toggle traceback output under error panels."""
    global _verbose_mode
    _verbose_mode = enabled


def is_verbose_mode() -> bool:
    return _verbose_mode


# ============================================================================
# Error panels
# ============================================================================


class ErrorRenderer:
    """Turns a failed bump, craft or config load into a stderr panel.

    The panel title carries the error code (``VI-VER-001``...), the body the
    message, the root cause when the error wraps another one, and the
    ``why_it_happened`` / ``how_to_fix`` text of the exception class.

    Example:
        try:
            report = orchestrator.bump(request)
        except VersionItError as e:
            ErrorRenderer.render(e, context="While bumping libs/api")
            raise typer.Exit(1)
    """

    @staticmethod
    def render(
        exc: BaseException,
        context: str = "",
        show_traceback: Optional[bool] = None,
    ) -> None:
        """Print the panel for ``exc``.

        Args:
            exc: The failure to report; non-domain errors get the VI-ERR-999 code
            context: Line shown above the message, e.g. the subproject path
            show_traceback: Force the traceback on or off (None follows --verbose)
        """
        from versionit.core.exceptions import get_error_info, get_root_cause

        info = get_error_info(exc)
        root_cause = get_root_cause(exc)

        content = ErrorRenderer._build_error_content(
            message=str(exc),
            context=context,
            why=info.get("why_it_happened", "An unexpected error occurred"),
            how_to_fix=info.get("how_to_fix", []),
            root_message=str(root_cause) if root_cause is not exc else None,
        )
        get_error_console().print(
            Panel(
                content,
                title=f"[bold red]Error: {info.get('error_code', 'VI-ERR-999')}[/bold red]",
                border_style="red",
                padding=(1, 2),
            )
        )

        verbose = show_traceback if show_traceback is not None else is_verbose_mode()
        if verbose:
            ErrorRenderer._render_traceback(exc)

    @staticmethod
    def _build_error_content(
        message: str,
        context: str,
        why: str,
        how_to_fix: List[str],
        root_message: Optional[str],
    ) -> Text:
        text = Text()
        if context:
            text.append(f"{context}\n\n", style="dim")

        text.append(message, style="bold red")
        text.append("\n\n")

        # YAML and OS errors wrapped in ConfigurationError / PersistenceError
        if root_message and root_message != message:
            text.append("Root cause: ", style="bold yellow")
            text.append(root_message, style="yellow")
            text.append("\n\n")

        text.append("Why it happened:\n", style="bold cyan")
        text.append(f"  {why}\n\n", style="cyan")

        text.append("How to fix:\n", style="bold green")
        for fix in how_to_fix:
            text.append(f"  - {fix}\n", style="green")
        return text

    @staticmethod
    def _render_traceback(exc: BaseException) -> None:
        console = get_error_console()
        console.print()
        console.print("[dim]--- Traceback (--verbose mode) ---[/dim]")
        tb_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        console.print(tb_text, style="dim", markup=False, highlight=False)
