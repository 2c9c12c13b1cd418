"""
Tests for error panels and verbose mode.

Organization
------------
- TestVerboseMode: set_verbose_mode / is_verbose_mode
- TestErrorRenderer: panel content on stderr
"""

from io import StringIO
from unittest.mock import patch

import pytest
from rich.console import Console

from versionit.cli.console import ErrorRenderer, is_verbose_mode, set_verbose_mode
from versionit.core.exceptions import ConfigurationError, MalformedVersion


@pytest.fixture
def captured():
    """Route the error console into a buffer."""
    set_verbose_mode(False)
    buffer = StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    with patch("versionit.cli.console.get_error_console", return_value=console):
        yield buffer
    set_verbose_mode(False)


class TestVerboseMode:
    """Tests for the verbose flag."""

    def test_toggle(self):
        set_verbose_mode(True)
        assert is_verbose_mode() is True
        set_verbose_mode(False)
        assert is_verbose_mode() is False


class TestErrorRenderer:
    """Tests for ErrorRenderer.render."""

    def test_panel_sections(self, captured):
        ErrorRenderer.render(MalformedVersion("'1.2' is not a valid semantic version"))
        output = captured.getvalue()

        assert "Error: VI-VER-001" in output
        assert "'1.2' is not a valid semantic version" in output
        assert "Why it happened:" in output
        assert "How to fix:" in output
        assert "--version" in output

    def test_context_line(self, captured):
        ErrorRenderer.render(ConfigurationError("bad"), context="While bumping libs/api")
        assert "While bumping libs/api" in captured.getvalue()

    def test_root_cause_shown(self, captured):
        try:
            try:
                raise ValueError("mapping values are not allowed here")
            except ValueError as e:
                raise ConfigurationError("Invalid YAML in .version-it") from e
        except ConfigurationError as error:
            ErrorRenderer.render(error)

        output = captured.getvalue()
        assert "Root cause:" in output
        assert "mapping values are not allowed here" in output

    def test_unknown_exception(self, captured):
        ErrorRenderer.render(RuntimeError("boom"))
        assert "VI-ERR-999" in captured.getvalue()

    def test_traceback_only_in_verbose(self, captured):
        ErrorRenderer.render(ConfigurationError("quiet"))
        assert "Traceback" not in captured.getvalue()

        set_verbose_mode(True)
        ErrorRenderer.render(ConfigurationError("loud"))
        assert "Traceback (--verbose mode)" in captured.getvalue()
