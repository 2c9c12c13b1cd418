"""Tests for the craft command."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Iterator
from unittest.mock import MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from versionit.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def patched_git(fake_git: MagicMock) -> Iterator[MagicMock]:
    with patch("versionit.core.orchestrator.GitRepository", return_value=fake_git):
        yield fake_git


@pytest.fixture
def templates(project_dir: Path, write_config: Callable[..., Path]) -> Path:
    (project_dir / "VERSION").write_text("3.1.0\n", encoding="utf-8")
    write_config(project_dir, {"current-version-file": "VERSION"})
    return write_config(
        project_dir,
        {
            "default-template": "release",
            "templates": {
                "release": {
                    "prefix": "v",
                    "blocks": [
                        {"name": "base", "type": "semantic"},
                        {"name": "build", "type": "counter", "config": {"counter": "build"}},
                    ],
                },
                "broken": {
                    "blocks": [
                        {"name": "echo", "type": "versioned", "config": {"ref": "later"}},
                        {"name": "later", "type": "text", "config": {"value": "x"}},
                    ],
                },
            },
        },
        filename="version-templates.yaml",
    )


class TestListTemplates:
    """Tests for 'craft --list-templates'."""

    def test_lists_configured_and_builtin(self, templates: Path) -> None:
        result = runner.invoke(app, ["craft", "--list-templates"])
        assert result.exit_code == 0
        assert "release (default)" in result.stdout
        assert "calver-short" in result.stdout

    def test_structured(self, templates: Path) -> None:
        result = runner.invoke(app, ["craft", "--list-templates", "--structured-output"])
        data = json.loads(result.stdout)
        assert data["default_template"] == "release"
        assert "broken" in data["templates"]


class TestCraftCommand:
    """Tests for crafting versions."""

    def test_default_template(self, templates: Path) -> None:
        result = runner.invoke(app, ["craft"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "v3.1.0.0"

    def test_counter_round_trip(self, templates: Path, project_dir: Path) -> None:
        """set-counter build:10, then increment-counter build, then craft shows 11."""
        assert runner.invoke(app, ["craft", "--set-counter", "build:10"]).exit_code == 0
        assert runner.invoke(app, ["craft", "--increment-counter", "build"]).exit_code == 0

        result = runner.invoke(app, ["craft"])

        assert result.stdout.strip() == "v3.1.0.11"
        saved = yaml.safe_load((project_dir / ".version-it-counters.yaml").read_text(encoding="utf-8"))
        assert saved == {"build": 11}

    def test_dry_run_keeps_counters(self, templates: Path, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["craft", "--increment-counter", "build", "--dry-run", "--structured-output"]
        )
        data = json.loads(result.stdout)
        assert data["version"] == "v3.1.0.1"
        assert data["counters_before"] == {}
        assert data["counters"] == {"build": 1}
        assert not (project_dir / ".version-it-counters.yaml").exists()

    def test_structured_values(self, templates: Path) -> None:
        result = runner.invoke(app, ["--structured-output", "craft", "--template", "release"])
        data = json.loads(result.stdout)
        assert data["version"] == "v3.1.0.0"
        assert data["values"] == {"base": "3.1.0", "build": "0"}
        assert data["template"] == "release"

    def test_builtin_template(self, templates: Path) -> None:
        result = runner.invoke(app, ["craft", "-t", "commit-based"])
        assert result.stdout.strip() == "3.1.0-abc1234"

    def test_explicit_template_file(self, project_dir: Path, write_config: Callable[..., Path]) -> None:
        path = write_config(
            project_dir / "ci",
            {"templates": {"tagged": {"blocks": [{"name": "t", "type": "text", "config": {"value": "ci"}}]}}},
            filename="templates.yaml",
        )
        result = runner.invoke(app, ["craft", "--config-file", str(path), "--template", "tagged"])
        assert result.stdout.strip() == "ci"

    def test_missing_template_file(self, project_dir: Path) -> None:
        result = runner.invoke(app, ["craft", "--config-file", "nope.yaml"])
        assert result.exit_code == 1

    def test_forward_reference(self, templates: Path) -> None:
        result = runner.invoke(app, ["--structured-output", "craft", "--template", "broken"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error_code"] == "VI-CRF-003"
        assert "echo" in data["error"]

    def test_invalid_counter_value(self, templates: Path) -> None:
        result = runner.invoke(app, ["--structured-output", "craft", "--set-counter", "build:-1"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_code"] == "VI-CRF-005"

    def test_unknown_template(self, templates: Path) -> None:
        result = runner.invoke(app, ["craft", "--template", "nope"])
        assert result.exit_code == 1

    def test_block_entry_not_a_mapping(
        self, project_dir: Path, write_config: Callable[..., Path]
    ) -> None:
        write_config(project_dir, {"templates": {"rel": {"blocks": ["version"]}}})
        result = runner.invoke(app, ["--structured-output", "craft", "--template", "rel"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error_code"] == "VI-CRF-002"
        assert "'version'" in data["error"]

    def test_template_entry_not_a_mapping(
        self, project_dir: Path, write_config: Callable[..., Path]
    ) -> None:
        write_config(project_dir, {"templates": {"rel": "x"}})
        result = runner.invoke(app, ["--structured-output", "craft", "--list-templates"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_code"] == "VI-CRF-002"

    def test_superscript_counter_value(self, templates: Path) -> None:
        result = runner.invoke(app, ["--structured-output", "craft", "--set-counter", "build:²"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_code"] == "VI-CRF-005"

    def test_build_number_env(self, templates: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BUILD_NUMBER", "57")
        result = runner.invoke(app, ["craft", "--template", "build-numbered"])
        assert result.stdout.strip() == "3.1.0-57"

    def test_non_ascii_build_number_ignored(
        self, templates: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A build number that is not plain digits falls back to the block default."""
        monkeypatch.setenv("BUILD_NUMBER", "²")
        result = runner.invoke(app, ["craft", "--template", "build-numbered"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "3.1.0-1"
