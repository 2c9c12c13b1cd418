"""Tests for the git data source (subprocess mocked)."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from versionit.core.exceptions import GitOperationError
from versionit.core.git import GitRepository


def _completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestQueries:
    """Tests for read-only git queries."""

    def test_current_branch(self, tmp_path: Path) -> None:
        with patch("versionit.core.git.subprocess.run", return_value=_completed("main\n")) as run:
            assert GitRepository(tmp_path).current_branch() == "main"
        assert run.call_args.args[0] == ["git", "rev-parse", "--abbrev-ref", "HEAD"]
        assert run.call_args.kwargs["cwd"] == tmp_path

    def test_failure_returns_none(self, tmp_path: Path) -> None:
        with patch(
            "versionit.core.git.subprocess.run",
            return_value=_completed(returncode=128, stderr="not a git repository"),
        ):
            repo = GitRepository(tmp_path)
            assert repo.commit_hash() is None
            assert repo.commit_count() is None
            assert repo.tags() == []
            assert repo.commits_since("v1.0.0") == []

    def test_git_missing_returns_none(self, tmp_path: Path) -> None:
        with patch("versionit.core.git.subprocess.run", side_effect=FileNotFoundError("git")):
            assert GitRepository(tmp_path).current_branch() is None

    def test_commit_count(self, tmp_path: Path) -> None:
        with patch("versionit.core.git.subprocess.run", return_value=_completed("137\n")):
            assert GitRepository(tmp_path).commit_count() == 137

    def test_latest_version_tag(self, tmp_path: Path) -> None:
        output = "nightly\nv2.0.0\nv1.9.0\n"
        with patch("versionit.core.git.subprocess.run", return_value=_completed(output)):
            tag = GitRepository(tmp_path).latest_version_tag(lambda t: t.startswith("v"))
        assert tag == "v2.0.0"

    def test_commits_since(self, tmp_path: Path) -> None:
        responses = [_completed("a1b2c3d\tfix: one\ne4f5a6b\tfeat: two"), _completed("main")]
        with patch("versionit.core.git.subprocess.run", side_effect=responses) as run:
            commits = GitRepository(tmp_path).commits_since("v1.0.0")

        assert [c.message for c in commits] == ["fix: one", "feat: two"]
        assert commits[0].hash == "a1b2c3d"
        assert commits[1].branch == "main"
        assert "v1.0.0..HEAD" in run.call_args_list[0].args[0]


class TestWrites:
    """Tests for commit_all and create_tag."""

    def test_commit_all(self, tmp_path: Path) -> None:
        with patch("versionit.core.git.subprocess.run", return_value=_completed()) as run:
            GitRepository(tmp_path).commit_all("Bump version to 1.0.1")
        commands = [c.args[0] for c in run.call_args_list]
        assert commands == [
            ["git", "add", "-A"],
            ["git", "commit", "-m", "Bump version to 1.0.1"],
        ]

    def test_create_tag_failure(self, tmp_path: Path) -> None:
        with patch(
            "versionit.core.git.subprocess.run",
            return_value=_completed(returncode=128, stderr="tag '1.0.0' already exists"),
        ):
            with pytest.raises(GitOperationError, match="already exists"):
                GitRepository(tmp_path).create_tag("1.0.0")

    def test_create_tag_annotated(self, tmp_path: Path) -> None:
        with patch("versionit.core.git.subprocess.run", return_value=_completed()) as run:
            GitRepository(tmp_path).create_tag("1.0.0")
        assert run.call_args.args[0] == ["git", "tag", "-a", "1.0.0", "-m", "Release 1.0.0"]
