"""
Shared pytest fixtures for version-it tests.

Fixture Organization
--------------------
- **fixed_now**: Frozen clock for reproducible timestamps
- **fake_git**: Mock GitRepository with canned answers
- **write_config**: Writes a ``.version-it`` YAML file into a directory
- **project_dir**: Temporary working directory (cwd switched into it)
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest
import yaml

from versionit.core.git import GitRepository
from versionit.core.versioning.classifier import Commit


# ============================================================================
# Clock and Git Fixtures
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed UTC instant: 2025-03-14 15:09:26."""
    return datetime(2025, 3, 14, 15, 9, 26, tzinfo=timezone.utc)


@pytest.fixture
def fake_git() -> MagicMock:
    """Create a mock GitRepository on branch 'main' at commit abc1234.

    Returns:
        MagicMock constrained to the GitRepository interface

    Example:
        def test_tagging(fake_git):
            fake_git.tags.return_value = ["v1.0.0"]
    """
    git = MagicMock(spec=GitRepository)
    git.current_branch.return_value = "main"
    git.commit_hash.return_value = "abc1234"
    git.commit_count.return_value = 42
    git.tags.return_value = []
    git.latest_version_tag.return_value = None
    git.commits_since.return_value = [
        Commit(message="fix: handle empty input", branch="main", hash="1111111"),
    ]
    git.head_field.return_value = "Jane Doe"
    git.first_commit_date.return_value = "2024-01-01T00:00:00+00:00"
    return git


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def write_config() -> Callable[..., Path]:
    """Write a config mapping as YAML.

    Returns:
        Function ``(directory, data, filename=".version-it") -> Path``
    """

    def _write(directory: Path, data: Dict[str, Any], filename: Optional[str] = None) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / (filename or ".version-it")
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary project directory that is also the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BUILD_NUMBER", raising=False)
    return tmp_path
