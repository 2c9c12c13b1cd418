"""Rendering context for version headers.

The context is a flat ``dotted.name -> string`` mapping:

    version, scheme, channel
    git.commit, git.commit_short, git.branch, git.author, git.email,
    git.date, git.commit_count, git.first_commit_date
    build.timestamp, build.date, build.time, build.python
    system.hostname, system.username, system.os, system.arch, system.cpus
    project.name, project.description, project.version, project.authors
    stats.file_count, stats.lines_of_code

Placeholders in header templates are written ``{{ dotted.name }}``.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import re
import socket
import tomllib
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

from versionit.core.git import GitRepository
from versionit.core.logging import get_logger

logger = get_logger(__name__)

UNKNOWN = "unknown"
STATS_DISABLED = "disabled"

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")

SOURCE_EXTENSIONS = frozenset(
    {
        ".py", ".rs", ".go", ".js", ".ts", ".tsx", ".jsx", ".java", ".kt",
        ".c", ".h", ".cc", ".cpp", ".hpp", ".cs", ".rb", ".php", ".swift",
        ".sh", ".scala",
    }
)
SKIPPED_DIRS = frozenset({".git", "node_modules", "target", "build", "dist", "__pycache__"})


def render_template(template: str, context: Mapping[str, str]) -> str:
    """Substitute ``{{ name }}`` placeholders; unknown names render empty."""

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in context:
            logger.debug("Unknown placeholder", name=name)
            return ""
        return context[name]

    return PLACEHOLDER_PATTERN.sub(replace, template)


def _git_context(git: Optional[GitRepository]) -> Dict[str, str]:
    if git is None:
        return {}
    count = git.commit_count()
    return {
        "git.commit": git.commit_hash(short=False) or UNKNOWN,
        "git.commit_short": git.commit_hash() or UNKNOWN,
        "git.branch": git.current_branch() or UNKNOWN,
        "git.author": git.head_field("%an") or UNKNOWN,
        "git.email": git.head_field("%ae") or UNKNOWN,
        "git.date": git.head_field("%cI") or UNKNOWN,
        "git.commit_count": str(count) if count is not None else UNKNOWN,
        "git.first_commit_date": git.first_commit_date() or UNKNOWN,
    }


def _username() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return os.environ.get("USER") or os.environ.get("USERNAME") or UNKNOWN


def _system_context() -> Dict[str, str]:
    return {
        "system.hostname": socket.gethostname() or UNKNOWN,
        "system.username": _username(),
        "system.os": platform.system() or UNKNOWN,
        "system.arch": platform.machine() or UNKNOWN,
        "system.cpus": str(os.cpu_count() or UNKNOWN),
    }


def _build_context(now: datetime) -> Dict[str, str]:
    return {
        "build.timestamp": now.strftime("%Y-%m-%dT%H:%M:%S"),
        "build.date": now.strftime("%Y-%m-%d"),
        "build.time": now.strftime("%H:%M:%S"),
        "build.python": platform.python_version(),
    }


def read_project_info(project_dir: Path) -> Dict[str, str]:
    """Project name, description, version and authors from the first manifest found.

    Looks at pyproject.toml, package.json and Cargo.toml in that order.
    """
    info = {"name": UNKNOWN, "description": UNKNOWN, "version": UNKNOWN, "authors": ""}

    pyproject = project_dir / "pyproject.toml"
    package_json = project_dir / "package.json"
    cargo = project_dir / "Cargo.toml"
    try:
        if pyproject.exists():
            section = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {})
            authors = [a.get("name", "") for a in section.get("authors", []) if isinstance(a, dict)]
        elif package_json.exists():
            section = json.loads(package_json.read_text(encoding="utf-8"))
            author = section.get("author")
            authors = [author] if isinstance(author, str) else []
        elif cargo.exists():
            section = tomllib.loads(cargo.read_text(encoding="utf-8")).get("package", {})
            authors = [a for a in section.get("authors", []) if isinstance(a, str)]
        else:
            return info
    except (OSError, ValueError) as e:
        # tomllib.TOMLDecodeError and json.JSONDecodeError are ValueErrors
        logger.debug("Could not read project manifest", error=str(e))
        return info

    for key in ("name", "description", "version"):
        if isinstance(section.get(key), str):
            info[key] = section[key]
    info["authors"] = ", ".join(a for a in authors if a)
    return info


def _iter_project_files(project_dir: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(project_dir):
        dirnames[:] = [d for d in dirnames if d not in SKIPPED_DIRS and not d.startswith(".")]
        for filename in filenames:
            yield Path(dirpath) / filename


def gather_stats(project_dir: Path) -> Dict[str, str]:
    """Count files and source lines under project_dir."""
    file_count = 0
    lines = 0
    for path in _iter_project_files(project_dir):
        file_count += 1
        if path.suffix not in SOURCE_EXTENSIONS:
            continue
        try:
            with open(path, "r", encoding="utf-8", errors="ignore") as f:
                lines += sum(1 for _ in f)
        except OSError as e:
            logger.debug("Skipping unreadable file", path=str(path), error=str(e))
    return {"stats.file_count": str(file_count), "stats.lines_of_code": str(lines)}


def build_render_context(
    version: str,
    scheme: str,
    channel: str,
    project_dir: Path,
    git: Optional[GitRepository] = None,
    enable_expensive_metrics: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Assemble the full rendering context for a computed version.

    Args:
        version: Final version string.
        scheme: Scheme name.
        channel: Channel label.
        project_dir: Directory manifests and statistics are read from.
        git: Git data source (git.* keys are omitted when None).
        enable_expensive_metrics: Walk the tree for stats.* values.
        now: Build time (defaults to the current UTC time).

    Returns:
        Flat mapping of dotted names to strings.
    """
    moment = now or datetime.now(timezone.utc)
    context: Dict[str, str] = {"version": version, "scheme": scheme, "channel": channel}
    context.update(_git_context(git))
    context.update(_build_context(moment))
    context.update(_system_context())
    context.update({f"project.{k}": v for k, v in read_project_info(project_dir).items()})
    if enable_expensive_metrics:
        context.update(gather_stats(project_dir))
    else:
        context.update({"stats.file_count": STATS_DISABLED, "stats.lines_of_code": STATS_DISABLED})
    return context
