"""Version persistence: version files, headers, package manifests and state stores.

Nothing here writes immediately. Callers queue writes on a ``ReleaseSession``
and call ``flush()`` once; in dry-run mode ``flush()`` only reports the plan.

Package manifests are edited textually so formatting, comments and key
order survive:

    npm / yarn / pnpm   JSON key (dotted for nested objects)
    cargo / pyproject   ``key = "..."`` inside ``[table]`` (field ``table.key``)
    python              ``NAME = "..."`` assignment
    maven               first ``<field>...</field>`` element
    cmake               ``set(NAME "...")`` or ``project(... VERSION x)``
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml

from versionit.core.config.models import PackageFile, VersionHeader, VersionItConfig
from versionit.core.craft.counters import CounterStore
from versionit.core.exceptions import PersistenceError
from versionit.core.logging import get_logger
from versionit.core.render import render_template
from versionit.core.versioning.bumper import ChannelStateStore

logger = get_logger(__name__)


# ============================================================================
# Reading
# ============================================================================


def read_current_version(config: VersionItConfig) -> str:
    """Current version from the version file, else ``first-version``.

    Raises:
        PersistenceError: If the version file exists but cannot be read.
    """
    if config.current_version_file:
        path = config.resolve_path(config.current_version_file)
        if path.exists():
            try:
                text = path.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                raise PersistenceError(f"Cannot read version file {path}: {e}") from e
            if text:
                return text
            logger.debug("Version file is empty, using first-version", path=str(path))
    return config.first_version


def _load_yaml_mapping(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise PersistenceError(f"Cannot read state file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PersistenceError(f"State file {path} must contain a mapping")
    return data


def load_counters(path: Path, seed: Optional[Mapping[str, int]] = None) -> CounterStore:
    """Counters from the counters file, layered over the configured seed values."""
    values: Dict[str, Any] = dict(seed or {})
    values.update(_load_yaml_mapping(path))
    return CounterStore.from_mapping(values)


def load_channel_state(path: Path) -> ChannelStateStore:
    data = _load_yaml_mapping(path)
    try:
        return ChannelStateStore.from_dict(data.get("channels"))
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Malformed channel state in {path}: {e}") from e


def dump_yaml(data: Mapping[str, Any]) -> str:
    return yaml.dump(dict(data), default_flow_style=False, sort_keys=True)


# ============================================================================
# Package manifests
# ============================================================================


def _update_json(content: str, field_name: str, version: str) -> str:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Invalid JSON: {e}") from e
    target = data
    *parents, leaf = field_name.split(".")
    for key in parents:
        target = target.get(key) if isinstance(target, dict) else None
        if not isinstance(target, dict):
            raise PersistenceError(f"No object '{key}' on the path to '{field_name}'")
    if not isinstance(target, dict):
        raise PersistenceError("Top-level JSON value must be an object")
    target[leaf] = version
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


_TOML_HEADER = re.compile(r"^\s*\[")


def _update_toml(content: str, field_name: str, version: str) -> str:
    table, _, key = field_name.rpartition(".")
    key_pattern = re.compile(rf'^(\s*{re.escape(key)}\s*=\s*)(["\'])[^"\']*\2')
    header = f"[{table}]"

    lines = content.splitlines(keepends=True)
    in_table = table == ""
    for index, line in enumerate(lines):
        if _TOML_HEADER.match(line):
            in_table = line.strip() == header
            continue
        if in_table:
            match = key_pattern.match(line)
            if match:
                quote = match.group(2)
                lines[index] = key_pattern.sub(
                    lambda m: f"{m.group(1)}{quote}{version}{quote}", line, count=1
                )
                return "".join(lines)
    where = f"table [{table}]" if table else "the top level"
    raise PersistenceError(f"No '{key}' key in {where}")


def _update_python(content: str, field_name: str, version: str) -> str:
    pattern = re.compile(rf'({re.escape(field_name)}\s*=\s*["\'])([^"\']*)(["\'])')
    new_content, count = pattern.subn(lambda m: f"{m.group(1)}{version}{m.group(3)}", content, count=1)
    if count == 0:
        raise PersistenceError(f"No '{field_name} = \"...\"' assignment")
    return new_content


def _update_maven(content: str, field_name: str, version: str) -> str:
    tag = re.escape(field_name)
    pattern = re.compile(rf"(<{tag}>)[^<]*(</{tag}>)")
    new_content, count = pattern.subn(lambda m: f"{m.group(1)}{version}{m.group(2)}", content, count=1)
    if count == 0:
        raise PersistenceError(f"No <{field_name}> element")
    return new_content


def _update_cmake(content: str, field_name: str, version: str) -> str:
    set_pattern = re.compile(rf'(set\(\s*{re.escape(field_name)}\s+)"?[^")\s]*"?(\s*\))', re.IGNORECASE)
    new_content, count = set_pattern.subn(lambda m: f'{m.group(1)}"{version}"{m.group(2)}', content, count=1)
    if count:
        return new_content

    project_pattern = re.compile(r"(project\([^)]*?\bVERSION\s+)[^\s)]+", re.IGNORECASE)
    new_content, count = project_pattern.subn(lambda m: f"{m.group(1)}{version}", content, count=1)
    if count == 0:
        raise PersistenceError(f"No set({field_name} ...) or project(... VERSION ...) call")
    return new_content


_UPDATERS: Dict[str, Callable[[str, str, str], str]] = {
    "npm": _update_json,
    "yarn": _update_json,
    "pnpm": _update_json,
    "cargo": _update_toml,
    "pyproject": _update_toml,
    "python": _update_python,
    "maven": _update_maven,
    "cmake": _update_cmake,
}


def update_package_content(package_file: PackageFile, content: str, version: str) -> str:
    """Return manifest text with its version field set to ``version``.

    Raises:
        PersistenceError: If the field cannot be located.
    """
    updater = _UPDATERS[package_file.manager]
    try:
        return updater(content, package_file.target_field, version)
    except PersistenceError as e:
        raise PersistenceError(f"{package_file.path} ({package_file.manager}): {e}") from e


# ============================================================================
# Release session
# ============================================================================


@dataclass(frozen=True)
class PlannedOperation:
    """One queued side effect."""

    description: str
    action: Callable[[], None] = field(repr=False, compare=False)


def _write_file(path: Path, content: str) -> Callable[[], None]:
    def write() -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_file = path.with_name(path.name + ".tmp")
            temp_file.write_text(content, encoding="utf-8")
            temp_file.replace(path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e

    return write


class ReleaseSession:
    """Queue of side effects for one invocation.

    Every write (files, counters, channel state, git commit and tag) goes
    through ``plan_*`` and is executed only by ``flush()``, which checks
    ``dry_run`` in exactly one place.

    Example:
        session = ReleaseSession(dry_run=True)
        session.plan_write(Path("VERSION"), "1.2.4\\n", "Write version to VERSION")
        planned = session.flush()   # nothing written
    """

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self._operations: List[PlannedOperation] = []
        self._flushed = False

    @property
    def planned(self) -> List[str]:
        return [op.description for op in self._operations]

    def plan_write(self, path: Path, content: str, description: Optional[str] = None) -> None:
        self._operations.append(
            PlannedOperation(description or f"Write {path}", _write_file(path, content))
        )

    def plan_action(self, description: str, action: Callable[[], None]) -> None:
        self._operations.append(PlannedOperation(description, action))

    def flush(self) -> List[str]:
        """Execute queued operations in order, or only report them in dry-run mode.

        Returns:
            Descriptions of the planned (dry-run) or executed operations.

        Raises:
            PersistenceError / GitOperationError: From the first failing operation.
        """
        assert not self._flushed, "a release session can only be flushed once"
        self._flushed = True
        descriptions = self.planned

        if self.dry_run:
            for description in descriptions:
                logger.info("Dry run, skipping", operation=description)
            return descriptions

        for op in self._operations:
            logger.debug("Executing", operation=op.description)
            op.action()
        return descriptions


# ============================================================================
# Planning helpers
# ============================================================================


def _header_template(config: VersionItConfig, header: VersionHeader) -> str:
    if header.template is not None:
        return header.template
    path = config.resolve_path(header.template_path or "")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceError(f"Cannot read header template {path}: {e}") from e


def plan_version_outputs(
    session: ReleaseSession,
    config: VersionItConfig,
    version: str,
    render_context: Mapping[str, str],
) -> None:
    """Queue the version file, header files and package manifest updates.

    Manifests are read and rewritten in memory now, so a missing field fails
    before anything is written.
    """
    if config.current_version_file:
        path = config.resolve_path(config.current_version_file)
        session.plan_write(path, f"{version}\n", f"Write version '{version}' to {path}")

    for header in config.version_headers:
        path = config.resolve_path(header.path)
        content = render_template(_header_template(config, header), render_context)
        session.plan_write(path, content, f"Generate header {path}")

    for package_file in config.package_files:
        path = config.resolve_path(package_file.path)
        if not path.exists():
            logger.warning("Package file not found, skipping", path=str(path))
            continue
        try:
            current = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e
        updated = update_package_content(package_file, current, version)
        session.plan_write(
            path, updated, f"Update version in {path} ({package_file.manager})"
        )


def plan_counters(session: ReleaseSession, path: Path, counters: CounterStore) -> None:
    session.plan_write(path, dump_yaml(counters.snapshot()), f"Save counters to {path}")


def plan_channel_state(session: ReleaseSession, path: Path, state: ChannelStateStore) -> None:
    session.plan_write(
        path, dump_yaml({"channels": state.to_dict()}), f"Save channel state to {path}"
    )
