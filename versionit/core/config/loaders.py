"""
Configuration Loading Functions.

Handles loading ``.version-it`` and ``version-templates.yaml`` from disk,
expanding environment variables and mapping kebab-case keys onto the
config dataclasses.

Environment variables may be referenced anywhere in a value as ``${NAME}``
or ``${NAME:default}``.
"""

import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import yaml

from versionit.core.config.models import (
    CONFIG_FILENAME,
    DEFAULT_COUNTERS_FILE,
    DEFAULT_FIRST_VERSION,
    DEFAULT_STATE_FILE,
    TEMPLATES_FILENAME,
    CraftSettings,
    PackageFile,
    Subproject,
    VersionHeader,
    VersionItConfig,
)
from versionit.core.craft.counters import CounterStore
from versionit.core.exceptions import ConfigurationError, InvalidCounterValue
from versionit.core.logging import get_logger
from versionit.core.versioning.bumper import (
    DEFAULT_PATTERN_SUFFIX,
    DEFAULT_TIMESTAMP_FORMAT,
    BumpSettings,
    parse_pattern_rules,
    validate_timestamp_format,
)
from versionit.core.versioning.classifier import ChangeTypeRule
from versionit.core.versioning.types import BumpIntent, ReleaseChannel, Scheme
from versionit.core.versioning.values import CalverLayout

logger = get_logger(__name__)

T = TypeVar("T")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles nested structures including:
    - Strings with ${VAR_NAME} or ${VAR_NAME:default} syntax
    - Nested dictionaries
    - Nested lists (including lists of dicts, lists of lists)

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):
        # Match ${VAR_NAME} or ${VAR_NAME:default} pattern
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    # Return primitives (int, float, bool, None) unchanged
    return value


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping from disk.

    Raises:
        ConfigurationError: If the file is unreadable, invalid YAML or not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", value=str(path)) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", value=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{path} must contain a mapping at the top level", value=str(path)
        )
    return expand_env_vars(data)


# ============================================================================
# Field parsers
# ============================================================================


def _get_bool(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be true or false", field=key, value=value)
    return value


def _get_str(data: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return default
    return str(value)


def _get_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigurationError(f"'{key}' must be a list", field=key, value=value)
    return value


def _convert(key: str, raw: Any, parser: Callable[[str], T]) -> T:
    """Run a value parser, reporting ValueError as a config error."""
    try:
        return parser(str(raw))
    except ValueError as e:
        raise ConfigurationError(str(e), field=key, value=raw) from e


def _parse_change_type_map(data: Dict[str, Any]) -> List[ChangeTypeRule]:
    rules = []
    for entry in _get_list(data, "change-type-map"):
        if not isinstance(entry, dict) or "label" not in entry:
            raise ConfigurationError(
                "change-type-map entries need 'label' and 'action'",
                field="change-type-map",
                value=entry,
            )
        # YAML reads a bare `null` action as None
        action = entry.get("action")
        intent = BumpIntent.NONE if action is None else _convert(
            "change-type-map", action, BumpIntent.parse
        )
        pattern = entry.get("pattern")
        rules.append(
            ChangeTypeRule(
                label=str(entry["label"]),
                intent=intent,
                pattern=None if pattern is None else str(pattern),
            )
        )
    return rules


def _parse_bump_settings(data: Dict[str, Any]) -> BumpSettings:
    timestamp_format = _convert(
        "timestamp-format",
        data.get("timestamp-format", DEFAULT_TIMESTAMP_FORMAT),
        validate_timestamp_format,
    )
    try:
        pattern_rules = parse_pattern_rules(_get_list(data, "pattern-rules"))
    except (KeyError, TypeError, re.error) as e:
        raise ConfigurationError(
            f"Invalid pattern-rules entry: {e}", field="pattern-rules"
        ) from e
    return BumpSettings(
        timestamp_format=timestamp_format,
        pattern_suffix=_get_str(data, "pattern-suffix", DEFAULT_PATTERN_SUFFIX),
        pattern_rules=pattern_rules,
        nightly_scheme=_convert(
            "nightly-scheme", data.get("nightly-scheme", "timestamp"), Scheme.parse
        ),
    )


def _mapping_entries(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    entries = _get_list(data, key)
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"'{key}' entries must be mappings", field=key, value=entry)
    return entries


def _parse_headers(data: Dict[str, Any]) -> List[VersionHeader]:
    return [
        VersionHeader(
            path=str(entry.get("path") or ""),
            template=_get_str(entry, "template"),
            template_path=_get_str(entry, "template-path"),
        )
        for entry in _mapping_entries(data, "version-headers")
    ]


def _parse_package_files(data: Dict[str, Any]) -> List[PackageFile]:
    return [
        PackageFile(
            path=str(entry.get("path") or ""),
            manager=str(entry.get("manager") or ""),
            field=_get_str(entry, "field"),
        )
        for entry in _mapping_entries(data, "package-files")
    ]


def _parse_subprojects(data: Dict[str, Any]) -> List[Subproject]:
    subprojects = []
    for entry in _mapping_entries(data, "subprojects"):
        if not entry.get("path"):
            raise ConfigurationError("subprojects entries need a 'path'", field="subprojects")
        subprojects.append(Subproject(str(entry["path"]), _get_str(entry, "config")))
    return subprojects


def _parse_craft(data: Dict[str, Any]) -> CraftSettings:
    templates = data.get("templates") or {}
    if not isinstance(templates, dict):
        raise ConfigurationError(
            "'templates' must be a mapping of template name to definition",
            field="templates",
        )
    counters = data.get("counters") or {}
    if not isinstance(counters, dict):
        raise ConfigurationError("'counters' must be a mapping", field="counters")
    try:
        seeded = CounterStore.from_mapping(counters).values
    except InvalidCounterValue as e:
        raise ConfigurationError(str(e), field="counters") from e
    return CraftSettings(
        templates=templates,
        counters=seeded,
        default_template=_get_str(data, "default-template"),
        counters_file=_get_str(data, "counters-file", DEFAULT_COUNTERS_FILE),
    )


# ============================================================================
# Public API
# ============================================================================


def config_from_dict(
    data: Dict[str, Any],
    base_dir: Optional[Path] = None,
    source_path: Optional[Path] = None,
) -> VersionItConfig:
    """Build a config from an already-loaded mapping.

    Raises:
        ConfigurationError: If a value has the wrong type or an unknown name.
        InvalidRuleError: If a change-type rule has an invalid pattern.
    """
    data = expand_env_vars(data)
    scheme = _convert(
        "versioning-scheme", data.get("versioning-scheme", "semantic"), Scheme.parse
    )
    calver_layout = _convert(
        "calver-format", data.get("calver-format", "YY.MM.DD"), CalverLayout.parse
    )

    config = VersionItConfig(
        versioning_scheme=scheme,
        first_version=_get_str(data, "first-version", DEFAULT_FIRST_VERSION),
        current_version_file=_get_str(data, "current-version-file"),
        channel=ReleaseChannel.parse(_get_str(data, "channel")),
        run_on_branches=[str(b) for b in _get_list(data, "run-on-branches")],
        change_type_map=_parse_change_type_map(data),
        commit_based_bumping=_get_bool(data, "commit-based-bumping", True),
        fail_on_ineligible_branch=_get_bool(data, "fail-on-ineligible-branch", False),
        calver_layout=calver_layout,
        bump_settings=_parse_bump_settings(data),
        version_headers=_parse_headers(data),
        package_files=_parse_package_files(data),
        subprojects=_parse_subprojects(data),
        enable_expensive_metrics=_get_bool(data, "enable-expensive-metrics", False),
        structured_output=_get_bool(data, "structured-output", False),
        state_file=_get_str(data, "state-file", DEFAULT_STATE_FILE),
        craft=_parse_craft(data),
        base_dir=base_dir or Path.cwd(),
        source_path=source_path,
    )
    return config


def load_config(
    config_path: Optional[Path] = None,
    base_path: Optional[Path] = None,
    required: bool = False,
) -> VersionItConfig:
    """
    Load configuration from a YAML file.

    Configuration precedence: 1. YAML file (with ${VAR} expansion), 2. Defaults

    Args:
        config_path: Path to config file. Defaults to .version-it in base_path.
        base_path: Directory relative paths are resolved against. Defaults to
            the config file's directory, or the current directory.
        required: Raise instead of returning defaults when the file is missing.

    Returns:
        VersionItConfig with all settings.

    Raises:
        ConfigurationError: If the file is required but missing, or invalid.
    """
    if config_path is None:
        config_path = (base_path or Path.cwd()) / CONFIG_FILENAME

    if not config_path.exists():
        if required:
            raise ConfigurationError(
                f"Config file not found: {config_path}",
                field="config",
                value=str(config_path),
            )
        return VersionItConfig(base_dir=base_path or Path.cwd())

    data = _read_yaml(config_path)
    base_dir = base_path or config_path.resolve().parent
    logger.debug("Loaded config", path=str(config_path))
    return config_from_dict(data, base_dir=base_dir, source_path=config_path)


def load_template_file(path: Optional[Path], base_dir: Path) -> Optional[CraftSettings]:
    """Load a craft template file.

    Args:
        path: Explicit template file (must exist), or None for the default
            ``version-templates.yaml`` in base_dir (optional).
        base_dir: Directory the default file is looked up in.

    Returns:
        CraftSettings from the file, or None if the default file is absent.

    Raises:
        ConfigurationError: If an explicit file is missing or any file is invalid.
    """
    if path is None:
        candidate = base_dir / TEMPLATES_FILENAME
        if not candidate.exists():
            return None
        path = candidate
    elif not path.exists():
        raise ConfigurationError(
            f"Template file not found: {path}", field="config-file", value=str(path)
        )

    logger.debug("Loaded template file", path=str(path))
    return _parse_craft(_read_yaml(path))
