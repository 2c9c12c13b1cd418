"""
Configuration dataclasses for version-it.

The YAML file uses kebab-case keys; the loader maps them onto these
dataclasses, which validate themselves in ``__post_init__`` so a bad config
fails at load time rather than halfway through a release.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from versionit.core.exceptions import ConfigurationError
from versionit.core.versioning.bumper import BumpSettings
from versionit.core.versioning.classifier import ChangeTypeRule
from versionit.core.versioning.types import STABLE, ReleaseChannel, Scheme
from versionit.core.versioning.values import DEFAULT_CALVER_LAYOUT, CalverLayout

CONFIG_FILENAME = ".version-it"
TEMPLATES_FILENAME = "version-templates.yaml"
DEFAULT_STATE_FILE = ".version-it-state.yaml"
DEFAULT_COUNTERS_FILE = ".version-it-counters.yaml"
DEFAULT_FIRST_VERSION = "0.1.0"

# manager -> default field
PACKAGE_MANAGERS: Dict[str, str] = {
    "npm": "version",
    "yarn": "version",
    "pnpm": "version",
    "cargo": "package.version",
    "pyproject": "project.version",
    "python": "__version__",
    "maven": "version",
    "cmake": "PROJECT_VERSION",
}


@dataclass
class VersionHeader:
    """A file rendered from a template after every bump."""

    path: str
    template: Optional[str] = None
    template_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.path:
            raise ConfigurationError("version-headers entry needs a 'path'", field="path")
        if (self.template is None) == (self.template_path is None):
            raise ConfigurationError(
                f"Header '{self.path}' needs exactly one of 'template' or 'template-path'",
                field="version-headers",
                value=self.path,
            )


@dataclass
class PackageFile:
    """A package manifest whose version field follows the project version."""

    path: str
    manager: str
    field: Optional[str] = None

    def __post_init__(self) -> None:
        self.manager = self.manager.strip().lower()
        if self.manager not in PACKAGE_MANAGERS:
            raise ConfigurationError(
                f"Unknown package manager '{self.manager}' for '{self.path}' "
                f"(supported: {', '.join(sorted(PACKAGE_MANAGERS))})",
                field="package-files",
                value=self.manager,
            )

    @property
    def target_field(self) -> str:
        return self.field or PACKAGE_MANAGERS[self.manager]


@dataclass
class Subproject:
    """A monorepo member with its own config file."""

    path: str
    config: Optional[str] = None

    @property
    def config_filename(self) -> str:
        return self.config or CONFIG_FILENAME


@dataclass
class CraftSettings:
    """Template, counter and default-template settings for ``craft``."""

    templates: Dict[str, Any] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)
    default_template: Optional[str] = None
    counters_file: str = DEFAULT_COUNTERS_FILE

    def merged_with(self, other: "CraftSettings") -> "CraftSettings":
        """Overlay ``other`` (the template file) on these settings."""
        templates = dict(self.templates)
        templates.update(other.templates)
        counters = dict(self.counters)
        counters.update(other.counters)
        return CraftSettings(
            templates=templates,
            counters=counters,
            default_template=other.default_template or self.default_template,
            counters_file=self.counters_file,
        )


@dataclass
class VersionItConfig:
    """Typed view of a ``.version-it`` file."""

    versioning_scheme: Scheme = Scheme.SEMANTIC
    first_version: str = DEFAULT_FIRST_VERSION
    current_version_file: Optional[str] = None
    channel: ReleaseChannel = STABLE
    run_on_branches: List[str] = field(default_factory=list)
    change_type_map: List[ChangeTypeRule] = field(default_factory=list)
    commit_based_bumping: bool = True
    fail_on_ineligible_branch: bool = False
    calver_layout: CalverLayout = DEFAULT_CALVER_LAYOUT
    bump_settings: BumpSettings = field(default_factory=BumpSettings)
    version_headers: List[VersionHeader] = field(default_factory=list)
    package_files: List[PackageFile] = field(default_factory=list)
    subprojects: List[Subproject] = field(default_factory=list)
    enable_expensive_metrics: bool = False
    structured_output: bool = False
    state_file: str = DEFAULT_STATE_FILE
    craft: CraftSettings = field(default_factory=CraftSettings)

    # Runtime (set by the loader)
    base_dir: Path = field(default_factory=Path.cwd, repr=False)
    source_path: Optional[Path] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        assert isinstance(self.versioning_scheme, Scheme), "versioning_scheme must be Scheme"
        assert isinstance(self.channel, ReleaseChannel), "channel must be ReleaseChannel"
        if not self.first_version.strip():
            raise ConfigurationError(
                "'first-version' must not be empty", field="first-version"
            )
        if self.bump_settings.nightly_scheme not in (Scheme.TIMESTAMP, Scheme.COMMIT):
            raise ConfigurationError(
                "'nightly-scheme' must be 'timestamp' or 'commit'",
                field="nightly-scheme",
                value=self.bump_settings.nightly_scheme.value,
            )

    @property
    def is_default(self) -> bool:
        """True when no config file was found."""
        return self.source_path is None

    def resolve_path(self, path: str) -> Path:
        """Resolve a config-relative path against the config's directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.base_dir / candidate
