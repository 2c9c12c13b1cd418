"""Configuration for version-it."""

from versionit.core.config.loaders import (
    config_from_dict,
    expand_env_vars,
    load_config,
    load_template_file,
)
from versionit.core.config.models import (
    CONFIG_FILENAME,
    TEMPLATES_FILENAME,
    CraftSettings,
    PackageFile,
    Subproject,
    VersionHeader,
    VersionItConfig,
)

__all__ = [
    "config_from_dict",
    "expand_env_vars",
    "load_config",
    "load_template_file",
    "CONFIG_FILENAME",
    "TEMPLATES_FILENAME",
    "CraftSettings",
    "PackageFile",
    "Subproject",
    "VersionHeader",
    "VersionItConfig",
]
