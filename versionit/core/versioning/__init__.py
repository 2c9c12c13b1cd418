"""Versioning Module.

Scheme-tagged version values, the bump rule table, the release channel
modifier and the commit classifier.
"""

from versionit.core.versioning.bumper import (
    BumpContext,
    BumpSettings,
    ChannelEntry,
    ChannelResult,
    ChannelStateStore,
    PatternRule,
    apply_channel,
    bump_version,
    format_timestamp,
)
from versionit.core.versioning.classifier import (
    ChangeTypeRule,
    Commit,
    classify_commits,
    classify_message,
)
from versionit.core.versioning.types import (
    BumpIntent,
    ChannelKind,
    ReleaseChannel,
    Scheme,
)
from versionit.core.versioning.values import (
    BuildVersion,
    CalverLayout,
    CalverVersion,
    MonotonicVersion,
    OpaqueVersion,
    SemanticCommitVersion,
    SemanticVersion,
    VersionValue,
    compare_versions,
    format_version,
    parse_version,
)

__all__ = [
    "BumpContext",
    "BumpSettings",
    "ChannelEntry",
    "ChannelResult",
    "ChannelStateStore",
    "PatternRule",
    "apply_channel",
    "bump_version",
    "format_timestamp",
    "ChangeTypeRule",
    "Commit",
    "classify_commits",
    "classify_message",
    "BumpIntent",
    "ChannelKind",
    "ReleaseChannel",
    "Scheme",
    "BuildVersion",
    "CalverLayout",
    "CalverVersion",
    "MonotonicVersion",
    "OpaqueVersion",
    "SemanticCommitVersion",
    "SemanticVersion",
    "VersionValue",
    "compare_versions",
    "format_version",
    "parse_version",
]
