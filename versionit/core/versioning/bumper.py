"""Scheme bump rules and the release channel modifier.

``bump_version`` is the single place where every scheme's reaction to a
bump intent is decided:

    scheme           patch               minor                 major
    semantic         patch+1             minor+1, patch=0      major+1, minor=0, patch=0
    calver           day+1               month+1, day=1        year+1, month=1, day=1
    build            build+1             minor+1, build=0      major+1, minor=0, build=0
    monotonic        +1                  +1                    +1
    timestamp        now (configured format)
    datetime         now (ISO-8601)
    commit           current short commit hash
    pattern          first matching rule rewrites, else marker appended
    semantic_commit  semantic rules on major.minor, third part = commit count

Intent ``none`` leaves every scheme unchanged. Calver minor bumps roll
December over into January of the next year.

``apply_channel`` runs after the base bump. It is pure: the beta counter it
computes is returned to the caller, which records it only when the
invocation is allowed to persist state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Pattern

from versionit.core.exceptions import BumpContextError, UnsupportedBump
from versionit.core.logging import get_logger
from versionit.core.versioning.types import (
    BumpIntent,
    ChannelKind,
    ReleaseChannel,
    Scheme,
)
from versionit.core.versioning.values import (
    BuildVersion,
    CalverVersion,
    MonotonicVersion,
    OpaqueVersion,
    SemanticCommitVersion,
    SemanticVersion,
    VersionValue,
    format_version,
)

logger = get_logger(__name__)

DEFAULT_TIMESTAMP_FORMAT = "YYYYMMDDHHMMSS"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_PATTERN_SUFFIX = "-updated"

_TIMESTAMP_ALIASES = {
    "YYYYMMDDHHMMSS": "%Y%m%d%H%M%S",
    "YYYYMMDD": "%Y%m%d",
}


def validate_timestamp_format(fmt: str) -> str:
    """Check a timestamp format is usable.

    Raises:
        ValueError: If the format is neither a known keyword nor a strftime pattern.
    """
    if fmt in ("unix", "unix_ms", "iso") or fmt in _TIMESTAMP_ALIASES or "%" in fmt:
        return fmt
    raise ValueError(
        f"Invalid timestamp format '{fmt}' "
        "(use YYYYMMDDHHMMSS, unix, unix_ms, iso or a strftime pattern)"
    )


def format_timestamp(now: datetime, fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    """Render ``now`` with a timestamp keyword or strftime pattern."""
    if fmt == "unix":
        return str(int(now.timestamp()))
    if fmt == "unix_ms":
        return str(int(now.timestamp() * 1000))
    if fmt == "iso":
        return now.isoformat()
    return now.strftime(_TIMESTAMP_ALIASES.get(fmt, fmt))


@dataclass(frozen=True)
class PatternRule:
    """Rewrite rule for pattern-scheme versions."""

    pattern: str
    replacement: str
    compiled: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "compiled", re.compile(self.pattern))


@dataclass(frozen=True)
class BumpSettings:
    """Per-project knobs of the opaque schemes and the nightly channel."""

    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    pattern_suffix: str = DEFAULT_PATTERN_SUFFIX
    pattern_rules: tuple = ()
    nightly_scheme: Scheme = Scheme.TIMESTAMP


@dataclass(frozen=True)
class BumpContext:
    """Repository and clock state a bump may consult."""

    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    commit_hash: Optional[str] = None
    commit_count: Optional[int] = None


DEFAULT_SETTINGS = BumpSettings()


# ============================================================================
# Base bump
# ============================================================================


def _bump_semantic(current: SemanticVersion, intent: BumpIntent) -> SemanticVersion:
    if intent is BumpIntent.MAJOR:
        return SemanticVersion(current.major + 1, 0, 0)
    if intent is BumpIntent.MINOR:
        return SemanticVersion(current.major, current.minor + 1, 0)
    return SemanticVersion(current.major, current.minor, current.patch + 1)


def _bump_calver(current: CalverVersion, intent: BumpIntent) -> CalverVersion:
    if intent is BumpIntent.MAJOR:
        return CalverVersion(current.year + 1, 1, 1, current.layout)
    if intent is BumpIntent.MINOR:
        if current.month >= 12:
            return CalverVersion(current.year + 1, 1, 1, current.layout)
        return CalverVersion(current.year, current.month + 1, 1, current.layout)
    return CalverVersion(current.year, current.month, current.day + 1, current.layout)


def _bump_build(current: BuildVersion, intent: BumpIntent) -> BuildVersion:
    if intent is BumpIntent.MAJOR:
        return BuildVersion(current.major + 1, 0, current.patch, 0)
    if intent is BumpIntent.MINOR:
        return BuildVersion(current.major, current.minor + 1, current.patch, 0)
    return BuildVersion(current.major, current.minor, current.patch, current.build + 1)


def _bump_semantic_commit(
    current: SemanticCommitVersion,
    intent: BumpIntent,
    context: BumpContext,
) -> SemanticCommitVersion:
    if context.commit_count is None:
        raise BumpContextError(
            f"Cannot bump semantic_commit version '{current}': "
            "the total commit count is unknown"
        )
    if intent is BumpIntent.MAJOR:
        return SemanticCommitVersion(current.major + 1, 0, context.commit_count)
    if intent is BumpIntent.MINOR:
        return SemanticCommitVersion(current.major, current.minor + 1, context.commit_count)
    return SemanticCommitVersion(current.major, current.minor, context.commit_count)


def _require_commit(context: BumpContext, what: str) -> str:
    if not context.commit_hash:
        raise BumpContextError(f"Cannot compute {what}: the current commit hash is unknown")
    return context.commit_hash


def _bump_pattern(text: str, settings: BumpSettings) -> str:
    for rule in settings.pattern_rules:
        if rule.compiled.search(text):
            return rule.compiled.sub(rule.replacement, text, count=1)
    return f"{text}{settings.pattern_suffix}"


def _bump_opaque(
    current: OpaqueVersion,
    context: BumpContext,
    settings: BumpSettings,
) -> OpaqueVersion:
    if current.kind is Scheme.TIMESTAMP:
        return OpaqueVersion(
            Scheme.TIMESTAMP, format_timestamp(context.now, settings.timestamp_format)
        )
    if current.kind is Scheme.DATETIME:
        return OpaqueVersion(Scheme.DATETIME, context.now.strftime(DATETIME_FORMAT))
    if current.kind is Scheme.COMMIT:
        return OpaqueVersion(Scheme.COMMIT, _require_commit(context, "a commit version"))
    if current.kind is Scheme.PATTERN:
        return OpaqueVersion(Scheme.PATTERN, _bump_pattern(current.text, settings))
    raise UnsupportedBump(
        f"{current.kind.value} versions are composed by craft templates, not bumped"
    )


def bump_version(
    current: VersionValue,
    intent: BumpIntent,
    context: Optional[BumpContext] = None,
    settings: BumpSettings = DEFAULT_SETTINGS,
) -> VersionValue:
    """Compute the next version of ``current`` for a bump intent.

    Args:
        current: Parsed current version.
        intent: Requested bump magnitude.
        context: Clock and repository state (defaults to "now", no git data).
        settings: Scheme options (timestamp format, pattern rules...).

    Returns:
        The next version value; ``current`` itself for intent NONE.

    Raises:
        BumpContextError: If the scheme needs context that is missing.
        UnsupportedBump: If the scheme does not accept bumps.
    """
    if intent is BumpIntent.NONE:
        return current

    ctx = context or BumpContext()
    if isinstance(current, SemanticVersion):
        return _bump_semantic(current, intent)
    if isinstance(current, CalverVersion):
        return _bump_calver(current, intent)
    if isinstance(current, BuildVersion):
        return _bump_build(current, intent)
    if isinstance(current, MonotonicVersion):
        return MonotonicVersion(current.value + 1)
    if isinstance(current, SemanticCommitVersion):
        return _bump_semantic_commit(current, intent, ctx)
    if isinstance(current, OpaqueVersion):
        return _bump_opaque(current, ctx, settings)
    raise UnsupportedBump(f"Unsupported version value: {current!r}")


# ============================================================================
# Channel modifier
# ============================================================================


@dataclass(frozen=True)
class ChannelEntry:
    """Last pre-release number issued on a channel for a base version."""

    base: str
    number: int


@dataclass
class ChannelStateStore:
    """Pre-release counters keyed by channel label.

    Separate from the craft counters store. Loaded at session start and
    flushed by the persistence collaborator.
    """

    entries: Dict[str, ChannelEntry] = field(default_factory=dict)

    def next_number(self, channel: str, base: str) -> int:
        """Number the next pre-release of ``base`` on ``channel`` gets."""
        entry = self.entries.get(channel)
        if entry is None or entry.base != base:
            return 1
        return entry.number + 1

    def record(self, channel: str, base: str, number: int) -> None:
        self.entries[channel] = ChannelEntry(base, number)

    def to_dict(self) -> Dict[str, Dict[str, object]]:
        return {
            name: {"base": entry.base, "number": entry.number}
            for name, entry in sorted(self.entries.items())
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Dict[str, object]]]) -> "ChannelStateStore":
        entries = {}
        for name, raw in (data or {}).items():
            entries[str(name)] = ChannelEntry(str(raw["base"]), int(raw["number"]))
        return cls(entries)


@dataclass(frozen=True)
class ChannelResult:
    """Final version string plus the channel-state update it implies."""

    version: str
    base: str
    channel: ReleaseChannel
    entry: Optional[ChannelEntry] = None


def _channel_base(value: VersionValue) -> str:
    if isinstance(value, SemanticVersion):
        return format_version(value.release)
    return format_version(value)


def apply_channel(
    value: VersionValue,
    channel: ReleaseChannel,
    context: Optional[BumpContext] = None,
    settings: BumpSettings = DEFAULT_SETTINGS,
    state: Optional[ChannelStateStore] = None,
) -> ChannelResult:
    """Apply a release channel to a bumped version.

    - stable: unchanged
    - beta: ``{base}-beta.{n}``, n counting up per base version
    - nightly: replaced entirely by a timestamp or commit version
    - anything else: ``{base}-{channel}``

    Does not mutate ``state``; the returned entry is recorded by the caller.
    """
    ctx = context or BumpContext()
    if channel.is_stable:
        text = format_version(value)
        return ChannelResult(text, text, channel)

    base = _channel_base(value)
    if channel.kind is ChannelKind.BETA:
        store = state or ChannelStateStore()
        number = store.next_number(channel.label, base)
        logger.debug("Beta pre-release number", base=base, number=number)
        return ChannelResult(
            f"{base}-beta.{number}", base, channel, ChannelEntry(base, number)
        )
    if channel.kind is ChannelKind.NIGHTLY:
        if settings.nightly_scheme is Scheme.COMMIT:
            nightly = _require_commit(ctx, "a nightly version")
        else:
            nightly = format_timestamp(ctx.now, settings.timestamp_format)
        return ChannelResult(nightly, base, channel)
    return ChannelResult(f"{base}-{channel.label}", base, channel)


def parse_pattern_rules(raw_rules: Optional[List[Dict[str, str]]]) -> tuple:
    """Build pattern rules from config mappings ({pattern, replacement})."""
    rules = []
    for raw in raw_rules or []:
        rules.append(PatternRule(str(raw["pattern"]), str(raw.get("replacement", ""))))
    return tuple(rules)
