"""Scheme-tagged version values with parse, format and ordering.

Each scheme has its own immutable value type. ``parse_version`` validates a
raw string against the scheme's grammar and ``format_version`` is its
inverse for every structured scheme. Timestamp, commit, datetime, pattern
and custom versions are opaque strings: they round-trip verbatim and carry
no order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from versionit.core.exceptions import IncomparableVersions, MalformedVersion
from versionit.core.versioning.types import Scheme

MAX_VERSION_LENGTH = 128

# SemVer 2.0.0 core plus optional pre-release and build metadata
SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\."
    r"(?P<minor>0|[1-9]\d*)\."
    r"(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_INT_PATTERN = re.compile(r"^\d+$")


# ============================================================================
# Calendar layout
# ============================================================================

_CALVER_TOKENS = {"YYYY": "year", "YY": "year", "MM": "month", "DD": "day"}


@dataclass(frozen=True)
class CalverLayout:
    """Field order and widths of a calendar version, e.g. ``YY.MM.DD``."""

    tokens: Tuple[str, ...] = ("YY", "MM", "DD")

    @classmethod
    def parse(cls, layout: str) -> "CalverLayout":
        """Parse a dot-separated layout string.

        Raises:
            ValueError: If the layout does not name year, month and day once each.
        """
        tokens = tuple(token.strip().upper() for token in layout.split("."))
        unknown = [t for t in tokens if t not in _CALVER_TOKENS]
        if unknown:
            raise ValueError(
                f"Invalid calver layout '{layout}': unknown token(s) {', '.join(unknown)}"
            )
        fields_named = sorted(_CALVER_TOKENS[t] for t in tokens)
        if fields_named != ["day", "month", "year"]:
            raise ValueError(
                f"Invalid calver layout '{layout}': needs year, month and day exactly once"
            )
        return cls(tokens)

    def __str__(self) -> str:
        return ".".join(self.tokens)


DEFAULT_CALVER_LAYOUT = CalverLayout()


# ============================================================================
# Value types
# ============================================================================


@dataclass(frozen=True)
class SemanticVersion:
    """Immutable semantic version following SemVer 2.0.0."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build_metadata: Optional[str] = None

    def __post_init__(self) -> None:
        assert self.major >= 0, "major must be non-negative"
        assert self.minor >= 0, "minor must be non-negative"
        assert self.patch >= 0, "patch must be non-negative"

    @property
    def scheme(self) -> Scheme:
        return Scheme.SEMANTIC

    @property
    def release(self) -> "SemanticVersion":
        """The same version without pre-release and build metadata."""
        return SemanticVersion(self.major, self.minor, self.patch)

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build_metadata:
            version += f"+{self.build_metadata}"
        return version


@dataclass(frozen=True)
class CalverVersion:
    """Calendar version. Day overflow is not calendar-validated."""

    year: int
    month: int
    day: int
    layout: CalverLayout = field(default=DEFAULT_CALVER_LAYOUT, compare=False)

    def __post_init__(self) -> None:
        assert self.year >= 0, "year must be non-negative"
        assert 1 <= self.month <= 12, "month must be in [1, 12]"
        assert self.day >= 1, "day must be positive"

    @property
    def scheme(self) -> Scheme:
        return Scheme.CALVER

    def __str__(self) -> str:
        parts = []
        for token in self.layout.tokens:
            if token == "YYYY":
                parts.append(f"{self.year:04d}")
            elif token == "YY":
                # two-digit year wraps like the craft calver block
                parts.append(f"{self.year % 100:02d}")
            elif token == "MM":
                parts.append(f"{self.month:02d}")
            else:
                parts.append(f"{self.day:02d}")
        return ".".join(parts)


@dataclass(frozen=True)
class BuildVersion:
    """Four-part version: major.minor.patch.build."""

    major: int
    minor: int
    patch: int
    build: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch", "build"):
            assert getattr(self, name) >= 0, f"{name} must be non-negative"

    @property
    def scheme(self) -> Scheme:
        return Scheme.BUILD

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.build}"


@dataclass(frozen=True)
class MonotonicVersion:
    """Single ever-increasing integer."""

    value: int

    def __post_init__(self) -> None:
        assert self.value >= 0, "value must be non-negative"

    @property
    def scheme(self) -> Scheme:
        return Scheme.MONOTONIC

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class SemanticCommitVersion:
    """major.minor.<total commit count>."""

    major: int
    minor: int
    commits: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "commits"):
            assert getattr(self, name) >= 0, f"{name} must be non-negative"

    @property
    def scheme(self) -> Scheme:
        return Scheme.SEMANTIC_COMMIT

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.commits}"


@dataclass(frozen=True)
class OpaqueVersion:
    """Timestamp, commit, datetime, pattern or custom version text.

    The bump intent has no differential effect on these schemes: the next
    value is recomputed from context (or a marker is applied for patterns).
    """

    kind: Scheme
    text: str

    @property
    def scheme(self) -> Scheme:
        return self.kind

    def __str__(self) -> str:
        return self.text


VersionValue = Union[
    SemanticVersion,
    CalverVersion,
    BuildVersion,
    MonotonicVersion,
    SemanticCommitVersion,
    OpaqueVersion,
]


# ============================================================================
# Parse / format
# ============================================================================


def _malformed(raw: str, scheme: Scheme, expected: str) -> MalformedVersion:
    return MalformedVersion(
        f"'{raw}' is not a valid {scheme.value} version (expected {expected})",
        raw=raw,
        scheme=scheme.value,
    )


def _split_ints(raw: str, scheme: Scheme, count: int, expected: str) -> Tuple[int, ...]:
    parts = raw.split(".")
    if len(parts) != count or not all(_INT_PATTERN.match(p) for p in parts):
        raise _malformed(raw, scheme, expected)
    return tuple(int(p) for p in parts)


def _parse_semantic(raw: str) -> SemanticVersion:
    match = SEMVER_PATTERN.match(raw)
    if not match:
        raise _malformed(raw, Scheme.SEMANTIC, "MAJOR.MINOR.PATCH")
    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
        build_metadata=match.group("build"),
    )


def _parse_calver(raw: str, layout: CalverLayout) -> CalverVersion:
    values = _split_ints(raw, Scheme.CALVER, len(layout.tokens), str(layout))
    fields_by_name = {
        _CALVER_TOKENS[token]: value for token, value in zip(layout.tokens, values)
    }
    month = fields_by_name["month"]
    day = fields_by_name["day"]
    if not 1 <= month <= 12 or day < 1:
        raise _malformed(raw, Scheme.CALVER, f"{layout} with month 1-12 and day >= 1")
    return CalverVersion(fields_by_name["year"], month, day, layout)


def parse_version(
    raw: str,
    scheme: Scheme,
    calver_layout: CalverLayout = DEFAULT_CALVER_LAYOUT,
) -> VersionValue:
    """Parse a raw version string under a scheme.

    Args:
        raw: Version string (surrounding whitespace is ignored).
        scheme: Scheme whose grammar applies.
        calver_layout: Field order for calendar versions.

    Returns:
        The scheme's value type.

    Raises:
        MalformedVersion: If the string does not match the scheme's grammar.
    """
    text = (raw or "").strip()
    if not text:
        raise _malformed(raw or "", scheme, "a non-empty version")
    if len(text) > MAX_VERSION_LENGTH:
        raise _malformed(text[:20] + "...", scheme, f"at most {MAX_VERSION_LENGTH} characters")

    if scheme is Scheme.SEMANTIC:
        return _parse_semantic(text)
    if scheme is Scheme.CALVER:
        return _parse_calver(text, calver_layout)
    if scheme is Scheme.BUILD:
        major, minor, patch, build = _split_ints(
            text, scheme, 4, "MAJOR.MINOR.PATCH.BUILD"
        )
        return BuildVersion(major, minor, patch, build)
    if scheme is Scheme.MONOTONIC:
        (value,) = _split_ints(text, scheme, 1, "a single non-negative integer")
        return MonotonicVersion(value)
    if scheme is Scheme.SEMANTIC_COMMIT:
        major, minor, commits = _split_ints(text, scheme, 3, "MAJOR.MINOR.COMMITS")
        return SemanticCommitVersion(major, minor, commits)
    return OpaqueVersion(scheme, text)


def format_version(value: VersionValue) -> str:
    """Render a version value; inverse of parse_version."""
    return str(value)


# ============================================================================
# Ordering
# ============================================================================


def _prerelease_key(prerelease: Optional[str]) -> Tuple:
    # A release outranks every pre-release of the same core version
    if not prerelease:
        return (1,)
    identifiers = []
    for ident in prerelease.split("."):
        if ident.isdigit():
            identifiers.append((0, int(ident), ""))
        else:
            identifiers.append((1, 0, ident))
    return (0, tuple(identifiers))


def _order_key(value: VersionValue) -> Tuple:
    if isinstance(value, SemanticVersion):
        return (value.major, value.minor, value.patch, _prerelease_key(value.prerelease))
    if isinstance(value, CalverVersion):
        return (value.year, value.month, value.day)
    if isinstance(value, BuildVersion):
        return (value.major, value.minor, value.patch, value.build)
    if isinstance(value, MonotonicVersion):
        return (value.value,)
    if isinstance(value, SemanticCommitVersion):
        return (value.major, value.minor, value.commits)
    raise IncomparableVersions(
        f"{value.scheme.value} versions have no order ('{value}')"
    )


def compare_versions(left: VersionValue, right: VersionValue) -> int:
    """Compare two versions of the same orderable scheme.

    Returns:
        -1, 0 or 1 as left is lower, equal or higher.

    Raises:
        IncomparableVersions: For opaque schemes or mixed schemes.
    """
    if left.scheme is not right.scheme:
        raise IncomparableVersions(
            f"Cannot compare a {left.scheme.value} version with a "
            f"{right.scheme.value} version"
        )
    if not left.scheme.is_orderable:
        raise IncomparableVersions(
            f"{left.scheme.value} versions have no order ('{left}' vs '{right}')"
        )
    left_key = _order_key(left)
    right_key = _order_key(right)
    if left_key < right_key:
        return -1
    if left_key > right_key:
        return 1
    return 0
