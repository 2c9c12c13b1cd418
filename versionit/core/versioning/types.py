"""Scheme, bump intent and release channel types.

These closed variants drive every dispatch in the versioning engine:
parsing and formatting switch on Scheme, bumping switches on Scheme and
BumpIntent, and the channel modifier switches on ChannelKind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Scheme(str, Enum):
    """Versioning strategy governing a version's shape and bump rules."""

    SEMANTIC = "semantic"
    CALVER = "calver"
    TIMESTAMP = "timestamp"
    COMMIT = "commit"
    BUILD = "build"
    MONOTONIC = "monotonic"
    DATETIME = "datetime"
    PATTERN = "pattern"
    SEMANTIC_COMMIT = "semantic_commit"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "Scheme":
        """Parse a scheme name, accepting '-' in place of '_'.

        Raises:
            ValueError: If the name is not a known scheme.
        """
        normalized = value.strip().lower().replace("-", "_")
        for scheme in cls:
            if scheme.value == normalized:
                return scheme
        valid = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown versioning scheme '{value}' (valid: {valid})")

    @property
    def is_orderable(self) -> bool:
        """Whether versions of this scheme have a total order."""
        return self in _ORDERABLE


_ORDERABLE = frozenset(
    {
        Scheme.SEMANTIC,
        Scheme.CALVER,
        Scheme.BUILD,
        Scheme.MONOTONIC,
        Scheme.SEMANTIC_COMMIT,
    }
)


class BumpIntent(Enum):
    """Requested magnitude of change.

    Totally ordered: NONE < PATCH < MINOR < MAJOR.
    """

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        """Position in the total order."""
        return _INTENT_RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, BumpIntent):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, BumpIntent):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, BumpIntent):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, BumpIntent):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str) -> "BumpIntent":
        """Parse a bump name; 'null' is accepted as an alias of 'none'.

        Raises:
            ValueError: If the name is not a known bump type.
        """
        normalized = value.strip().lower()
        if normalized == "null":
            return cls.NONE
        for intent in cls:
            if intent.value == normalized:
                return intent
        raise ValueError(
            f"Invalid bump type '{value}' (valid: major, minor, patch, none)"
        )


_INTENT_RANKS = {
    BumpIntent.NONE: 0,
    BumpIntent.PATCH: 1,
    BumpIntent.MINOR: 2,
    BumpIntent.MAJOR: 3,
}


class ChannelKind(Enum):
    """Release track families."""

    STABLE = "stable"
    BETA = "beta"
    NIGHTLY = "nightly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ReleaseChannel:
    """A release-track modifier applied after the base bump.

    ``label`` is the text appended for custom channels (``rc``, ``alpha``...).
    """

    kind: ChannelKind
    label: str

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReleaseChannel":
        """Parse a channel name; empty or missing means stable."""
        if value is None or not value.strip():
            return STABLE
        label = value.strip()
        lowered = label.lower()
        for kind in (ChannelKind.STABLE, ChannelKind.BETA, ChannelKind.NIGHTLY):
            if kind.value == lowered:
                return cls(kind, kind.value)
        return cls(ChannelKind.CUSTOM, label)

    @property
    def is_stable(self) -> bool:
        return self.kind is ChannelKind.STABLE

    def __str__(self) -> str:
        return self.label


STABLE = ReleaseChannel(ChannelKind.STABLE, "stable")
