"""Craft building blocks.

A template is an ordered list of named, typed blocks. Each block type has a
resolver that turns the block's config, the craft context and the values
already resolved earlier in the template into one string segment.

Block config keys
-----------------
    semantic      major, minor, patch   (override parts of the current version)
    calver        format (YY.MM.DD default; YYYY, YY, MM, DD joined by . - _
                  or nothing), year, month, day
    timestamp     format (YYYYMMDDHHMMSS default, unix, unix_ms, iso, strftime)
    commit        length
    counter       counter (required: name of the counter to read)
    text          value (required)
    date          format (strftime, %Y%m%d default)
    branch        sanitize (replace '/' with '-')
    build_number  default (used when no build number is supplied, 1)
    versioned     ref (required: name of an earlier block)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from versionit.core.craft.counters import CounterStore
from versionit.core.exceptions import (
    InvalidBlockConfig,
    MalformedVersion,
    UnknownBlockType,
    UnresolvedReference,
)
from versionit.core.versioning.bumper import format_timestamp, validate_timestamp_format
from versionit.core.versioning.types import Scheme
from versionit.core.versioning.values import SemanticVersion, parse_version


class BlockType(str, Enum):
    """Kinds of craft blocks."""

    SEMANTIC = "semantic"
    CALVER = "calver"
    TIMESTAMP = "timestamp"
    COMMIT = "commit"
    COUNTER = "counter"
    TEXT = "text"
    DATE = "date"
    BRANCH = "branch"
    BUILD_NUMBER = "build_number"
    VERSIONED = "versioned"


@dataclass(frozen=True)
class Block:
    """One named, typed segment of a template."""

    name: str
    type: BlockType
    config: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Block":
        """Build a block from a config mapping.

        A top-level ``format`` key is folded into ``config``.

        Raises:
            InvalidBlockConfig: If the name or config mapping is missing/invalid.
            UnknownBlockType: If the type is not a known block type.
        """
        if not isinstance(raw, Mapping):
            raise InvalidBlockConfig(str(raw), "block entries must be mappings with name and type")
        name = str(raw.get("name") or "").strip()
        if not name:
            raise InvalidBlockConfig("(unnamed)", "every block needs a 'name'")

        type_name = str(raw.get("type") or "").strip().lower().replace("-", "_")
        try:
            block_type = BlockType(type_name)
        except ValueError:
            raise UnknownBlockType(name, type_name or "(missing)") from None

        config = raw.get("config") or {}
        if not isinstance(config, Mapping):
            raise InvalidBlockConfig(name, "'config' must be a mapping")
        merged = dict(config)
        if "format" in raw and "format" not in merged:
            merged["format"] = raw["format"]
        return cls(name, block_type, merged)


@dataclass(frozen=True)
class Template:
    """Ordered composition of blocks with prefix, separator and suffix."""

    name: str
    blocks: Tuple[Block, ...] = ()
    separator: str = "."
    prefix: Optional[str] = None
    suffix: Optional[str] = None

    def __post_init__(self) -> None:
        seen = set()
        for block in self.blocks:
            if block.name in seen:
                raise InvalidBlockConfig(
                    block.name, f"duplicate block name in template '{self.name}'"
                )
            seen.add(block.name)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Template":
        name = str(raw.get("name") or "").strip()
        raw_blocks = raw.get("blocks") or []
        if not isinstance(raw_blocks, list):
            raise InvalidBlockConfig(name or "(unnamed)", "'blocks' must be a list")
        blocks = tuple(Block.from_dict(b) for b in raw_blocks)
        separator = raw.get("separator")
        return cls(
            name=name,
            blocks=blocks,
            separator="." if separator is None else str(separator),
            prefix=None if raw.get("prefix") is None else str(raw["prefix"]),
            suffix=None if raw.get("suffix") is None else str(raw["suffix"]),
        )


@dataclass(frozen=True)
class CraftContext:
    """Clock and repository state visible to blocks."""

    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    current_version: Optional[str] = None
    commit_hash: Optional[str] = None
    branch: Optional[str] = None
    build_number: Optional[int] = None


@dataclass
class ResolvedValues:
    """Append-only list of resolved block values with a name index.

    Blocks can only look up names already appended, so references always
    point backwards and cycles cannot be expressed.
    """

    entries: List[Tuple[str, str]] = field(default_factory=list)
    index: Dict[str, int] = field(default_factory=dict)

    def append(self, name: str, value: str) -> None:
        self.index[name] = len(self.entries)
        self.entries.append((name, value))

    def lookup(self, name: str) -> Optional[str]:
        position = self.index.get(name)
        if position is None:
            return None
        return self.entries[position][1]

    def as_dict(self) -> Dict[str, str]:
        return dict(self.entries)


# ============================================================================
# Config helpers
# ============================================================================


def _int_option(block: Block, key: str, default: Optional[int] = None) -> Optional[int]:
    raw = block.config.get(key)
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise InvalidBlockConfig(block.name, f"'{key}' must be a non-negative integer")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidBlockConfig(
            block.name, f"'{key}' must be a non-negative integer, got {raw!r}"
        ) from None
    if value < 0:
        raise InvalidBlockConfig(block.name, f"'{key}' must be non-negative, got {value}")
    return value


def _required_str(block: Block, key: str) -> str:
    raw = block.config.get(key)
    if raw is None or str(raw) == "":
        raise InvalidBlockConfig(block.name, f"missing required config key '{key}'")
    return str(raw)


_CALVER_FORMAT_TOKEN = re.compile(r"YYYY|YY|MM|DD|[._-]")


def _calver_tokens(block: Block, fmt: str) -> List[str]:
    tokens: List[str] = []
    position = 0
    while position < len(fmt):
        match = _CALVER_FORMAT_TOKEN.match(fmt, position)
        if not match:
            raise InvalidBlockConfig(block.name, f"malformed calver format '{fmt}'")
        tokens.append(match.group(0))
        position = match.end()

    fields_used = [t[0] for t in tokens if t[0] in "YMD"]
    if not fields_used or len(fields_used) != len(set(fields_used)):
        raise InvalidBlockConfig(block.name, f"malformed calver format '{fmt}'")
    return tokens


# ============================================================================
# Resolvers
# ============================================================================

Resolver = Callable[[Block, CraftContext, CounterStore, ResolvedValues], str]


def _resolve_semantic(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    base_text = context.current_version or "0.0.0"
    try:
        base = parse_version(base_text, Scheme.SEMANTIC)
    except MalformedVersion as e:
        raise InvalidBlockConfig(block.name, str(e)) from e
    assert isinstance(base, SemanticVersion)
    version = SemanticVersion(
        major=_int_option(block, "major", base.major),
        minor=_int_option(block, "minor", base.minor),
        patch=_int_option(block, "patch", base.patch),
        prerelease=base.prerelease,
        build_metadata=base.build_metadata,
    )
    return str(version)


def _resolve_calver(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    fmt = str(block.config.get("format") or "YY.MM.DD")
    tokens = _calver_tokens(block, fmt)
    year = _int_option(block, "year", context.now.year)
    month = _int_option(block, "month", context.now.month)
    day = _int_option(block, "day", context.now.day)

    parts = []
    for token in tokens:
        if token == "YYYY":
            parts.append(f"{year:04d}")
        elif token == "YY":
            parts.append(f"{year % 100:02d}")
        elif token == "MM":
            parts.append(f"{month:02d}")
        elif token == "DD":
            parts.append(f"{day:02d}")
        else:
            parts.append(token)
    return "".join(parts)


def _resolve_timestamp(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    fmt = str(block.config.get("format") or "YYYYMMDDHHMMSS")
    try:
        validate_timestamp_format(fmt)
    except ValueError as e:
        raise InvalidBlockConfig(block.name, str(e)) from e
    return format_timestamp(context.now, fmt)


def _resolve_commit(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    commit = context.commit_hash or "unknown"
    length = _int_option(block, "length")
    if length:
        return commit[:length]
    return commit


def _resolve_counter(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    return str(counters.get(_required_str(block, "counter")))


def _resolve_text(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    return _required_str(block, "value")


def _resolve_date(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    fmt = str(block.config.get("format") or "%Y%m%d")
    if "%" not in fmt:
        raise InvalidBlockConfig(block.name, f"date format '{fmt}' has no strftime directive")
    return context.now.strftime(fmt)


def _resolve_branch(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    branch = context.branch or "unknown"
    if block.config.get("sanitize"):
        branch = branch.replace("/", "-")
    return branch


def _resolve_build_number(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    if context.build_number is not None:
        return str(context.build_number)
    return str(_int_option(block, "default", 1))


def _resolve_versioned(
    block: Block, context: CraftContext, counters: CounterStore, resolved: ResolvedValues
) -> str:
    reference = _required_str(block, "ref")
    value = resolved.lookup(reference)
    if value is None:
        raise UnresolvedReference(block.name, reference)
    return value


RESOLVERS: Dict[BlockType, Resolver] = {
    BlockType.SEMANTIC: _resolve_semantic,
    BlockType.CALVER: _resolve_calver,
    BlockType.TIMESTAMP: _resolve_timestamp,
    BlockType.COMMIT: _resolve_commit,
    BlockType.COUNTER: _resolve_counter,
    BlockType.TEXT: _resolve_text,
    BlockType.DATE: _resolve_date,
    BlockType.BRANCH: _resolve_branch,
    BlockType.BUILD_NUMBER: _resolve_build_number,
    BlockType.VERSIONED: _resolve_versioned,
}


def resolve_block(
    block: Block,
    context: CraftContext,
    counters: CounterStore,
    resolved: ResolvedValues,
) -> str:
    """Compute one block's value.

    Raises:
        UnknownBlockType: If no resolver exists for the block type.
        InvalidBlockConfig: If the block's config is missing or malformed.
        UnresolvedReference: If a versioned block points forward or nowhere.
    """
    resolver = RESOLVERS.get(block.type)
    if resolver is None:
        raise UnknownBlockType(block.name, str(block.type))
    return resolver(block, context, counters, resolved)
