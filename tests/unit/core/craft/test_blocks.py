"""Tests for craft blocks and their resolvers.

Tests cover:
- Block/Template construction from config mappings
- Each block type's resolver and its config validation
"""

from __future__ import annotations

from datetime import datetime

import pytest

from versionit.core.craft import Block, BlockType, CounterStore, CraftContext, Template
from versionit.core.craft.blocks import ResolvedValues, resolve_block
from versionit.core.exceptions import (
    InvalidBlockConfig,
    UnknownBlockType,
    UnresolvedReference,
)


def _resolve(raw: dict, context: CraftContext, counters: CounterStore = None, resolved: ResolvedValues = None) -> str:
    return resolve_block(
        Block.from_dict(raw), context, counters or CounterStore(), resolved or ResolvedValues()
    )


@pytest.fixture
def context(fixed_now: datetime) -> CraftContext:
    return CraftContext(
        now=fixed_now,
        current_version="1.4.2",
        commit_hash="abc1234def",
        branch="feature/login",
        build_number=None,
    )


class TestBlockFromDict:
    """Tests for building blocks from config."""

    def test_top_level_format_folded_into_config(self) -> None:
        block = Block.from_dict({"name": "d", "type": "calver", "format": "YYYY.MM"})
        assert block.type is BlockType.CALVER
        assert block.config["format"] == "YYYY.MM"

    def test_dash_type_alias(self) -> None:
        assert Block.from_dict({"name": "b", "type": "build-number"}).type is BlockType.BUILD_NUMBER

    def test_unknown_type(self) -> None:
        with pytest.raises(UnknownBlockType) as exc_info:
            Block.from_dict({"name": "x", "type": "sparkles"})
        assert exc_info.value.block == "x"

    def test_missing_name(self) -> None:
        with pytest.raises(InvalidBlockConfig):
            Block.from_dict({"type": "text", "config": {"value": "a"}})

    def test_config_must_be_mapping(self) -> None:
        with pytest.raises(InvalidBlockConfig, match="t"):
            Block.from_dict({"name": "t", "type": "text", "config": ["value"]})

    def test_block_entry_must_be_mapping(self) -> None:
        with pytest.raises(InvalidBlockConfig, match="'version'"):
            Template.from_dict({"name": "rel", "blocks": ["version"]})

    def test_blocks_must_be_list(self) -> None:
        with pytest.raises(InvalidBlockConfig, match="rel"):
            Template.from_dict({"name": "rel", "blocks": {"name": "v", "type": "text"}})

    def test_duplicate_names_rejected(self) -> None:
        block = Block("v", BlockType.TEXT, {"value": "a"})
        with pytest.raises(InvalidBlockConfig, match="duplicate"):
            Template("t", (block, block))


class TestResolvers:
    """Tests for individual block types."""

    def test_semantic_uses_current_version(self, context: CraftContext) -> None:
        assert _resolve({"name": "v", "type": "semantic"}, context) == "1.4.2"

    def test_semantic_overrides(self, context: CraftContext) -> None:
        raw = {"name": "v", "type": "semantic", "config": {"minor": 9, "patch": 0}}
        assert _resolve(raw, context) == "1.9.0"

    def test_semantic_without_version(self, fixed_now: datetime) -> None:
        assert _resolve({"name": "v", "type": "semantic"}, CraftContext(now=fixed_now)) == "0.0.0"

    def test_semantic_bad_current_version(self, fixed_now: datetime) -> None:
        context = CraftContext(now=fixed_now, current_version="not-a-version")
        with pytest.raises(InvalidBlockConfig, match="v"):
            _resolve({"name": "v", "type": "semantic"}, context)

    @pytest.mark.parametrize(
        "fmt,expected",
        [
            ("YY.MM.DD", "25.03.14"),
            ("YYYY.MM.DD", "2025.03.14"),
            ("YYYYMMDD", "20250314"),
            ("YYYY-MM", "2025-03"),
            ("DD_MM_YY", "14_03_25"),
        ],
    )
    def test_calver_formats(self, context: CraftContext, fmt: str, expected: str) -> None:
        assert _resolve({"name": "d", "type": "calver", "format": fmt}, context) == expected

    @pytest.mark.parametrize("fmt", ["YY.MM.YY", "QQ", "YY/MM", "..", "YYYY.MMM"])
    def test_calver_malformed_format(self, context: CraftContext, fmt: str) -> None:
        with pytest.raises(InvalidBlockConfig):
            _resolve({"name": "d", "type": "calver", "format": fmt}, context)

    def test_calver_field_override(self, context: CraftContext) -> None:
        raw = {"name": "d", "type": "calver", "format": "YYYY.MM", "config": {"month": 1}}
        assert _resolve(raw, context) == "2025.01"

    def test_timestamp(self, context: CraftContext) -> None:
        assert _resolve({"name": "t", "type": "timestamp"}, context) == "20250314150926"

    def test_timestamp_invalid_format(self, context: CraftContext) -> None:
        with pytest.raises(InvalidBlockConfig):
            _resolve({"name": "t", "type": "timestamp", "format": "bogus"}, context)

    def test_commit_length(self, context: CraftContext) -> None:
        raw = {"name": "c", "type": "commit", "config": {"length": 7}}
        assert _resolve(raw, context) == "abc1234"

    def test_commit_unknown(self, fixed_now: datetime) -> None:
        assert _resolve({"name": "c", "type": "commit"}, CraftContext(now=fixed_now)) == "unknown"

    def test_counter_reads_without_mutating(self, context: CraftContext) -> None:
        counters = CounterStore({"build": 5})
        raw = {"name": "b", "type": "counter", "config": {"counter": "build"}}
        assert _resolve(raw, context, counters) == "5"
        assert counters.get("build") == 5

    def test_counter_absent_is_zero(self, context: CraftContext) -> None:
        raw = {"name": "b", "type": "counter", "config": {"counter": "nothing"}}
        assert _resolve(raw, context) == "0"

    def test_counter_requires_name(self, context: CraftContext) -> None:
        with pytest.raises(InvalidBlockConfig, match="counter"):
            _resolve({"name": "b", "type": "counter"}, context)

    def test_text(self, context: CraftContext) -> None:
        assert _resolve({"name": "t", "type": "text", "config": {"value": "rc"}}, context) == "rc"

    def test_text_requires_value(self, context: CraftContext) -> None:
        with pytest.raises(InvalidBlockConfig, match="value"):
            _resolve({"name": "t", "type": "text"}, context)

    def test_date(self, context: CraftContext) -> None:
        assert _resolve({"name": "d", "type": "date"}, context) == "20250314"
        assert _resolve({"name": "d", "type": "date", "format": "%Y-%j"}, context) == "2025-073"

    def test_date_without_directive(self, context: CraftContext) -> None:
        with pytest.raises(InvalidBlockConfig):
            _resolve({"name": "d", "type": "date", "format": "YYYY"}, context)

    def test_branch(self, context: CraftContext) -> None:
        assert _resolve({"name": "b", "type": "branch"}, context) == "feature/login"
        raw = {"name": "b", "type": "branch", "config": {"sanitize": True}}
        assert _resolve(raw, context) == "feature-login"

    def test_build_number_from_context(self, fixed_now: datetime) -> None:
        context = CraftContext(now=fixed_now, build_number=88)
        assert _resolve({"name": "n", "type": "build_number"}, context) == "88"

    def test_build_number_default(self, context: CraftContext) -> None:
        assert _resolve({"name": "n", "type": "build_number"}, context) == "1"
        raw = {"name": "n", "type": "build_number", "config": {"default": 0}}
        assert _resolve(raw, context) == "0"

    def test_versioned_reads_earlier_value(self, context: CraftContext) -> None:
        resolved = ResolvedValues()
        resolved.append("base", "1.4.2")
        raw = {"name": "again", "type": "versioned", "config": {"ref": "base"}}
        assert _resolve(raw, context, resolved=resolved) == "1.4.2"

    def test_versioned_missing_reference(self, context: CraftContext) -> None:
        raw = {"name": "again", "type": "versioned", "config": {"ref": "later"}}
        with pytest.raises(UnresolvedReference) as exc_info:
            _resolve(raw, context)
        assert exc_info.value.block == "again"
        assert exc_info.value.reference == "later"

    def test_negative_int_option(self, context: CraftContext) -> None:
        raw = {"name": "v", "type": "semantic", "config": {"major": -1}}
        with pytest.raises(InvalidBlockConfig):
            _resolve(raw, context)
