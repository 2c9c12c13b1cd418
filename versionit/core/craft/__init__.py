"""Craft Module.

Composes custom version strings from ordered, typed blocks.
"""

from versionit.core.craft.blocks import (
    Block,
    BlockType,
    CraftContext,
    Template,
)
from versionit.core.craft.counters import CounterStore, parse_counter_assignment
from versionit.core.craft.engine import CraftResult, TemplateCatalog, resolve_template

__all__ = [
    "Block",
    "BlockType",
    "CraftContext",
    "Template",
    "CounterStore",
    "parse_counter_assignment",
    "CraftResult",
    "TemplateCatalog",
    "resolve_template",
]
