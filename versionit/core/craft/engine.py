"""Craft template resolution.

Blocks are resolved strictly in declaration order in a single forward pass.
Counters are only read here; mutation goes through ``CounterStore`` before
or after resolution, never during it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from versionit.core.craft.blocks import (
    CraftContext,
    ResolvedValues,
    Template,
    resolve_block,
)
from versionit.core.craft.counters import CounterStore
from versionit.core.exceptions import InvalidBlockConfig, TemplateNotFound
from versionit.core.logging import get_logger

logger = get_logger(__name__)

# Always available; a configured template with the same name replaces one.
BUILTIN_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "semantic": {"blocks": [{"name": "version", "type": "semantic"}]},
    "calver-short": {
        "blocks": [{"name": "date", "type": "calver", "format": "YY.MM.DD"}],
    },
    "calver-long": {
        "blocks": [{"name": "date", "type": "calver", "format": "YYYY.MM.DD"}],
    },
    "timestamped": {
        "separator": "-",
        "blocks": [
            {"name": "version", "type": "semantic"},
            {"name": "timestamp", "type": "timestamp"},
        ],
    },
    "commit-based": {
        "separator": "-",
        "blocks": [
            {"name": "version", "type": "semantic"},
            {"name": "commit", "type": "commit", "config": {"length": 7}},
        ],
    },
    "build-numbered": {
        "separator": "-",
        "blocks": [
            {"name": "version", "type": "semantic"},
            {"name": "build", "type": "build_number"},
        ],
    },
}


@dataclass(frozen=True)
class CraftResult:
    """Composed version string plus every block's resolved value."""

    template: str
    composed: str
    values: Dict[str, str] = field(default_factory=dict)


def resolve_template(
    template: Template,
    counters: CounterStore,
    context: Optional[CraftContext] = None,
) -> CraftResult:
    """Resolve a template into a version string.

    Args:
        template: Template to resolve.
        counters: Counter values visible to ``counter`` blocks (read-only here).
        context: Clock and repository state; defaults to "now" with no git data.

    Returns:
        CraftResult with ``prefix + separator.join(values) + suffix``.

    Raises:
        UnknownBlockType: If a block has no resolver.
        InvalidBlockConfig: If a block's config is missing or malformed.
        UnresolvedReference: If a versioned block references a later or
            missing block.
    """
    ctx = context or CraftContext()
    resolved = ResolvedValues()

    for block in template.blocks:
        value = resolve_block(block, ctx, counters, resolved)
        resolved.append(block.name, value)
        logger.debug("Resolved block", block=block.name, type=block.type.value, value=value)

    body = template.separator.join(value for _, value in resolved.entries)
    composed = f"{template.prefix or ''}{body}{template.suffix or ''}"
    return CraftResult(template.name, composed, resolved.as_dict())


class TemplateCatalog:
    """Named craft templates plus the default selection.

    Example:
        catalog = TemplateCatalog.from_config(raw_templates, "release")
        result = catalog.resolve(None, counters, context)
    """

    def __init__(
        self,
        templates: Optional[Mapping[str, Template]] = None,
        default_template: Optional[str] = None,
    ) -> None:
        self._templates: Dict[str, Template] = dict(templates or {})
        self.default_template = default_template

    @classmethod
    def from_config(
        cls,
        raw_templates: Optional[Mapping[str, Any]],
        default_template: Optional[str] = None,
        include_builtins: bool = True,
    ) -> "TemplateCatalog":
        """Build templates from the ``templates`` config mapping.

        Each entry is keyed by template name; the name inside the entry, if
        any, is ignored in favour of the key.
        """
        merged: Dict[str, Any] = dict(BUILTIN_TEMPLATES) if include_builtins else {}
        merged.update(raw_templates or {})

        templates: Dict[str, Template] = {}
        for name, raw in merged.items():
            if raw is not None and not isinstance(raw, Mapping):
                raise InvalidBlockConfig(str(name), "template entries must be mappings")
            entry = dict(raw or {})
            entry["name"] = str(name)
            templates[str(name)] = Template.from_dict(entry)
        return cls(templates, default_template)

    def names(self) -> List[str]:
        return sorted(self._templates)

    def get(self, name: Optional[str] = None) -> Template:
        """Look up a template, falling back to the default.

        Raises:
            TemplateNotFound: If neither the name nor a default resolves.
        """
        selected = name or self.default_template
        if not selected:
            raise TemplateNotFound(
                "No template given and no 'default-template' configured "
                f"(available: {', '.join(self.names()) or 'none'})"
            )
        template = self._templates.get(selected)
        if template is None:
            raise TemplateNotFound(
                f"Template '{selected}' not found "
                f"(available: {', '.join(self.names()) or 'none'})"
            )
        return template

    def resolve(
        self,
        name: Optional[str],
        counters: CounterStore,
        context: Optional[CraftContext] = None,
    ) -> CraftResult:
        return resolve_template(self.get(name), counters, context)

    def __len__(self) -> int:
        return len(self._templates)
