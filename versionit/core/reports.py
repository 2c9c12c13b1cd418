"""
Structured results of version-it operations.

These are what ``--structured-output`` serializes to stdout, and what the
plain-text CLI output is rendered from.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


class ErrorReport(BaseModel):
    """A failed operation."""

    success: bool = False
    error: str
    error_code: str = "VI-ERR-000"
    how_to_fix: List[str] = Field(default_factory=list)


class BumpReport(BaseModel):
    """Result of bump, next and auto-bump."""

    success: bool = True
    version: str
    previous: str
    scheme: str
    channel: str = "stable"
    bump_type: str = Field(..., description="Applied bump intent")
    dry_run: bool = False
    changed: bool = True
    message: Optional[str] = None
    planned: List[str] = Field(
        default_factory=list, description="Writes performed, or planned in dry-run mode"
    )


class CraftReport(BaseModel):
    """Result of resolving a craft template."""

    success: bool = True
    version: str
    template: str
    values: Dict[str, str] = Field(default_factory=dict)
    counters_before: Dict[str, int] = Field(default_factory=dict)
    counters: Dict[str, int] = Field(default_factory=dict)
    dry_run: bool = False
    planned: List[str] = Field(default_factory=list)


class TemplateListReport(BaseModel):
    """Available craft templates."""

    success: bool = True
    templates: List[str] = Field(default_factory=list)
    default_template: Optional[str] = None


class SubprojectResult(BaseModel):
    """Outcome for one monorepo member."""

    path: str
    success: bool
    previous: Optional[str] = None
    version: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class MonorepoReport(BaseModel):
    """Aggregate of a monorepo run; successful only if every member succeeded."""

    success: bool
    bump_type: str
    dry_run: bool = False
    results: List[SubprojectResult] = Field(default_factory=list)
    planned: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field  # type: ignore[misc]
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)
