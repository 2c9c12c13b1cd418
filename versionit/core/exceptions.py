"""
Centralized Exception Hierarchy for version-it.

All exceptions inherit from VersionItError so callers (the CLI, monorepo
batch processing) can catch every domain failure in one place.

Each exception carries:
- error_code: Unique identifier for documentation lookup (e.g., "VI-VER-001")
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue

Exception Hierarchy
-------------------
    VersionItError (base)
    ├── VersionError
    │   ├── MalformedVersion
    │   ├── IncomparableVersions
    │   ├── UnsupportedBump
    │   └── BumpContextError
    ├── ClassificationError
    │   ├── BranchNotEligible
    │   └── InvalidRuleError
    ├── CraftError
    │   ├── UnknownBlockType
    │   ├── InvalidBlockConfig
    │   ├── UnresolvedReference
    │   ├── TemplateNotFound
    │   └── InvalidCounterValue
    ├── ConfigurationError
    ├── PersistenceError
    └── GitOperationError
"""

import builtins
from typing import Any, List, Optional


def get_root_cause(exc: BaseException) -> BaseException:
    """Extract the root cause from a chain of exceptions.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


class VersionItError(Exception):
    """
    Base exception for all version-it errors.

    Example
    -------
        try:
            outcome = orchestrator.bump(request)
        except VersionItError as e:
            logger.error(f"Bump failed: {e}")
            print(f"Fix: {e.how_to_fix}")
    """

    error_code: str = "VI-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        """Initialize VersionItError with helpful information.

        Args:
            message: Human-readable error message
            error_code: Unique identifier (e.g., "VI-VER-001")
            why_it_happened: Explanation of root cause
            how_to_fix: List of actionable fix suggestions
        """
        super().__init__(message)

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)


# ============================================================================
# Version Exceptions
# ============================================================================


class VersionError(VersionItError):
    """Base exception for version parsing, ordering and bumping."""

    error_code = "VI-VER-000"
    why_it_happened = "A version could not be processed"
    how_to_fix = ["Check the version string and the versioning scheme"]


class MalformedVersion(VersionError):
    """
    Raised when a version string does not match its scheme's grammar.

    Example
    -------
        parse_version("1.2", Scheme.SEMANTIC)
        # Raises: MalformedVersion("'1.2' is not a valid semantic version ...")
    """

    error_code = "VI-VER-001"
    why_it_happened = (
        "The current version does not have the shape the declared "
        "versioning scheme expects"
    )
    how_to_fix = [
        "Pass a correct value with --version",
        "Check 'first-version' or the current version file in the config",
        "Check that 'versioning-scheme' matches the stored version",
    ]

    def __init__(self, message: str, raw: str = "", scheme: str = "") -> None:
        super().__init__(message)
        self.raw = raw
        self.scheme = scheme


class IncomparableVersions(VersionError):
    """Raised when ordering is requested on opaque-string schemes."""

    error_code = "VI-VER-002"
    why_it_happened = (
        "Only semantic, calver, build, monotonic and semantic_commit versions "
        "have a defined order"
    )
    how_to_fix = ["Compare versions of the same orderable scheme"]


class UnsupportedBump(VersionError):
    """Raised when a scheme disallows a bump intent."""

    error_code = "VI-VER-003"
    why_it_happened = "The versioning scheme does not accept this bump type"
    how_to_fix = ["Use a bump type the scheme supports"]


class BumpContextError(VersionError):
    """Raised when a scheme needs bump context that was not supplied."""

    error_code = "VI-VER-004"
    why_it_happened = (
        "The scheme derives part of the version from repository state "
        "(such as the commit count) that was not available"
    )
    how_to_fix = [
        "Run inside a git repository",
        "Check that git is installed and on PATH",
    ]


# ============================================================================
# Classification Exceptions
# ============================================================================


class ClassificationError(VersionItError):
    """Base exception for commit classification."""

    error_code = "VI-CLS-000"
    why_it_happened = "Commit history could not be classified"
    how_to_fix = ["Check 'change-type-map' in the config"]


class BranchNotEligible(ClassificationError):
    """Raised when auto-bump runs on a branch not in run-on-branches."""

    error_code = "VI-CLS-001"
    why_it_happened = "The current branch is not listed in 'run-on-branches'"
    how_to_fix = [
        "Run auto-bump from one of the configured branches",
        "Add the branch to 'run-on-branches'",
    ]

    def __init__(self, branch: str, allowed: Optional[List[str]] = None) -> None:
        allowed_list = sorted(allowed or [])
        super().__init__(
            f"Branch '{branch}' is not eligible for auto-bump "
            f"(allowed: {', '.join(allowed_list)})"
        )
        self.branch = branch
        self.allowed = allowed_list


class InvalidRuleError(ClassificationError):
    """Raised when a change-type rule carries an invalid pattern."""

    error_code = "VI-CLS-002"
    why_it_happened = "A 'change-type-map' entry has an invalid regular expression"
    how_to_fix = ["Fix the 'pattern' of the named rule"]


# ============================================================================
# Craft Exceptions
# ============================================================================


class CraftError(VersionItError):
    """Base exception for craft template resolution."""

    error_code = "VI-CRF-000"
    why_it_happened = "The craft template could not be resolved"
    how_to_fix = ["Check the template definition"]


class UnknownBlockType(CraftError):
    """Raised when a block declares a type that does not exist."""

    error_code = "VI-CRF-001"
    why_it_happened = "A template block declares an unknown block type"
    how_to_fix = [
        "Use one of: semantic, calver, timestamp, commit, counter, text, "
        "date, branch, build_number, versioned",
    ]

    def __init__(self, block: str, block_type: str) -> None:
        super().__init__(f"Block '{block}' has unknown type '{block_type}'")
        self.block = block
        self.block_type = block_type


class InvalidBlockConfig(CraftError):
    """Raised when a block's configuration is missing or malformed."""

    error_code = "VI-CRF-002"
    why_it_happened = "A template block has a missing or invalid configuration key"
    how_to_fix = ["Check the 'config' mapping of the named block"]

    def __init__(self, block: str, detail: str) -> None:
        super().__init__(f"Block '{block}': {detail}")
        self.block = block


class UnresolvedReference(CraftError):
    """Raised when a versioned block references a block not yet resolved."""

    error_code = "VI-CRF-003"
    why_it_happened = (
        "A 'versioned' block may only reference blocks defined earlier "
        "in the same template"
    )
    how_to_fix = [
        "Move the referenced block before the versioned block",
        "Check the spelling of the referenced block name",
    ]

    def __init__(self, block: str, reference: str) -> None:
        super().__init__(
            f"Block '{block}' references '{reference}', which is not defined "
            "earlier in the template"
        )
        self.block = block
        self.reference = reference


class TemplateNotFound(CraftError):
    """Raised when the requested craft template does not exist."""

    error_code = "VI-CRF-004"
    why_it_happened = "No template with that name is configured"
    how_to_fix = [
        "List templates with: version-it craft --list-templates",
        "Set 'default-template' in the template file",
    ]


class InvalidCounterValue(CraftError):
    """Raised when a counter is set to a non-numeric or negative value."""

    error_code = "VI-CRF-005"
    why_it_happened = "Counters hold non-negative integers only"
    how_to_fix = ["Use the form NAME:VALUE with VALUE >= 0, e.g. build:10"]


# ============================================================================
# Configuration / Collaborator Exceptions
# ============================================================================


class ConfigurationError(VersionItError):
    """
    Raised when configuration is missing or invalid.

    Attributes
    ----------
    field : str
        The configuration field that failed validation
    value : any
        The invalid value
    """

    error_code = "VI-CFG-001"
    why_it_happened = "The version-it configuration is missing or invalid"
    how_to_fix = [
        "Check the .version-it file for YAML syntax errors",
        "Verify the value type matches what's expected",
    ]

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class PersistenceError(VersionItError):
    """Raised when writing a version file, header or package file fails."""

    error_code = "VI-IO-001"
    why_it_happened = "An output file could not be read or written"
    how_to_fix = [
        "Check the path exists and is writable",
        "Run with --dry-run to see the planned writes",
    ]


class GitOperationError(VersionItError):
    """Raised when a git commit or tag operation fails."""

    error_code = "VI-GIT-001"
    why_it_happened = "A git command returned a non-zero exit status"
    how_to_fix = [
        "Check the repository is clean and the tag does not already exist",
        "Check that git is installed and on PATH",
    ]


# ============================================================================
# Error Info Lookup
# ============================================================================


STANDARD_ERROR_INFO: dict[type, dict[str, Any]] = {
    builtins.FileNotFoundError: {
        "error_code": "VI-IO-002",
        "why_it_happened": "A referenced file does not exist",
        "how_to_fix": ["Check the path in the config or on the command line"],
    },
    builtins.PermissionError: {
        "error_code": "VI-IO-003",
        "why_it_happened": "The process lacks permission for a file",
        "how_to_fix": ["Check file ownership and permissions"],
    },
}


def get_error_info(exc: BaseException) -> dict[str, Any]:
    """Get error code, explanation and fixes for any exception.

    Args:
        exc: Exception to describe

    Returns:
        Dictionary with error_code, why_it_happened and how_to_fix
    """
    if isinstance(exc, VersionItError):
        return {
            "error_code": exc.error_code,
            "why_it_happened": exc.why_it_happened,
            "how_to_fix": list(exc.how_to_fix),
        }
    for exc_type, info in STANDARD_ERROR_INFO.items():
        if isinstance(exc, exc_type):
            return dict(info)
    return {
        "error_code": "VI-ERR-999",
        "why_it_happened": "An unexpected error occurred",
        "how_to_fix": ["Run with --verbose for more information"],
    }
