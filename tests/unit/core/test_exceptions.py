"""
Tests for Exception Hierarchy.

All version-it exceptions inherit from VersionItError and carry an error
code, an explanation and fix suggestions.

Organization
------------
- TestBaseException: VersionItError
- TestVersionExceptions: MalformedVersion, BumpContextError, ...
- TestCraftExceptions: block and template errors
- TestErrorInfo: get_error_info / get_root_cause
"""

import pytest

from versionit.core.exceptions import (
    BranchNotEligible,
    BumpContextError,
    ClassificationError,
    ConfigurationError,
    CraftError,
    GitOperationError,
    InvalidBlockConfig,
    InvalidCounterValue,
    MalformedVersion,
    PersistenceError,
    TemplateNotFound,
    UnknownBlockType,
    UnresolvedReference,
    VersionError,
    VersionItError,
    get_error_info,
    get_root_cause,
)


class TestBaseException:
    """Tests for VersionItError base exception."""

    def test_message(self):
        error = VersionItError("test error")

        assert str(error) == "test error"
        assert error.user_message == "test error"
        assert error.error_code == "VI-ERR-000"

    def test_custom_attributes(self):
        """Per-instance overrides do not leak into the class defaults."""
        error = VersionItError(
            "custom", error_code="VI-X-001", why_it_happened="Because", how_to_fix=["a", "b"]
        )

        assert error.error_code == "VI-X-001"
        assert error.why_it_happened == "Because"
        assert error.how_to_fix == ["a", "b"]
        assert VersionItError.error_code == "VI-ERR-000"

    @pytest.mark.parametrize(
        "error",
        [
            MalformedVersion("bad"),
            BranchNotEligible("topic", ["main"]),
            UnknownBlockType("b", "nope"),
            ConfigurationError("bad config"),
            PersistenceError("disk"),
            GitOperationError("git"),
        ],
    )
    def test_catchable_as_base(self, error):
        with pytest.raises(VersionItError):
            raise error


class TestVersionExceptions:
    """Tests for version parsing and bumping errors."""

    def test_malformed_version_keeps_input(self):
        error = MalformedVersion("'1.2' is not valid", raw="1.2", scheme="semantic")

        assert isinstance(error, VersionError)
        assert error.error_code == "VI-VER-001"
        assert (error.raw, error.scheme) == ("1.2", "semantic")

    def test_bump_context_error_suggests_git(self):
        fixes = " ".join(BumpContextError("no commit count").how_to_fix).lower()
        assert "git" in fixes

    def test_branch_not_eligible_message(self):
        error = BranchNotEligible("feature/x", ["release", "main"])

        assert isinstance(error, ClassificationError)
        assert error.branch == "feature/x"
        assert error.allowed == ["main", "release"]
        assert str(error) == "Branch 'feature/x' is not eligible for auto-bump (allowed: main, release)"


class TestCraftExceptions:
    """Tests for craft errors."""

    def test_unknown_block_type(self):
        error = UnknownBlockType("stamp", "clock")

        assert isinstance(error, CraftError)
        assert error.error_code == "VI-CRF-001"
        assert "stamp" in str(error) and "clock" in str(error)

    def test_invalid_block_config_names_block(self):
        error = InvalidBlockConfig("build", "missing required config key 'counter'")
        assert str(error) == "Block 'build': missing required config key 'counter'"

    def test_unresolved_reference(self):
        error = UnresolvedReference("echo", "later")

        assert error.error_code == "VI-CRF-003"
        assert (error.block, error.reference) == ("echo", "later")

    def test_distinct_codes(self):
        codes = {
            TemplateNotFound("x").error_code,
            InvalidCounterValue("x").error_code,
            InvalidBlockConfig("b", "x").error_code,
        }
        assert codes == {"VI-CRF-004", "VI-CRF-005", "VI-CRF-002"}

    def test_configuration_error_field(self):
        error = ConfigurationError("bad scheme", field="versioning-scheme", value="roman")

        assert error.field == "versioning-scheme"
        assert error.value == "roman"


class TestErrorInfo:
    """Tests for get_error_info and get_root_cause."""

    def test_domain_error_info(self):
        info = get_error_info(TemplateNotFound("Template 'x' not found"))

        assert info["error_code"] == "VI-CRF-004"
        assert any("--list-templates" in fix for fix in info["how_to_fix"])

    def test_standard_error_info(self):
        assert get_error_info(FileNotFoundError("gone"))["error_code"] == "VI-IO-002"
        assert get_error_info(PermissionError("no"))["error_code"] == "VI-IO-003"

    def test_unknown_error_fallback(self):
        info = get_error_info(RuntimeError("boom"))
        assert info["error_code"] == "VI-ERR-999"

    def test_root_cause_single(self):
        error = ValueError("only")
        assert get_root_cause(error) is error

    def test_root_cause_chained(self):
        root = ValueError("root")
        try:
            try:
                raise root
            except ValueError as e:
                raise ConfigurationError("wrapped") from e
        except ConfigurationError as wrapped:
            assert get_root_cause(wrapped) is root

    def test_root_cause_cycle(self):
        first = ValueError("a")
        second = ValueError("b")
        first.__cause__ = second
        second.__cause__ = first
        assert get_root_cause(first) in (first, second)
