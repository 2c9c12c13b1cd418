"""Version orchestration.

Ties configuration, the git data source, the versioning engines and the
persistence layer together for each CLI operation:

    preview      current -> bump -> channel                      (no writes)
    bump         preview + version file/headers/manifests/state  (session)
    auto_bump    git log -> classifier -> bump
    craft        counter mutations -> template resolution        (session)
    monorepo     bump per subproject, failures isolated

Every write goes through one ``ReleaseSession`` per invocation, so
``dry_run`` is checked in a single place.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from versionit.core.config.loaders import load_config
from versionit.core.config.models import CraftSettings, VersionItConfig
from versionit.core.craft.blocks import CraftContext
from versionit.core.craft.counters import CounterStore, parse_counter_assignment
from versionit.core.craft.engine import TemplateCatalog
from versionit.core.exceptions import (
    BranchNotEligible,
    MalformedVersion,
    VersionItError,
)
from versionit.core.git import GitRepository
from versionit.core.logging import get_logger
from versionit.core.persistence import (
    ReleaseSession,
    load_channel_state,
    load_counters,
    plan_channel_state,
    plan_counters,
    plan_version_outputs,
    read_current_version,
)
from versionit.core.render import build_render_context
from versionit.core.reports import (
    BumpReport,
    CraftReport,
    MonorepoReport,
    SubprojectResult,
    TemplateListReport,
)
from versionit.core.versioning.bumper import (
    BumpContext,
    ChannelEntry,
    apply_channel,
    bump_version,
)
from versionit.core.versioning.classifier import check_branch, classify_commits
from versionit.core.versioning.types import (
    BumpIntent,
    ChannelKind,
    ReleaseChannel,
    Scheme,
)
from versionit.core.versioning.values import parse_version

logger = get_logger(__name__)

BUILD_NUMBER_ENV = "BUILD_NUMBER"
_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class BumpRequest:
    """Inputs of a bump/next/auto-bump invocation; None means "from config"."""

    intent: BumpIntent = BumpIntent.PATCH
    version: Optional[str] = None
    scheme: Optional[Scheme] = None
    channel: Optional[ReleaseChannel] = None
    dry_run: bool = False
    commit: bool = False
    create_tag: bool = False


@dataclass(frozen=True)
class ComputedVersion:
    """A next version before anything is written."""

    previous: str
    version: str
    scheme: Scheme
    channel: ReleaseChannel
    intent: BumpIntent
    channel_entry: Optional[ChannelEntry] = None


@dataclass(frozen=True)
class CraftRequest:
    template: Optional[str] = None
    increment_counter: Optional[str] = None
    set_counter: Optional[str] = None
    dry_run: bool = False


class VersionOrchestrator:
    """Runs version operations for one project directory.

    Args:
        config: Loaded project configuration.
        git: Git data source; created lazily for config.base_dir if omitted.
        craft_settings: Template settings (defaults to the config's own).
        now: Fixed clock for reproducible output (defaults to current UTC time).
    """

    def __init__(
        self,
        config: VersionItConfig,
        git: Optional[GitRepository] = None,
        craft_settings: Optional[CraftSettings] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.config = config
        self._git = git
        self.craft_settings = craft_settings or config.craft
        self._now = now

    @property
    def git(self) -> GitRepository:
        if self._git is None:
            self._git = GitRepository(self.config.base_dir)
        return self._git

    @property
    def now(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def _bump_context(self, scheme: Scheme, channel: ReleaseChannel) -> BumpContext:
        """Fetch only the git data the scheme and channel actually use.

        Rule #4: Helper function.
        """
        nightly_commit = (
            channel.kind is ChannelKind.NIGHTLY
            and self.config.bump_settings.nightly_scheme is Scheme.COMMIT
        )
        commit_hash = None
        if scheme is Scheme.COMMIT or nightly_commit:
            commit_hash = self.git.commit_hash()
        commit_count = None
        if scheme is Scheme.SEMANTIC_COMMIT:
            commit_count = self.git.commit_count()
        return BumpContext(now=self.now, commit_hash=commit_hash, commit_count=commit_count)

    def compute(self, request: BumpRequest, current: Optional[str] = None) -> ComputedVersion:
        """Compute the next version without side effects.

        Args:
            request: Bump inputs.
            current: Current version override (auto-bump passes the tag version).

        Raises:
            MalformedVersion: If the current version does not fit the scheme.
            BumpContextError: If git data the scheme needs is unavailable.
            CraftError: For the custom scheme, if the default template fails.
        """
        scheme = request.scheme or self.config.versioning_scheme
        channel = request.channel or self.config.channel
        previous = request.version or current or read_current_version(self.config)

        if scheme is Scheme.CUSTOM:
            result = self._catalog().resolve(None, self._load_counters(), self._craft_context())
            return ComputedVersion(previous, result.composed, scheme, channel, request.intent)

        value = parse_version(previous, scheme, self.config.calver_layout)
        context = self._bump_context(scheme, channel)
        # Nightly builds replace the whole version, so the bump table is skipped.
        if channel.kind is not ChannelKind.NIGHTLY:
            value = bump_version(value, request.intent, context, self.config.bump_settings)

        state = None
        if channel.kind is ChannelKind.BETA:
            state = load_channel_state(self.config.resolve_path(self.config.state_file))
        result = apply_channel(value, channel, context, self.config.bump_settings, state)
        return ComputedVersion(
            previous, result.version, scheme, channel, request.intent, result.entry
        )

    def preview(self, request: BumpRequest) -> BumpReport:
        """The ``next`` operation: same computation as bump, never writes."""
        computed = self.compute(request)
        return self._report(computed, dry_run=True, planned=[])

    def bump(self, request: BumpRequest, current: Optional[str] = None) -> BumpReport:
        """Compute the next version and write it out (or plan it in dry-run)."""
        computed = self.compute(request, current)
        session = ReleaseSession(dry_run=request.dry_run)
        self._plan_release(session, computed, request)
        planned = session.flush()
        logger.info(
            "Version bumped" if not request.dry_run else "Dry run",
            previous=computed.previous,
            version=computed.version,
            scheme=computed.scheme.value,
        )
        return self._report(computed, dry_run=request.dry_run, planned=planned)

    def _plan_release(
        self, session: ReleaseSession, computed: ComputedVersion, request: BumpRequest
    ) -> None:
        render_context: Dict[str, str] = {}
        if self.config.version_headers:
            render_context = build_render_context(
                computed.version,
                computed.scheme.value,
                str(computed.channel),
                self.config.base_dir,
                git=self.git,
                enable_expensive_metrics=self.config.enable_expensive_metrics,
                now=self.now,
            )
        plan_version_outputs(session, self.config, computed.version, render_context)

        if computed.channel_entry is not None:
            state_path = self.config.resolve_path(self.config.state_file)
            state = load_channel_state(state_path)
            state.record(
                computed.channel.label,
                computed.channel_entry.base,
                computed.channel_entry.number,
            )
            plan_channel_state(session, state_path, state)

        if request.commit:
            message = f"Bump version to {computed.version}"
            session.plan_action(
                f"Commit changes with message '{message}'",
                lambda: self.git.commit_all(message),
            )
        if request.create_tag:
            tag = computed.version
            session.plan_action(
                f"Create git tag '{tag}'", lambda: self.git.create_tag(tag)
            )

    def _report(
        self, computed: ComputedVersion, dry_run: bool, planned: List[str]
    ) -> BumpReport:
        return BumpReport(
            version=computed.version,
            previous=computed.previous,
            scheme=computed.scheme.value,
            channel=str(computed.channel),
            bump_type=computed.intent.value,
            dry_run=dry_run,
            changed=computed.version != computed.previous,
            planned=planned,
        )

    # ------------------------------------------------------------------
    # Auto-bump
    # ------------------------------------------------------------------

    def _is_version_tag(self, tag: str) -> bool:
        try:
            parse_version(_strip_tag_prefix(tag), self.config.versioning_scheme, self.config.calver_layout)
        except MalformedVersion:
            return False
        return True

    def _no_bump(self, current: str, message: str, dry_run: bool) -> BumpReport:
        logger.info(message, version=current)
        return BumpReport(
            version=current,
            previous=current,
            scheme=self.config.versioning_scheme.value,
            channel=str(self.config.channel),
            bump_type=BumpIntent.NONE.value,
            dry_run=dry_run,
            changed=False,
            message=message,
        )

    def auto_bump(self, request: BumpRequest) -> BumpReport:
        """Classify commits since the latest version tag and bump accordingly.

        Raises:
            BranchNotEligible: If the branch is not allowed and
                ``fail-on-ineligible-branch`` is set.
        """
        latest_tag = self.git.latest_version_tag(self._is_version_tag)
        current = request.version
        if current is None:
            version_file = self.config.current_version_file
            if version_file and self.config.resolve_path(version_file).exists():
                current = read_current_version(self.config)
            elif latest_tag:
                current = _strip_tag_prefix(latest_tag)
            else:
                current = self.config.first_version

        if not self.config.commit_based_bumping:
            return self._no_bump(current, "Commit-based bumping is disabled", request.dry_run)

        branch = self.git.current_branch()
        try:
            check_branch(branch, self.config.run_on_branches)
        except BranchNotEligible as e:
            if self.config.fail_on_ineligible_branch:
                raise
            return self._no_bump(current, str(e), request.dry_run)

        commits = self.git.commits_since(latest_tag)
        intent = classify_commits(
            commits, self.config.change_type_map, self.config.run_on_branches, branch
        )
        logger.info(
            "Classified commits", commits=len(commits), since=latest_tag or "(start)", intent=intent.value
        )
        if intent is BumpIntent.NONE:
            return self._no_bump(current, "No bump needed", request.dry_run)

        auto_request = BumpRequest(
            intent=intent,
            scheme=request.scheme,
            channel=request.channel,
            dry_run=request.dry_run,
            commit=request.commit,
            create_tag=request.create_tag,
        )
        return self.bump(auto_request, current=current)

    # ------------------------------------------------------------------
    # Craft
    # ------------------------------------------------------------------

    def _catalog(self) -> TemplateCatalog:
        return TemplateCatalog.from_config(
            self.craft_settings.templates, self.craft_settings.default_template
        )

    def _counters_path(self) -> Path:
        return self.config.resolve_path(self.craft_settings.counters_file)

    def _load_counters(self) -> CounterStore:
        return load_counters(self._counters_path(), self.craft_settings.counters)

    def _craft_context(self) -> CraftContext:
        semantic_current = None
        if self.config.versioning_scheme is Scheme.SEMANTIC:
            semantic_current = read_current_version(self.config)
        return CraftContext(
            now=self.now,
            current_version=semantic_current,
            commit_hash=self.git.commit_hash(),
            branch=self.git.current_branch(),
            build_number=_build_number_from_env(),
        )

    def list_templates(self) -> TemplateListReport:
        catalog = self._catalog()
        return TemplateListReport(
            templates=catalog.names(), default_template=catalog.default_template
        )

    def craft(self, request: CraftRequest) -> CraftReport:
        """Apply counter mutations, then resolve a template.

        Counter changes and the counters file write are planned on one
        session; resolution sees the post-mutation counters.

        Raises:
            InvalidCounterValue: If ``set_counter`` is not NAME:VALUE with VALUE >= 0.
            TemplateNotFound: If the template (or default) is not configured.
            CraftError: If template resolution fails.
        """
        counters = self._load_counters()
        before = counters.snapshot()

        mutated = False
        if request.set_counter:
            name, value = parse_counter_assignment(request.set_counter)
            counters.set(name, value)
            mutated = True
            logger.info("Counter set", counter=name, value=value)
        if request.increment_counter:
            new_value = counters.increment(request.increment_counter)
            mutated = True
            logger.info("Counter incremented", counter=request.increment_counter, value=new_value)

        result = self._catalog().resolve(request.template, counters, self._craft_context())

        session = ReleaseSession(dry_run=request.dry_run)
        if mutated:
            plan_counters(session, self._counters_path(), counters)
        planned = session.flush()

        return CraftReport(
            version=result.composed,
            template=result.template,
            values=result.values,
            counters_before=before,
            counters=counters.snapshot(),
            dry_run=request.dry_run,
            planned=planned,
        )

    # ------------------------------------------------------------------
    # Monorepo
    # ------------------------------------------------------------------

    def monorepo(self, request: BumpRequest) -> MonorepoReport:
        """Bump every configured subproject in order.

        A failing subproject is recorded and the rest still run. Git commit
        and tags are only created when every subproject succeeded.
        """
        results: List[SubprojectResult] = []
        for subproject in self.config.subprojects:
            results.append(self._bump_subproject(subproject.path, subproject.config_filename, request))

        all_ok = all(r.success for r in results)
        session = ReleaseSession(dry_run=request.dry_run)
        if all_ok and results:
            self._plan_monorepo_git(session, results, request)
        planned = session.flush()

        return MonorepoReport(
            success=all_ok,
            bump_type=request.intent.value,
            dry_run=request.dry_run,
            results=results,
            planned=planned,
        )

    def _bump_subproject(
        self, path: str, config_filename: str, request: BumpRequest
    ) -> SubprojectResult:
        sub_dir = self.config.resolve_path(path)
        logger.bind(subproject=path)
        try:
            sub_config = load_config(sub_dir / config_filename, base_path=sub_dir, required=True)
            member = VersionOrchestrator(sub_config, self._git, now=self._now)
            report = member.bump(
                BumpRequest(
                    intent=request.intent,
                    scheme=request.scheme,
                    channel=request.channel,
                    dry_run=request.dry_run,
                )
            )
        except VersionItError as e:
            logger.error("Subproject failed", error=str(e))
            return SubprojectResult(
                path=path, success=False, error=str(e), error_code=e.error_code
            )
        except OSError as e:
            logger.error("Subproject failed", error=str(e))
            return SubprojectResult(path=path, success=False, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error in subproject", error_type=type(e).__name__)
            return SubprojectResult(
                path=path, success=False, error=f"{type(e).__name__}: {e}"
            )
        finally:
            logger.unbind("subproject")

        return SubprojectResult(
            path=path, success=True, previous=report.previous, version=report.version
        )

    def _plan_monorepo_git(
        self,
        session: ReleaseSession,
        results: List[SubprojectResult],
        request: BumpRequest,
    ) -> None:
        if request.commit:
            summary = ", ".join(f"{r.path} {r.version}" for r in results)
            message = f"Bump versions: {summary}"
            session.plan_action(
                f"Commit changes with message '{message}'",
                lambda: self.git.commit_all(message),
            )
        if request.create_tag:
            for result in results:
                tag = f"{Path(result.path).name}-{result.version}"
                session.plan_action(
                    f"Create git tag '{tag}'",
                    lambda tag=tag: self.git.create_tag(tag),
                )


def _strip_tag_prefix(tag: str) -> str:
    if len(tag) > 1 and tag[0] in "vV" and tag[1].isdigit():
        return tag[1:]
    return tag


def _build_number_from_env() -> Optional[int]:
    raw = os.environ.get(BUILD_NUMBER_ENV, "").strip()
    if not raw:
        return None
    if not _DIGITS.fullmatch(raw):
        logger.warning("Ignoring non-numeric build number", variable=BUILD_NUMBER_ENV, value=raw)
        return None
    return int(raw)
