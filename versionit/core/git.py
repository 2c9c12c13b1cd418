"""Git data source.

Read-only queries return ``None`` or an empty list when git is missing, the
directory is not a repository, or the command fails; the failure is logged
at debug level. Only ``commit_all`` and ``create_tag`` change the repository,
and they raise ``GitOperationError`` on failure.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from versionit.core.exceptions import GitOperationError
from versionit.core.logging import get_logger
from versionit.core.versioning.classifier import Commit

logger = get_logger(__name__)

GIT_TIMEOUT_SECONDS = 30


class GitRepository:
    """Thin wrapper over the ``git`` command line for one working tree."""

    def __init__(self, root: Optional[Path] = None, timeout: int = GIT_TIMEOUT_SECONDS) -> None:
        self.root = root or Path.cwd()
        self.timeout = timeout

    def _run(self, *args: str) -> Optional[str]:
        """Run a read-only git command.

        Rule #4: Helper function.
        """
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("git command failed to start", command=" ".join(cmd), error=str(e))
            return None

        if result.returncode != 0:
            logger.debug(
                "git command failed",
                command=" ".join(cmd),
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
            return None
        return result.stdout.strip()

    def _run_checked(self, *args: str) -> str:
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise GitOperationError(f"Could not run '{' '.join(cmd)}': {e}") from e

        if result.returncode != 0:
            raise GitOperationError(
                f"'{' '.join(cmd)}' failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        return result.stdout.strip()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_branch(self) -> Optional[str]:
        return self._run("rev-parse", "--abbrev-ref", "HEAD") or None

    def commit_hash(self, short: bool = True) -> Optional[str]:
        if short:
            return self._run("rev-parse", "--short", "HEAD") or None
        return self._run("rev-parse", "HEAD") or None

    def commit_count(self) -> Optional[int]:
        output = self._run("rev-list", "--count", "HEAD")
        if output is None or not output.isascii() or not output.isdigit():
            return None
        return int(output)

    def tags(self) -> List[str]:
        """All tags, highest version-like name first."""
        output = self._run("tag", "--list", "--sort=-version:refname")
        if not output:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def latest_version_tag(self, is_version_tag: Callable[[str], bool]) -> Optional[str]:
        """First tag (in version order) accepted by ``is_version_tag``."""
        for tag in self.tags():
            if is_version_tag(tag):
                return tag
        return None

    def commits_since(self, since: Optional[str] = None) -> List[Commit]:
        """Commit subjects after ``since`` (whole history if None), oldest first."""
        args = ["log", "--reverse", "--pretty=format:%h%x09%s"]
        if since:
            args.insert(1, f"{since}..HEAD")
        output = self._run(*args)
        if not output:
            return []

        branch = self.current_branch()
        commits = []
        for line in output.splitlines():
            short_hash, _, subject = line.partition("\t")
            if subject:
                commits.append(Commit(message=subject, branch=branch, hash=short_hash))
        return commits

    def head_field(self, pretty: str) -> Optional[str]:
        """A ``git log -1 --pretty`` field of HEAD (``%an``, ``%ae``, ``%cI``...)."""
        return self._run("log", "-1", f"--pretty=format:{pretty}") or None

    def first_commit_date(self) -> Optional[str]:
        output = self._run("log", "--reverse", "--pretty=format:%cI")
        if not output:
            return None
        return output.splitlines()[0]

    # ------------------------------------------------------------------
    # Writes (CLI --commit / --create-tag only)
    # ------------------------------------------------------------------

    def commit_all(self, message: str) -> None:
        """Stage every change and commit it.

        Raises:
            GitOperationError: If staging or committing fails.
        """
        self._run_checked("add", "-A")
        self._run_checked("commit", "-m", message)
        logger.info("Committed changes", message=message)

    def create_tag(self, name: str, message: Optional[str] = None) -> None:
        """Create an annotated tag at HEAD.

        Raises:
            GitOperationError: If the tag exists or git fails.
        """
        self._run_checked("tag", "-a", name, "-m", message or f"Release {name}")
        logger.info("Created tag", tag=name)
