"""Commit Classifier.

Derives a bump intent from a range of commit messages and an ordered rule
table (the ``change-type-map`` config key).

A label rule matches when its label occurs in the message (case-sensitive
substring); a pattern rule matches when its regular expression is found
anywhere in the message. Every matching rule contributes its intent, and
the result is the maximum over all commits and rules. A commit matching
both ``feat`` (minor) and ``feat(major)`` (major) therefore yields major,
regardless of rule order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Pattern, Sequence

from versionit.core.exceptions import BranchNotEligible, InvalidRuleError
from versionit.core.logging import get_logger
from versionit.core.versioning.types import BumpIntent

logger = get_logger(__name__)


@dataclass(frozen=True)
class Commit:
    """A commit as seen by the classifier."""

    message: str
    branch: Optional[str] = None
    hash: Optional[str] = None


@dataclass(frozen=True)
class ChangeTypeRule:
    """Maps a commit label or pattern to a bump intent.

    ``intent`` may be NONE to explicitly mark matches as irrelevant.
    """

    label: str
    intent: BumpIntent
    pattern: Optional[str] = None
    compiled: Optional[Pattern[str]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.pattern is None:
            return
        try:
            object.__setattr__(self, "compiled", re.compile(self.pattern))
        except re.error as e:
            raise InvalidRuleError(
                f"Rule '{self.label}' has an invalid pattern '{self.pattern}': {e}"
            ) from e

    def matches(self, message: str) -> bool:
        """Check whether the rule applies to a commit message."""
        if self.compiled is not None:
            return self.compiled.search(message) is not None
        return self.label in message


def classify_message(message: str, rules: Sequence[ChangeTypeRule]) -> BumpIntent:
    """Highest intent any rule assigns to a single message."""
    highest = BumpIntent.NONE
    for rule in rules:
        if rule.matches(message) and rule.intent > highest:
            highest = rule.intent
    return highest


def check_branch(current_branch: Optional[str], allowed_branches: Iterable[str]) -> None:
    """Ensure auto-bump may run on the current branch.

    An empty allow-list permits every branch.

    Raises:
        BranchNotEligible: If the branch is not allowed.
    """
    allowed = set(allowed_branches)
    if allowed and current_branch not in allowed:
        raise BranchNotEligible(current_branch or "(unknown)", sorted(allowed))


def classify_commits(
    commits: Sequence[Commit],
    rules: Sequence[ChangeTypeRule],
    allowed_branches: Iterable[str] = (),
    current_branch: Optional[str] = None,
) -> BumpIntent:
    """Derive the bump intent for a commit range.

    Args:
        commits: Commits in chronological order.
        rules: Ordered change-type rules.
        allowed_branches: Branches auto-bump may run on (empty = any).
        current_branch: Branch being released.

    Returns:
        Maximum intent over every rule matched by any commit; NONE when
        nothing matches or the range is empty.

    Raises:
        BranchNotEligible: If the branch is not in a non-empty allow-list.
    """
    check_branch(current_branch, allowed_branches)

    highest = BumpIntent.NONE
    for commit in commits:
        intent = classify_message(commit.message, rules)
        if intent > highest:
            highest = intent
            logger.debug("Commit raised bump", intent=intent.value, message=commit.message)
        if highest is BumpIntent.MAJOR:
            break  # Can't go higher

    return highest
