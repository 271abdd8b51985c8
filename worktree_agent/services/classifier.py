"""Branch classification against the ignore/track policy."""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from worktree_agent.config import Config, compile_pattern
from worktree_agent.constants import MIN_POLL_INTERVAL_SECONDS
from worktree_agent.exceptions import ConfigError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.branch import (
    BranchClassification,
    BranchRef,
    ClassificationKind,
    ClassifiedBranch,
)

logger = get_logger(__name__)

CompiledPattern = Tuple[str, "re.Pattern[str]"]


def compile_patterns(patterns: Iterable[str]) -> Tuple[Tuple[CompiledPattern, ...], List[str]]:
    """Compile glob patterns, keeping their order.

    Returns:
        The usable (source, regex) pairs and one error message per rejected pattern
    """
    compiled = []
    errors = []
    for pattern in patterns:
        try:
            compiled.append((pattern, compile_pattern(pattern)))
        except ConfigError as e:
            errors.append(str(e))
    return tuple(compiled), errors


@dataclass(frozen=True)
class WatchPolicy:
    """Everything the watcher needs for one tick, captured as one immutable value."""

    remote_name: str
    poll_interval_seconds: int
    ignore_patterns: Tuple[CompiledPattern, ...] = ()
    tracked_branches: FrozenSet[str] = frozenset()
    untracked_branches: FrozenSet[str] = frozenset()
    worktree_branches: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def interval(self) -> float:
        return float(max(self.poll_interval_seconds, MIN_POLL_INTERVAL_SECONDS))

    @classmethod
    def from_config(cls, config: Config, live_branches: Iterable[str] = ()) -> "WatchPolicy":
        """Build a policy from config plus branches checked out in live worktrees."""
        # Config validates its patterns, so nothing is rejected here
        patterns, _ = compile_patterns(config.ignore_patterns)
        worktree_branches = {entry.branch_name for entry in config.worktrees}
        worktree_branches.update(name for name in live_branches if name)
        return cls(
            remote_name=config.remote_name,
            poll_interval_seconds=config.poll_interval_seconds,
            ignore_patterns=patterns,
            tracked_branches=config.tracked_branches,
            untracked_branches=config.untracked_branches,
            worktree_branches=frozenset(worktree_branches),
        )


def match_ignore(name: str, patterns: Sequence[CompiledPattern]) -> Optional[str]:
    """Return the first ignore pattern matching `name`."""
    for source, regex in patterns:
        if regex.match(name):
            return source
    return None


def classify(name: str, policy: WatchPolicy) -> BranchClassification:
    """Classify one branch name.

    Checks run in a fixed order: existing worktree, ignore pattern, untracked,
    tracked, undecided. An ignore pattern beats tracked status.
    """
    if name in policy.worktree_branches:
        return BranchClassification(ClassificationKind.ALREADY_WORKTREE)

    pattern = match_ignore(name, policy.ignore_patterns)
    if pattern is not None:
        return BranchClassification(ClassificationKind.IGNORED, pattern)

    if name in policy.untracked_branches:
        return BranchClassification(ClassificationKind.UNTRACKED)

    if name in policy.tracked_branches:
        return BranchClassification(ClassificationKind.TRACKED)

    return BranchClassification(ClassificationKind.UNDECIDED)


def classify_all(branches: Iterable[BranchRef], policy: WatchPolicy) -> Tuple[ClassifiedBranch, ...]:
    return tuple(ClassifiedBranch(branch, classify(branch.name, policy)) for branch in branches)
