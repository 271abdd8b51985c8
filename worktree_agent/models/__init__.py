"""Data models for git-worktree-agent."""

from .branch import (
    BranchClassification,
    BranchRef,
    ClassificationKind,
    ClassifiedBranch,
    TrackState,
)
from .worktree import HookState, HookStatus, LiveWorktree, WorktreeEntry

__all__ = [
    "BranchClassification",
    "BranchRef",
    "ClassificationKind",
    "ClassifiedBranch",
    "TrackState",
    "HookState",
    "HookStatus",
    "LiveWorktree",
    "WorktreeEntry",
]
