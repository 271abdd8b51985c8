"""Branch model and related enums"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ClassificationKind(Enum):
    """Policy outcome for a remote branch, in evaluation order."""
    ALREADY_WORKTREE = "worktree"
    IGNORED = "ignored"
    UNTRACKED = "untracked"
    TRACKED = "tracked"
    UNDECIDED = "undecided"


class TrackState(Enum):
    """Explicit user decision about a branch."""
    TRACKED = "tracked"
    UNTRACKED = "untracked"
    UNDECIDED = "undecided"


@dataclass(frozen=True)
class BranchRef:
    """A branch as listed on the remote during one poll."""
    name: str
    remote_revision: str


@dataclass(frozen=True)
class BranchClassification:
    """Classification of a branch; pattern is set only for IGNORED."""
    kind: ClassificationKind
    pattern: Optional[str] = None

    @property
    def is_discoverable(self) -> bool:
        """Branches the user may still want a worktree for."""
        return self.kind in (ClassificationKind.UNDECIDED, ClassificationKind.TRACKED)

    def __str__(self) -> str:
        if self.kind is ClassificationKind.IGNORED and self.pattern:
            return f"ignored ({self.pattern})"
        return self.kind.value


@dataclass(frozen=True)
class ClassifiedBranch:
    """A remote branch together with its classification for the current poll."""
    branch: BranchRef
    classification: BranchClassification

    @property
    def name(self) -> str:
        return self.branch.name
