"""Application state owned by the core and the read-only snapshot handed to renderers."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from worktree_agent.models.branch import BranchClassification, ClassificationKind, ClassifiedBranch, TrackState
from worktree_agent.models.worktree import WorktreeEntry
from worktree_agent.services.log_buffer import LogEntry


class ViewMode(Enum):
    FIRST_RUN_SELECTION = "first_run_selection"
    NORMAL = "normal"
    HELP_OVERLAY = "help_overlay"
    LOG_VIEW = "log_view"


class Activity(Enum):
    """Background work in flight for a branch."""
    CREATING = "creating"
    REMOVING = "removing"


@dataclass(frozen=True)
class BranchRow:
    """One line of the branch list."""

    name: str
    classification: Optional[BranchClassification]
    track_state: TrackState
    worktree: Optional[WorktreeEntry] = None
    activity: Optional[Activity] = None
    is_default: bool = False
    on_remote: bool = True

    @property
    def has_worktree(self) -> bool:
        return self.worktree is not None or (
            self.classification is not None
            and self.classification.kind is ClassificationKind.ALREADY_WORKTREE
        )


@dataclass
class AppState:
    """Mutable state; only the core's consumer loop touches it."""

    mode: ViewMode = ViewMode.NORMAL
    # Mode to return to when closing help or logs
    previous_mode: ViewMode = ViewMode.NORMAL
    selected_branch: Optional[str] = None
    classifications: Dict[str, ClassifiedBranch] = field(default_factory=dict)
    discovered: List[str] = field(default_factory=list)
    live_worktree_branches: Set[str] = field(default_factory=set)
    polling: bool = False
    last_poll: Optional[datetime] = None
    last_poll_count: int = 0
    last_error: Optional[str] = None
    status_message: Optional[str] = None
    status_is_error: bool = False
    hook_runs: Dict[str, int] = field(default_factory=dict)
    next_run_id: int = 1
    activities: Dict[str, Activity] = field(default_factory=dict)
    save_pending: bool = False
    running: bool = True


@dataclass(frozen=True)
class AppSnapshot:
    """Everything a renderer needs, frozen at one instant."""

    mode: ViewMode
    rows: Tuple[BranchRow, ...]
    selected: int
    remote_name: str
    poll_interval_seconds: int
    auto_create: bool
    polling: bool
    last_poll: Optional[datetime]
    last_poll_count: int
    last_error: Optional[str]
    status_message: Optional[str]
    status_is_error: bool
    worktree_count: int
    log_entries: Tuple[LogEntry, ...]
    repo_root: Path
    post_create_command: Optional[str] = None
    log_total: int = 0
    running: bool = True

    @property
    def selected_row(self) -> Optional[BranchRow]:
        if 0 <= self.selected < len(self.rows):
            return self.rows[self.selected]
        return None

    @property
    def tracked_count(self) -> int:
        return sum(1 for row in self.rows if row.track_state is TrackState.TRACKED)
