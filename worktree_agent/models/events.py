"""Event values passed from producers to the application core.

Every producer (watcher thread, hook threads, the background job thread and
the terminal) communicates with the core only by emitting these immutable
values. The core is the only consumer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from worktree_agent.models.branch import BranchClassification, ClassifiedBranch
from worktree_agent.models.worktree import WorktreeEntry


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Watcher events

@dataclass(frozen=True)
class PollStarted:
    forced: bool = False


@dataclass(frozen=True)
class FetchFailed:
    remote: str
    reason: str


@dataclass(frozen=True)
class BranchesClassified:
    branches: Tuple[ClassifiedBranch, ...]


@dataclass(frozen=True)
class BranchDiscovered:
    name: str
    classification: BranchClassification
    initial: bool = False


@dataclass(frozen=True)
class PollCompleted:
    timestamp: datetime
    branch_count: int
    succeeded: bool = True


WatcherEvent = Union[PollStarted, FetchFailed, BranchesClassified, BranchDiscovered, PollCompleted]


# Executor events

class OutputStream(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


class HookOutcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SPAWN_ERROR = "spawn_error"


@dataclass(frozen=True)
class HookStarted:
    branch: str
    run_id: int
    command: str


@dataclass(frozen=True)
class HookOutput:
    branch: str
    run_id: int
    stream: OutputStream
    line: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class HookFinished:
    branch: str
    run_id: int
    outcome: HookOutcome
    exit_code: Optional[int] = None
    reason: Optional[str] = None


ExecutorEvent = Union[HookStarted, HookOutput, HookFinished]


# Background git job events

@dataclass(frozen=True)
class WorktreeCreated:
    entry: WorktreeEntry
    messages: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WorktreeCreateFailed:
    branch: str
    reason: str


@dataclass(frozen=True)
class WorktreeRemoved:
    branch: str


@dataclass(frozen=True)
class WorktreeRemoveFailed:
    branch: str
    reason: str


JobEvent = Union[WorktreeCreated, WorktreeCreateFailed, WorktreeRemoved, WorktreeRemoveFailed]


# Terminal input

class Intent(Enum):
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    CREATE = "create"
    DELETE = "delete"
    TOGGLE_TRACK = "toggle_track"
    UNTRACK = "untrack"
    CLEAR_TRACK = "clear_track"
    FORCE_POLL = "force_poll"
    TOGGLE_AUTO_CREATE = "toggle_auto_create"
    SHOW_HELP = "show_help"
    SHOW_LOGS = "show_logs"
    BACK = "back"
    QUIT = "quit"


@dataclass(frozen=True)
class UserInput:
    """A user intent. `branch` pins the target instead of the current selection."""
    intent: Intent
    branch: Optional[str] = None


@dataclass(frozen=True)
class SettingsSubmitted:
    """Settings edited in the UI; only the fields named in `changes` are replaced."""
    changes: Dict[str, Any] = field(default_factory=dict)


Event = Union[WatcherEvent, ExecutorEvent, JobEvent, UserInput, SettingsSubmitted]

Emitter = Callable[[Event], None]
