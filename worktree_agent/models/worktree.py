"""Worktree data models."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional


class HookState(Enum):
    """Lifecycle of the post-create hook for one worktree."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class HookStatus:
    """Hook state plus the exit code and failure reason where they apply."""

    state: HookState = HookState.PENDING
    exit_code: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def pending(cls) -> "HookStatus":
        return cls(HookState.PENDING)

    @classmethod
    def running(cls) -> "HookStatus":
        return cls(HookState.RUNNING)

    @classmethod
    def succeeded(cls, exit_code: int = 0) -> "HookStatus":
        return cls(HookState.SUCCEEDED, exit_code=exit_code)

    @classmethod
    def failed(cls, exit_code: Optional[int], reason: str) -> "HookStatus":
        return cls(HookState.FAILED, exit_code=exit_code, reason=reason)

    @classmethod
    def interrupted(cls) -> "HookStatus":
        return cls(HookState.INTERRUPTED, reason="agent exited while the hook was running")

    @property
    def is_active(self) -> bool:
        return self.state in (HookState.PENDING, HookState.RUNNING)

    def to_dict(self) -> dict:
        data: dict = {"state": self.state.value}
        if self.exit_code is not None:
            data["exit_code"] = self.exit_code
        if self.reason:
            data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "HookStatus":
        return cls(
            state=HookState(data.get("state", HookState.PENDING.value)),
            exit_code=data.get("exit_code"),
            reason=data.get("reason"),
        )

    def __str__(self) -> str:
        if self.state is HookState.FAILED:
            code = "?" if self.exit_code is None else self.exit_code
            return f"failed ({code})"
        if self.state is HookState.SUCCEEDED and self.exit_code:
            return f"succeeded ({self.exit_code})"
        return self.state.value


@dataclass(frozen=True)
class WorktreeEntry:
    """A worktree created and managed by the agent."""

    branch_name: str
    path: Path
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    hook_status: HookStatus = field(default_factory=HookStatus.pending)

    def with_hook_status(self, status: HookStatus) -> "WorktreeEntry":
        return replace(self, hook_status=status)

    def to_dict(self) -> dict:
        return {
            "branch_name": self.branch_name,
            "path": str(self.path),
            "created_at": self.created_at.isoformat(),
            "hook_status": self.hook_status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorktreeEntry":
        created_at = data.get("created_at")
        return cls(
            branch_name=data["branch_name"],
            path=Path(data["path"]),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(timezone.utc),
            hook_status=HookStatus.from_dict(data.get("hook_status") or {}),
        )


@dataclass(frozen=True)
class LiveWorktree:
    """Information about a git worktree as reported by `git worktree list`."""

    path: str
    branch_name: str
    commit_sha: str
    is_main: bool  # Is this the main working tree?
    is_orphaned: bool  # Directory missing?

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else "active"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch_name} @ {self.path}{main_marker} [{status}]"
