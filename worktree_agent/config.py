"""Configuration handling for git-worktree-agent"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from fnmatch import translate
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from worktree_agent.constants import (
    CONFIG_VERSION,
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_REMOTE,
    DEFAULT_WORKTREE_BASE_DIR,
    PATH_HOSTILE_CHARACTERS,
)
from worktree_agent.exceptions import ConfigError
from worktree_agent.models.worktree import WorktreeEntry


def sanitize_branch_name(branch: str) -> str:
    """Flatten a branch name into a single directory name.

    Every path-hostile character becomes '-', so `feature/x` maps to
    `feature-x`. Names differing only in already-substituted characters
    (`feature/x` and `feature-x`) collide; that is a known limitation.
    """
    return "".join("-" if ch in PATH_HOSTILE_CHARACTERS else ch for ch in branch)


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """Compile one glob ignore pattern, raising ConfigError when unusable."""
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigError(f"ignore pattern must be a non-empty string, got {pattern!r}")
    try:
        return re.compile(translate(pattern))
    except re.error as e:
        raise ConfigError(f"invalid ignore pattern {pattern!r}: {e}") from e


@dataclass(frozen=True)
class Config:
    """Per-repository configuration and cached worktree state.

    Instances are immutable values; transitions produce new instances via
    `dataclasses.replace` or the helpers below.
    """

    version: int = CONFIG_VERSION

    # Polling
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    remote_name: str = DEFAULT_REMOTE
    base_branch: Optional[str] = None
    last_fetch: Optional[datetime] = None

    # Hook
    post_create_command: Optional[str] = None
    command_working_dir: Optional[str] = None

    # Branch policy
    ignore_patterns: Tuple[str, ...] = DEFAULT_IGNORE_PATTERNS
    tracked_branches: FrozenSet[str] = frozenset()
    untracked_branches: FrozenSet[str] = frozenset()
    auto_create_worktrees: bool = False

    # Worktrees
    worktree_base_dir: str = DEFAULT_WORKTREE_BASE_DIR
    worktrees: Tuple[WorktreeEntry, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_poll_interval()
        self._validate_remote_name()
        self._validate_worktree_base_dir()
        self._validate_ignore_patterns()
        self._validate_track_sets()

    def _validate_poll_interval(self):
        """Validate poll_interval_seconds is a non-negative integer."""
        if isinstance(self.poll_interval_seconds, bool) or not isinstance(self.poll_interval_seconds, int):
            raise ConfigError(f"poll_interval_seconds must be an integer, got {self.poll_interval_seconds!r}")
        if self.poll_interval_seconds < 0:
            raise ConfigError(f"poll_interval_seconds must not be negative, got {self.poll_interval_seconds}")

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not self.remote_name or not self.remote_name.strip():
            raise ConfigError("remote_name cannot be empty")

    def _validate_worktree_base_dir(self):
        if not self.worktree_base_dir or not self.worktree_base_dir.strip():
            raise ConfigError("worktree_base_dir cannot be empty")

    def _validate_ignore_patterns(self):
        for pattern in self.ignore_patterns:
            compile_pattern(pattern)

    def _validate_track_sets(self):
        """Tracked and untracked branches must be disjoint."""
        overlap = self.tracked_branches & self.untracked_branches
        if overlap:
            raise ConfigError(
                f"branches cannot be both tracked and untracked: {', '.join(sorted(overlap))}"
            )

    @property
    def is_first_run(self) -> bool:
        """No worktrees and no track decisions recorded yet."""
        return not self.worktrees and not self.tracked_branches and not self.untracked_branches

    def get_worktree(self, branch: str) -> Optional[WorktreeEntry]:
        """Get the worktree entry for a branch."""
        for entry in self.worktrees:
            if entry.branch_name == branch:
                return entry
        return None

    def resolve_base_dir(self, repo_root: Path) -> Path:
        """Worktree base directory; relative paths hang off the repository root."""
        base = Path(self.worktree_base_dir).expanduser()
        if not base.is_absolute():
            base = Path(repo_root) / base
        return base

    def with_updates(self, **changes) -> "Config":
        """Return a validated copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert config to its JSON-compatible form."""
        return {
            "version": self.version,
            "poll_interval_seconds": self.poll_interval_seconds,
            "remote_name": self.remote_name,
            "base_branch": self.base_branch,
            "last_fetch": self.last_fetch.isoformat() if self.last_fetch else None,
            "post_create_command": self.post_create_command,
            "command_working_dir": self.command_working_dir,
            "ignore_patterns": list(self.ignore_patterns),
            "tracked_branches": sorted(self.tracked_branches),
            "untracked_branches": sorted(self.untracked_branches),
            "auto_create_worktrees": self.auto_create_worktrees,
            "worktree_base_dir": self.worktree_base_dir,
            "worktrees": [entry.to_dict() for entry in self.worktrees],
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {
            "version",
            "poll_interval_seconds",
            "remote_name",
            "base_branch",
            "last_fetch",
            "post_create_command",
            "command_working_dir",
            "ignore_patterns",
            "tracked_branches",
            "untracked_branches",
            "auto_create_worktrees",
            "worktree_base_dir",
            "worktrees",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields and v is not None}

        if "last_fetch" in filtered:
            filtered["last_fetch"] = datetime.fromisoformat(filtered["last_fetch"])
        if "ignore_patterns" in filtered:
            filtered["ignore_patterns"] = tuple(filtered["ignore_patterns"])
        for key in ("tracked_branches", "untracked_branches"):
            if key in filtered:
                filtered[key] = frozenset(filtered[key])
        if "worktrees" in filtered:
            filtered["worktrees"] = tuple(WorktreeEntry.from_dict(w) for w in filtered["worktrees"])

        return cls(**filtered)
