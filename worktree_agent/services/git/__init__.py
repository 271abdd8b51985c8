"""Git-related services for git-worktree-agent."""

from .repository import GitRepository
from .worktrees import WorktreeService

__all__ = [
    "GitRepository",
    "WorktreeService",
]
