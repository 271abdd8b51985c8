"""Worktree lifecycle: creating, deleting and recording managed worktrees."""

from pathlib import Path
from typing import Iterable, Union

from worktree_agent.config import Config, sanitize_branch_name
from worktree_agent.exceptions import GitError, GitOperationError, PathAlreadyExistsError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.branch import TrackState
from worktree_agent.models.worktree import HookState, HookStatus, LiveWorktree, WorktreeEntry

logger = get_logger(__name__)


def _same_path(a: Union[str, Path], b: Union[str, Path]) -> bool:
    return Path(a).expanduser().resolve() == Path(b).expanduser().resolve()


class WorktreeManager:
    """Turns branches into worktrees and keeps Config's worktree list in step.

    The methods taking and returning `Config` are pure transitions. Only
    `create_worktree` and `delete_worktree` call git. Nothing here writes the
    config file.
    """

    def __init__(self, git, repo_root: Union[str, Path]):
        self.git = git
        self.repo_root = Path(repo_root)

    def worktree_path(self, config: Config, branch: str) -> Path:
        return config.resolve_base_dir(self.repo_root) / sanitize_branch_name(branch)

    def create_worktree(self, config: Config, branch: str) -> WorktreeEntry:
        """Create the worktree for `branch` and return its PENDING entry.

        Idempotent: a branch that already has a known worktree at the target
        path returns that entry without calling git.

        Raises:
            PathAlreadyExistsError: The target exists and is not a known worktree
            GitOperationError: git refused to create the worktree
        """
        path = self.worktree_path(config, branch)

        existing = config.get_worktree(branch)
        if existing is not None and _same_path(existing.path, path) and path.exists():
            logger.debug(f"Worktree for {branch} already exists at {path}")
            return existing

        if path.exists():
            raise PathAlreadyExistsError(path)

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.git.add_worktree(branch, path, config.remote_name)
        except GitError as e:
            raise GitOperationError("worktree add", branch, e.message or str(e)) from e

        logger.info(f"Created worktree for {branch} at {path}")
        return WorktreeEntry(branch_name=branch, path=path)

    def remove_worktree(self, entry: WorktreeEntry) -> None:
        """Remove the worktree from disk and from git's metadata.

        A directory that is already gone counts as removed once the stale
        metadata is pruned.

        Raises:
            GitOperationError: git refused to remove the worktree
        """
        try:
            if not Path(entry.path).exists():
                logger.info(f"Worktree for {entry.branch_name} is already gone, pruning metadata")
                self.git.prune_worktrees()
                return
            self.git.remove_worktree(entry.path)
        except GitError as e:
            raise GitOperationError("worktree remove", entry.branch_name, e.message or str(e)) from e
        logger.info(f"Removed worktree for {entry.branch_name}")

    def delete_worktree(self, config: Config, entry: WorktreeEntry) -> Config:
        """Remove the worktree and return Config without its entry."""
        self.remove_worktree(entry)
        return self.forget_worktree(config, entry.branch_name)

    @staticmethod
    def record_worktree(config: Config, entry: WorktreeEntry) -> Config:
        """Add or replace the entry for `entry.branch_name`."""
        others = tuple(w for w in config.worktrees if w.branch_name != entry.branch_name)
        return config.with_updates(worktrees=others + (entry,))

    @staticmethod
    def forget_worktree(config: Config, branch: str) -> Config:
        if config.get_worktree(branch) is None:
            return config
        return config.with_updates(worktrees=tuple(w for w in config.worktrees if w.branch_name != branch))

    @staticmethod
    def set_hook_status(config: Config, branch: str, status: HookStatus) -> Config:
        """Replace the hook status of one entry; unknown branches are left alone."""
        if config.get_worktree(branch) is None:
            return config
        return config.with_updates(
            worktrees=tuple(
                w.with_hook_status(status) if w.branch_name == branch else w
                for w in config.worktrees
            )
        )

    @staticmethod
    def set_track_state(config: Config, branch: str, state: TrackState) -> Config:
        """Record a track decision, keeping tracked and untracked disjoint."""
        tracked = config.tracked_branches - {branch}
        untracked = config.untracked_branches - {branch}
        if state is TrackState.TRACKED:
            tracked = tracked | {branch}
        elif state is TrackState.UNTRACKED:
            untracked = untracked | {branch}
        return config.with_updates(tracked_branches=tracked, untracked_branches=untracked)

    @staticmethod
    def track_state(config: Config, branch: str) -> TrackState:
        if branch in config.tracked_branches:
            return TrackState.TRACKED
        if branch in config.untracked_branches:
            return TrackState.UNTRACKED
        return TrackState.UNDECIDED

    def reconcile(self, config: Config, live: Iterable[LiveWorktree]) -> Config:
        """Align cached entries with `git worktree list`; the live list wins.

        Entries whose worktree is gone are dropped. Hooks that were pending or
        running when the agent last exited are marked INTERRUPTED.
        """
        live_paths = [wt.path for wt in live if not wt.is_orphaned and not wt.is_main]
        kept = []
        for entry in config.worktrees:
            if not any(_same_path(entry.path, path) for path in live_paths):
                logger.info(f"Dropping cached worktree for {entry.branch_name}: no longer present")
                continue
            if entry.hook_status.state in (HookState.PENDING, HookState.RUNNING):
                logger.info(f"Hook for {entry.branch_name} was interrupted")
                entry = entry.with_hook_status(HookStatus.interrupted())
            kept.append(entry)
        return config.with_updates(worktrees=tuple(kept))
