"""Serial background runner for blocking worktree git operations."""

from concurrent.futures import Future, ThreadPoolExecutor

from worktree_agent.config import Config
from worktree_agent.exceptions import WorktreeError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.events import (
    Emitter,
    WorktreeCreated,
    WorktreeCreateFailed,
    WorktreeRemoved,
    WorktreeRemoveFailed,
)
from worktree_agent.models.worktree import WorktreeEntry
from worktree_agent.services.worktree_manager import WorktreeManager

logger = get_logger(__name__)


class BackgroundJobs:
    """Runs `git worktree add/remove` one at a time off the event loop.

    Each job reports back through `emit` only; the config snapshot it gets is
    read, never modified.
    """

    def __init__(self, manager: WorktreeManager, emit: Emitter):
        self.manager = manager
        self.emit = emit
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="git-job")

    def submit_create(self, config: Config, branch: str) -> Future:
        logger.debug(f"Queued worktree creation for {branch}")
        return self._pool.submit(self._create, config, branch)

    def submit_remove(self, entry: WorktreeEntry) -> Future:
        logger.debug(f"Queued worktree removal for {entry.branch_name}")
        return self._pool.submit(self._remove, entry)

    def _create(self, config: Config, branch: str) -> None:
        try:
            entry = self.manager.create_worktree(config, branch)
        except WorktreeError as e:
            logger.error(str(e))
            self.emit(WorktreeCreateFailed(branch=branch, reason=str(e)))
            return
        except Exception as e:
            logger.exception(f"Unexpected error creating worktree for {branch}")
            self.emit(WorktreeCreateFailed(branch=branch, reason=f"Unexpected error: {e}"))
            return
        self.emit(WorktreeCreated(entry=entry))

    def _remove(self, entry: WorktreeEntry) -> None:
        try:
            self.manager.remove_worktree(entry)
        except WorktreeError as e:
            logger.error(str(e))
            self.emit(WorktreeRemoveFailed(branch=entry.branch_name, reason=str(e)))
            return
        except Exception as e:
            logger.exception(f"Unexpected error removing worktree for {entry.branch_name}")
            self.emit(WorktreeRemoveFailed(branch=entry.branch_name, reason=f"Unexpected error: {e}"))
            return
        self.emit(WorktreeRemoved(branch=entry.branch_name))

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting jobs. Queued jobs are cancelled; a running one finishes on its own."""
        self._pool.shutdown(wait=wait, cancel_futures=True)
