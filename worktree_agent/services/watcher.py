"""Background watcher that polls the remote and reports branch changes."""

import threading
import time
from datetime import datetime, timezone
from typing import Optional, Set

from worktree_agent.exceptions import GitError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.events import (
    BranchDiscovered,
    BranchesClassified,
    Emitter,
    FetchFailed,
    PollCompleted,
    PollStarted,
)
from worktree_agent.services.classifier import WatchPolicy, classify_all

logger = get_logger(__name__)


class Watcher:
    """Polls one remote on a daemon thread and emits WatcherEvents.

    The watcher never reads or writes Config. Everything it needs arrives
    through `update_policy`, and everything it learns leaves through `emit`.
    """

    def __init__(self, git, emit: Emitter, policy: WatchPolicy):
        """Initialize the watcher.

        Args:
            git: Capability provider with `fetch` and `list_remote_branches`
            emit: Thread-safe callback receiving every event
            policy: Policy for the first tick
        """
        self.git = git
        self.emit = emit
        self._policy = policy
        self._condition = threading.Condition()
        self._forced = False
        self._stopped = False
        self._polling = False
        self._thread: Optional[threading.Thread] = None
        # Names seen on the remote since they last appeared; only touched by the watcher thread
        self._known: Set[str] = set()
        self._had_success = False

    @property
    def policy(self) -> WatchPolicy:
        with self._condition:
            return self._policy

    @property
    def is_polling(self) -> bool:
        with self._condition:
            return self._polling

    def start(self) -> None:
        """Start the polling thread; the first poll runs immediately."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="watcher", daemon=True)
        self._thread.start()
        logger.info(f"Watcher started for remote {self._policy.remote_name}")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal shutdown. A tick in progress emits nothing further."""
        with self._condition:
            self._stopped = True
            self._condition.notify_all()
        if timeout is not None and self._thread is not None:
            self._thread.join(timeout)
        logger.debug("Watcher stopped")

    def request_poll(self) -> None:
        """Force a poll now. Requests made while one is pending coalesce."""
        with self._condition:
            if self._forced:
                logger.debug("Forced poll already queued")
            self._forced = True
            self._condition.notify_all()

    def update_policy(self, policy: WatchPolicy) -> None:
        """Use `policy` from the next tick on."""
        with self._condition:
            self._policy = policy
            self._condition.notify_all()

    def _run(self) -> None:
        next_due = time.monotonic()
        while True:
            with self._condition:
                while not self._stopped and not self._forced:
                    remaining = next_due - time.monotonic()
                    if remaining <= 0:
                        break
                    self._condition.wait(remaining)
                if self._stopped:
                    return
                forced = self._forced
                self._forced = False
                policy = self._policy
                self._polling = True

            now = time.monotonic()
            if now >= next_due:
                # Only scheduled ticks move the timer
                next_due = now + policy.interval
                forced = False

            try:
                self.poll_once(policy, forced=forced)
            except Exception:
                logger.exception("Unexpected error during poll")
            finally:
                with self._condition:
                    self._polling = False

    def _should_stop(self) -> bool:
        with self._condition:
            return self._stopped

    def poll_once(self, policy: WatchPolicy, forced: bool = False) -> None:
        """Run one fetch-and-classify tick and emit its events."""
        remote = policy.remote_name
        self.emit(PollStarted(forced=forced))

        try:
            self.git.fetch(remote)
            if self._should_stop():
                return
            branches = self.git.list_remote_branches(remote)
        except GitError as e:
            if self._should_stop():
                return
            reason = e.message or str(e)
            logger.warning(f"Fetch from {remote} failed: {reason}")
            self.emit(FetchFailed(remote=remote, reason=reason))
            self.emit(PollCompleted(timestamp=datetime.now(timezone.utc), branch_count=0, succeeded=False))
            return

        if self._should_stop():
            return

        classified = classify_all(branches, policy)
        self.emit(BranchesClassified(branches=classified))

        current = {item.name for item in classified}
        # Forget branches that left the remote so a re-push surfaces again
        self._known &= current
        initial = not self._had_success
        for item in classified:
            if item.name in self._known:
                continue
            self._known.add(item.name)
            if item.classification.is_discoverable:
                logger.debug(f"Discovered {item.name} ({item.classification})")
                self.emit(BranchDiscovered(name=item.name, classification=item.classification, initial=initial))
        self._had_success = True

        self.emit(PollCompleted(timestamp=datetime.now(timezone.utc), branch_count=len(classified), succeeded=True))
