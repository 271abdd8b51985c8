"""Application core: the single owner of Config and AppState.

Every producer hands events to one consumer which calls `AppCore.handle`.
Nothing else mutates state, so no locks are needed here.
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from worktree_agent.config import Config
from worktree_agent.constants import FETCH_LOG_SOURCE
from worktree_agent.core.state import Activity, AppSnapshot, AppState, BranchRow, ViewMode
from worktree_agent.exceptions import ConfigError, ConfigIOError, GitError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.branch import ClassificationKind, ClassifiedBranch, TrackState
from worktree_agent.models.events import (
    BranchDiscovered,
    BranchesClassified,
    Emitter,
    FetchFailed,
    HookFinished,
    HookOutcome,
    HookOutput,
    HookStarted,
    Intent,
    OutputStream,
    PollCompleted,
    PollStarted,
    SettingsSubmitted,
    UserInput,
    WorktreeCreated,
    WorktreeCreateFailed,
    WorktreeRemoved,
    WorktreeRemoveFailed,
)
from worktree_agent.models.worktree import HookState, HookStatus, WorktreeEntry
from worktree_agent.services.classifier import WatchPolicy, classify
from worktree_agent.services.config_store import ConfigStore
from worktree_agent.services.executor import HookExecutor
from worktree_agent.services.jobs import BackgroundJobs
from worktree_agent.services.log_buffer import LogBuffer
from worktree_agent.services.watcher import Watcher
from worktree_agent.services.worktree_manager import WorktreeManager

logger = get_logger(__name__)

WATCHER_LOG_SOURCE = "watcher"
CONFIG_LOG_SOURCE = "config"
AGENT_LOG_SOURCE = "gwa"

# Fields the settings screen may change while the agent runs
EDITABLE_SETTINGS = frozenset({
    "poll_interval_seconds",
    "post_create_command",
    "command_working_dir",
    "worktree_base_dir",
    "base_branch",
    "auto_create_worktrees",
})


class AppCore:
    """Consumes events and owns all application state."""

    def __init__(
        self,
        config: Config,
        store: ConfigStore,
        manager: WorktreeManager,
        jobs: BackgroundJobs,
        executor: HookExecutor,
        watcher: Watcher,
        repo_root: Path,
        log_buffer: Optional[LogBuffer] = None,
        live_worktree_branches: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ):
        self.config = config
        self.store = store
        self.manager = manager
        self.jobs = jobs
        self.executor = executor
        self.watcher = watcher
        self.repo_root = Path(repo_root)
        self.log_buffer = log_buffer or LogBuffer()

        self.state = AppState(
            mode=ViewMode.FIRST_RUN_SELECTION if config.is_first_run else ViewMode.NORMAL,
            live_worktree_branches={name for name in live_worktree_branches if name},
        )
        self.state.previous_mode = self.state.mode

        for warning in warnings:
            self.log_buffer.add(CONFIG_LOG_SOURCE, warning, OutputStream.STDERR)
            self._set_status(warning, error=True)

        self._handlers: Dict[type, Callable] = {
            PollStarted: self._on_poll_started,
            FetchFailed: self._on_fetch_failed,
            BranchesClassified: self._on_branches_classified,
            BranchDiscovered: self._on_branch_discovered,
            PollCompleted: self._on_poll_completed,
            WorktreeCreated: self._on_worktree_created,
            WorktreeCreateFailed: self._on_worktree_create_failed,
            WorktreeRemoved: self._on_worktree_removed,
            WorktreeRemoveFailed: self._on_worktree_remove_failed,
            HookStarted: self._on_hook_started,
            HookOutput: self._on_hook_output,
            HookFinished: self._on_hook_finished,
            UserInput: self._on_user_input,
            SettingsSubmitted: self._on_settings_submitted,
        }
        self._intents: Dict[Intent, Callable[[Optional[str]], None]] = {
            Intent.MOVE_UP: lambda branch: self._move(-1),
            Intent.MOVE_DOWN: lambda branch: self._move(1),
            Intent.CREATE: self._intent_create,
            Intent.DELETE: self._intent_delete,
            Intent.TOGGLE_TRACK: self._intent_toggle_track,
            Intent.UNTRACK: self._intent_untrack,
            Intent.CLEAR_TRACK: self._intent_clear_track,
            Intent.FORCE_POLL: lambda branch: self._intent_force_poll(),
            Intent.TOGGLE_AUTO_CREATE: lambda branch: self._intent_toggle_auto_create(),
            Intent.SHOW_HELP: lambda branch: self._toggle_overlay(ViewMode.HELP_OVERLAY),
            Intent.SHOW_LOGS: lambda branch: self._toggle_overlay(ViewMode.LOG_VIEW),
            Intent.BACK: lambda branch: self._back(),
            Intent.QUIT: lambda branch: self.shutdown(),
        }

    @classmethod
    def create(cls, git, emit: Emitter, store: Optional[ConfigStore] = None,
               log_buffer: Optional[LogBuffer] = None) -> "AppCore":
        """Wire every component for the repository behind `git`.

        Args:
            git: A GitRepository (or anything with the same capability methods)
            emit: Thread-safe callback delivering events to the consumer
            store: Config store override, mainly for tests
            log_buffer: Log ring override
        """
        repo_root = Path(git.repo_path)
        store = store or ConfigStore(repo_root, git.exclude_file)
        loaded = store.load()
        warnings = list(store.warnings)
        manager = WorktreeManager(git, repo_root)

        config = loaded
        live_branches: List[str] = []
        try:
            live = git.list_worktrees()
        except GitError as e:
            warnings.append(f"Could not list worktrees, cached state kept: {e}")
        else:
            config = manager.reconcile(loaded, live)
            live_branches = [wt.branch_name for wt in live if wt.branch_name and not wt.is_orphaned]

        if config != loaded and store.exists():
            try:
                store.save(config)
            except ConfigIOError as e:
                warnings.append(str(e))

        watcher = Watcher(git, emit, WatchPolicy.from_config(config, live_branches))
        return cls(
            config=config,
            store=store,
            manager=manager,
            jobs=BackgroundJobs(manager, emit),
            executor=HookExecutor(emit),
            watcher=watcher,
            repo_root=repo_root,
            log_buffer=log_buffer,
            live_worktree_branches=live_branches,
            warnings=warnings,
        )

    # Lifecycle

    def start(self) -> None:
        self.watcher.start()

    @property
    def running(self) -> bool:
        return self.state.running

    def shutdown(self) -> None:
        """Stop producers, mark in-flight hooks interrupted and flush Config.

        Hook subprocesses keep running detached; worktree jobs still queued
        are cancelled.
        """
        if not self.state.running:
            return
        self.state.running = False
        logger.info("Shutting down")
        self.watcher.stop()

        config = self.config
        for branch in list(self.state.hook_runs):
            entry = config.get_worktree(branch)
            if entry is not None and entry.hook_status.is_active:
                logger.info(f"Hook for {branch} still running; leaving it detached")
                config = self.manager.set_hook_status(config, branch, HookStatus.interrupted())
        self.state.hook_runs.clear()
        self.jobs.shutdown(wait=False)
        self.config = config
        self._save()

    # Event dispatch

    def handle(self, event) -> None:
        """Apply one event. Component failures become status messages, never exceptions."""
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug(f"Ignoring unknown event {event!r}")
            return
        if not self.state.running and not isinstance(event, UserInput):
            logger.debug(f"Ignoring {type(event).__name__} after shutdown")
            return
        handler(event)

    # Watcher events

    def _on_poll_started(self, event: PollStarted) -> None:
        self.state.polling = True

    def _on_fetch_failed(self, event: FetchFailed) -> None:
        self.state.last_error = event.reason
        self.log_buffer.add(FETCH_LOG_SOURCE.format(remote=event.remote), event.reason, OutputStream.STDERR)
        self._set_status(f"Fetch from {event.remote} failed: {event.reason}", error=True)

    def _on_branches_classified(self, event: BranchesClassified) -> None:
        self.state.classifications = {item.name: item for item in event.branches}
        # Reflect track changes made since the watcher captured its policy
        self._reclassify()

    def _on_branch_discovered(self, event: BranchDiscovered) -> None:
        if event.name not in self.state.discovered:
            self.state.discovered.append(event.name)
        if not event.initial:
            self.log_buffer.add(WATCHER_LOG_SOURCE, f"New branch on {self.config.remote_name}: {event.name}")

        if not self.config.auto_create_worktrees or self.state.mode is ViewMode.FIRST_RUN_SELECTION:
            return
        # The watcher's policy may predate the latest track decision
        kind = self._classify(event.name).kind
        if kind is ClassificationKind.TRACKED or (kind is ClassificationKind.UNDECIDED and not event.initial):
            logger.info(f"Auto-creating worktree for {event.name}")
            self._queue_create(event.name)

    def _on_poll_completed(self, event: PollCompleted) -> None:
        self.state.polling = False
        self.state.last_poll = event.timestamp
        if event.succeeded:
            self.state.last_poll_count = event.branch_count
            self.state.last_error = None
            # Written with the next save
            self.config = self.config.with_updates(last_fetch=event.timestamp)

    # Background job events

    def _on_worktree_created(self, event: WorktreeCreated) -> None:
        entry = event.entry
        branch = entry.branch_name
        self.state.activities.pop(branch, None)
        self.state.live_worktree_branches.add(branch)
        self._commit(self.manager.record_worktree(self.config, entry))
        self.log_buffer.add(AGENT_LOG_SOURCE, f"Created worktree for {branch} at {entry.path}")
        self._set_status(f"Created worktree for {branch}")
        if entry.hook_status.state is HookState.PENDING:
            self._start_hook(entry)

    def _on_worktree_create_failed(self, event: WorktreeCreateFailed) -> None:
        self.state.activities.pop(event.branch, None)
        self.log_buffer.add(event.branch, event.reason, OutputStream.STDERR)
        self._set_status(event.reason, error=True)

    def _on_worktree_removed(self, event: WorktreeRemoved) -> None:
        branch = event.branch
        self.state.activities.pop(branch, None)
        self.state.live_worktree_branches.discard(branch)
        self.state.hook_runs.pop(branch, None)
        self._commit(self.manager.forget_worktree(self.config, branch))
        self.log_buffer.add(AGENT_LOG_SOURCE, f"Removed worktree for {branch}")
        self._set_status(f"Deleted worktree for {branch}")

    def _on_worktree_remove_failed(self, event: WorktreeRemoveFailed) -> None:
        self.state.activities.pop(event.branch, None)
        self.log_buffer.add(event.branch, event.reason, OutputStream.STDERR)
        self._set_status(event.reason, error=True)

    # Executor events

    def _is_current_run(self, branch: str, run_id: int) -> bool:
        if self.state.hook_runs.get(branch) == run_id:
            return True
        logger.debug(f"Discarding hook event for {branch} run {run_id}: no longer current")
        return False

    def _start_hook(self, entry: WorktreeEntry) -> None:
        run_id = self.state.next_run_id
        self.state.next_run_id += 1
        self.state.hook_runs[entry.branch_name] = run_id

        working_dir = Path(entry.path)
        if self.config.command_working_dir:
            working_dir = working_dir / self.config.command_working_dir
        self.executor.run_hook(entry.branch_name, self.config.post_create_command, working_dir, run_id)

    def _on_hook_started(self, event: HookStarted) -> None:
        if not self._is_current_run(event.branch, event.run_id):
            return
        self._commit(self.manager.set_hook_status(self.config, event.branch, HookStatus.running()))

    def _on_hook_output(self, event: HookOutput) -> None:
        if not self._is_current_run(event.branch, event.run_id):
            return
        self.log_buffer.add(event.branch, event.line, event.stream, event.timestamp)

    def _on_hook_finished(self, event: HookFinished) -> None:
        if not self._is_current_run(event.branch, event.run_id):
            return
        del self.state.hook_runs[event.branch]

        if event.outcome is HookOutcome.SUCCEEDED:
            status = HookStatus.succeeded(event.exit_code or 0)
            if self.config.post_create_command:
                self._set_status(f"Hook for {event.branch} succeeded")
        elif event.outcome is HookOutcome.FAILED:
            status = HookStatus.failed(event.exit_code, event.reason or "hook failed")
            self.log_buffer.add(event.branch, f"Hook exited with code {event.exit_code}", OutputStream.STDERR)
            self._set_status(f"Hook for {event.branch} failed with exit code {event.exit_code}", error=True)
        else:
            status = HookStatus.failed(None, event.reason or "could not start hook")
            self.log_buffer.add(event.branch, f"Hook could not start: {event.reason}", OutputStream.STDERR)
            self._set_status(f"Hook for {event.branch} could not start: {event.reason}", error=True)

        self._commit(self.manager.set_hook_status(self.config, event.branch, status))

    # User input

    def _on_user_input(self, event: UserInput) -> None:
        if not self.state.running:
            return
        self._intents[event.intent](event.branch)

    def _target(self, branch: Optional[str]) -> Optional[str]:
        if branch is not None:
            return branch
        row = self.selected_row()
        return row.name if row else None

    def _move(self, delta: int) -> None:
        rows = self.rows()
        if not rows:
            self.state.selected_branch = None
            return
        index = self._selected_index(rows)
        index = max(0, min(len(rows) - 1, index + delta))
        self.state.selected_branch = rows[index].name

    def _intent_create(self, branch: Optional[str]) -> None:
        if self.state.mode is ViewMode.FIRST_RUN_SELECTION and branch is None:
            self._confirm_first_run()
            return
        target = self._target(branch)
        if target is None:
            return
        if self.manager.track_state(self.config, target) is not TrackState.TRACKED:
            self._commit(self.manager.set_track_state(self.config, target, TrackState.TRACKED))
        self._queue_create(target)

    def _confirm_first_run(self) -> None:
        self.state.mode = ViewMode.NORMAL
        self.state.previous_mode = ViewMode.NORMAL
        queued = 0
        for branch in sorted(self.config.tracked_branches):
            item = self.state.classifications.get(branch)
            if item is None or item.classification.kind is not ClassificationKind.TRACKED:
                continue
            if self._queue_create(branch):
                queued += 1
        self._save()
        self._set_status(f"Selection saved; creating {queued} worktree(s)")

    def _queue_create(self, branch: str) -> bool:
        """Hand a creation job to the background runner."""
        if branch in self.state.activities:
            self._set_status(f"{branch} is already {self.state.activities[branch].value}")
            return False
        if self.config.get_worktree(branch) is not None or branch in self.state.live_worktree_branches:
            self._set_status(f"{branch} already has a worktree")
            return False
        self.state.activities[branch] = Activity.CREATING
        self._set_status(f"Creating worktree for {branch}...")
        self.jobs.submit_create(self.config, branch)
        return True

    def _intent_delete(self, branch: Optional[str]) -> None:
        target = self._target(branch)
        if target is None:
            return
        entry = self.config.get_worktree(target)
        if entry is None:
            if target in self.state.live_worktree_branches:
                self._set_status(f"Worktree for {target} was not created by gwa", error=True)
            else:
                self._set_status(f"{target} has no worktree")
            return
        if target in self.state.activities:
            self._set_status(f"{target} is already {self.state.activities[target].value}")
            return
        if target in self.state.hook_runs:
            # The run id is dropped only once the removal succeeds
            logger.info(f"Deleting {target} while its hook runs")
        self.state.activities[target] = Activity.REMOVING
        self._set_status(f"Deleting worktree for {target}...")
        self.jobs.submit_remove(entry)

    def _intent_toggle_track(self, branch: Optional[str]) -> None:
        target = self._target(branch)
        if target is None:
            return
        current = self.manager.track_state(self.config, target)
        new_state = TrackState.UNTRACKED if current is TrackState.TRACKED else TrackState.TRACKED
        self._commit(self.manager.set_track_state(self.config, target, new_state))
        self._set_status(f"{target}: {new_state.value}")

    def _intent_untrack(self, branch: Optional[str]) -> None:
        target = self._target(branch)
        if target is None:
            return
        self._commit(self.manager.set_track_state(self.config, target, TrackState.UNTRACKED))
        self._set_status(f"{target}: untracked")

    def _intent_clear_track(self, branch: Optional[str]) -> None:
        target = self._target(branch)
        if target is None:
            return
        self._commit(self.manager.set_track_state(self.config, target, TrackState.UNDECIDED))
        self._set_status(f"{target}: undecided")

    def _intent_force_poll(self) -> None:
        self.watcher.request_poll()
        self._set_status(f"Polling {self.config.remote_name}...")

    def _intent_toggle_auto_create(self) -> None:
        enabled = not self.config.auto_create_worktrees
        self._commit(self.config.with_updates(auto_create_worktrees=enabled))
        self._set_status(f"Auto-create {'enabled' if enabled else 'disabled'}")

    def _on_settings_submitted(self, event: SettingsSubmitted) -> None:
        """Apply settings edited in the UI as one Config transition."""
        unknown = set(event.changes) - EDITABLE_SETTINGS
        if unknown:
            self._set_status(f"Cannot change {', '.join(sorted(unknown))} here", error=True)
            return
        try:
            config = self.config.with_updates(**event.changes)
        except ConfigError as e:
            self._set_status(f"Invalid setting: {e}", error=True)
            return

        changed = sorted(key for key, value in event.changes.items() if getattr(self.config, key) != value)
        if not changed:
            self._set_status("Settings unchanged")
            return

        interval_changed = config.poll_interval_seconds != self.config.poll_interval_seconds
        self._commit(config)
        if interval_changed:
            # The pending wait was scheduled with the old interval
            self.watcher.request_poll()
        for key in changed:
            self.log_buffer.add(CONFIG_LOG_SOURCE, f"{key} set to {getattr(config, key)!r}")
        if not self.state.save_pending:
            self._set_status(f"Settings saved ({', '.join(changed)})")

    def _toggle_overlay(self, mode: ViewMode) -> None:
        if self.state.mode is mode:
            self.state.mode = self.state.previous_mode
            return
        if self.state.mode not in (ViewMode.HELP_OVERLAY, ViewMode.LOG_VIEW):
            self.state.previous_mode = self.state.mode
        self.state.mode = mode

    def _back(self) -> None:
        if self.state.mode in (ViewMode.HELP_OVERLAY, ViewMode.LOG_VIEW):
            self.state.mode = self.state.previous_mode
        else:
            self.state.status_message = None
            self.state.status_is_error = False

    # Config transitions

    def _commit(self, config: Config) -> None:
        """Adopt a new Config, refresh the watcher policy and persist."""
        if config == self.config:
            return
        self.config = config
        self._refresh_policy()
        self._save()

    def _save(self) -> None:
        try:
            self.store.save(self.config)
        except ConfigIOError as e:
            # Memory stays authoritative; the next mutation retries
            logger.error(str(e))
            self.state.save_pending = True
            self._set_status(f"Could not save config: {e.message}", error=True)
        else:
            self.state.save_pending = False

    def _policy(self) -> WatchPolicy:
        return WatchPolicy.from_config(self.config, self.state.live_worktree_branches)

    def _refresh_policy(self) -> None:
        self.watcher.update_policy(self._policy())
        self._reclassify()

    def _classify(self, name: str):
        return classify(name, self._policy())

    def _reclassify(self) -> None:
        policy = self._policy()
        self.state.classifications = {
            name: ClassifiedBranch(item.branch, classify(name, policy))
            for name, item in self.state.classifications.items()
        }

    def _set_status(self, message: str, error: bool = False) -> None:
        self.state.status_message = message
        self.state.status_is_error = error

    # Snapshot

    def rows(self) -> Tuple[BranchRow, ...]:
        """Branch rows: worktrees first, then by name."""
        config = self.config
        names = set(self.state.classifications)
        names.update(entry.branch_name for entry in config.worktrees)
        names.update(self.state.activities)

        rows = []
        for name in names:
            item = self.state.classifications.get(name)
            rows.append(BranchRow(
                name=name,
                classification=item.classification if item else None,
                track_state=self.manager.track_state(config, name),
                worktree=config.get_worktree(name),
                activity=self.state.activities.get(name),
                is_default=name == config.base_branch,
                on_remote=item is not None,
            ))
        rows.sort(key=lambda row: (not row.has_worktree, row.name))
        return tuple(rows)

    def _selected_index(self, rows: Tuple[BranchRow, ...]) -> int:
        for index, row in enumerate(rows):
            if row.name == self.state.selected_branch:
                return index
        return 0

    def selected_row(self) -> Optional[BranchRow]:
        rows = self.rows()
        if not rows:
            return None
        return rows[self._selected_index(rows)]

    def snapshot(self) -> AppSnapshot:
        rows = self.rows()
        state = self.state
        return AppSnapshot(
            mode=state.mode,
            rows=rows,
            selected=self._selected_index(rows) if rows else 0,
            remote_name=self.config.remote_name,
            poll_interval_seconds=self.config.poll_interval_seconds,
            auto_create=self.config.auto_create_worktrees,
            polling=state.polling,
            last_poll=state.last_poll,
            last_poll_count=state.last_poll_count,
            last_error=state.last_error,
            status_message=state.status_message,
            status_is_error=state.status_is_error,
            worktree_count=len(self.config.worktrees),
            log_entries=tuple(self.log_buffer.entries()),
            repo_root=self.repo_root,
            post_create_command=self.config.post_create_command,
            log_total=self.log_buffer.total,
            running=state.running,
        )
