"""Pytest fixtures for git-worktree-agent tests"""
import shutil
import tempfile
import threading
import time
from concurrent.futures import Future
from pathlib import Path

import git
import pytest

from worktree_agent.config import Config
from worktree_agent.core.app_core import AppCore
from worktree_agent.core.loop import EventInbox
from worktree_agent.exceptions import FetchError, GitError
from worktree_agent.models.branch import BranchRef
from worktree_agent.models.worktree import LiveWorktree
from worktree_agent.services.classifier import WatchPolicy
from worktree_agent.services.config_store import ConfigStore
from worktree_agent.services.executor import HookExecutor
from worktree_agent.services.jobs import BackgroundJobs
from worktree_agent.services.watcher import Watcher
from worktree_agent.services.worktree_manager import WorktreeManager


def _configure_user(repo):
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def remote_repo(temp_dir):
    """A bare repository playing the remote, seeded with main and feature/x."""
    bare_path = temp_dir / "remote.git"
    bare = git.Repo.init(bare_path, bare=True)

    seed_path = temp_dir / "seed"
    seed = git.Repo.init(seed_path)
    _configure_user(seed)
    (seed_path / "README.md").write_text("# Test Repository\n")
    seed.index.add(["README.md"])
    seed.index.commit("Initial commit")
    seed.git.branch("-M", "main")
    seed.git.branch("feature/x")
    seed.create_remote("origin", str(bare_path))
    seed.git.push("origin", "main", "feature/x")
    bare.git.symbolic_ref("HEAD", "refs/heads/main")

    yield bare

    seed.close()
    bare.close()


@pytest.fixture
def push_branch(temp_dir, remote_repo):
    """Create a branch on the remote (or delete it with delete=True)."""
    seed = git.Repo(temp_dir / "seed")

    def _push(name, delete=False):
        if delete:
            seed.git.push("origin", "--delete", name)
        else:
            seed.git.branch("-f", name, "main")
            seed.git.push("origin", name)

    yield _push
    seed.close()


@pytest.fixture
def git_repo(temp_dir, remote_repo):
    """A clone of the remote inside its own workspace directory.

    Worktrees land next to the clone, inside `workspace`, with the default
    base directory "..".
    """
    workspace = temp_dir / "workspace"
    workspace.mkdir()
    repo = git.Repo.clone_from(str(temp_dir / "remote.git"), workspace / "repo")
    _configure_user(repo)
    yield repo
    repo.close()


class FakeGit:
    """In-memory capability provider.

    `branches` is what the remote lists; set `fetch_error` to make fetch fail.
    `fetch_gate`, when set, blocks every fetch until the event is set.
    """

    def __init__(self, repo_path, branches=(), remotes=("origin",)):
        self.repo_path = Path(repo_path)
        self.branches = list(branches)
        self.remotes = list(remotes)
        self.fetch_error = None
        self.fetch_gate = None
        self.fetch_calls = 0
        self.worktrees = []
        self.added = []
        self.removed = []
        self.add_error = None
        self.remove_error = None
        self._lock = threading.Lock()

    @property
    def exclude_file(self):
        return self.repo_path / ".git" / "info" / "exclude"

    def fetch(self, remote):
        with self._lock:
            self.fetch_calls += 1
        if self.fetch_gate is not None:
            self.fetch_gate.wait(10)
        if self.fetch_error:
            raise FetchError(remote, self.fetch_error)

    def list_remote_branches(self, remote):
        return [BranchRef(name, f"sha-{name}") for name in self.branches]

    def list_remotes(self):
        return list(self.remotes)

    def default_branch(self, remote):
        return "main" if "main" in self.branches else None

    def add_worktree(self, branch, path, remote):
        if self.add_error:
            raise GitError("worktree add", self.add_error)
        if branch not in self.branches:
            raise GitError("worktree add", f"invalid reference: {remote}/{branch}")
        Path(path).mkdir(parents=True)
        self.added.append((branch, Path(path)))
        self.worktrees.append(LiveWorktree(str(path), branch, "abc123", False, False))

    def remove_worktree(self, path, force=False):
        if self.remove_error:
            raise GitError("worktree remove", self.remove_error)
        self.removed.append(Path(path))
        shutil.rmtree(path, ignore_errors=True)
        self.worktrees = [wt for wt in self.worktrees if Path(wt.path) != Path(path)]

    def prune_worktrees(self):
        pass

    def list_worktrees(self):
        main = LiveWorktree(str(self.repo_path), "main", "abc123", True, False)
        return [main] + list(self.worktrees)


class InlineJobs(BackgroundJobs):
    """Runs jobs on the calling thread so tests stay deterministic."""

    def submit_create(self, config, branch):
        future = Future()
        self._create(config, branch)
        future.set_result(None)
        return future

    def submit_remove(self, entry):
        future = Future()
        self._remove(entry)
        future.set_result(None)
        return future


class CoreHarness:
    """AppCore wired to a FakeGit, an inbox and inline jobs."""

    def __init__(self, repo_root, config=None, branches=("main", "feature/x")):
        self.repo_root = Path(repo_root)
        self.repo_root.mkdir(parents=True, exist_ok=True)
        self.git = FakeGit(self.repo_root, branches)
        self.inbox = EventInbox()
        self.store = ConfigStore(self.repo_root)
        if config is not None:
            self.store.save(config)
        config = self.store.load()
        self.manager = WorktreeManager(self.git, self.repo_root)
        self.watcher = Watcher(self.git, self.inbox.put, WatchPolicy.from_config(config))
        self.core = AppCore(
            config=config,
            store=self.store,
            manager=self.manager,
            jobs=InlineJobs(self.manager, self.inbox.put),
            executor=HookExecutor(self.inbox.put),
            watcher=self.watcher,
            repo_root=self.repo_root,
        )

    def poll(self):
        """Run one watcher tick with the core's current policy and apply its events."""
        self.watcher.poll_once(self.watcher.policy)
        return self.drain()

    def drain(self):
        events = self.inbox.drain()
        for event in events:
            self.core.handle(event)
        return events

    def pump_until(self, predicate, timeout=10.0):
        """Apply events as they arrive until `predicate()` holds."""
        deadline = time.monotonic() + timeout
        while not predicate():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AssertionError("condition not reached before timeout")
            event = self.inbox.get(timeout=min(remaining, 0.1))
            if event is not None:
                self.core.handle(event)


@pytest.fixture
def fake_git(temp_dir):
    repo_root = temp_dir / "workspace" / "repo"
    repo_root.mkdir(parents=True)
    return FakeGit(repo_root, ["main", "feature/x"])


@pytest.fixture
def collected_events():
    """A thread-safe list plus an emit callback appending to it."""
    events = []
    lock = threading.Lock()

    def emit(event):
        with lock:
            events.append(event)

    emit.events = events
    return emit


@pytest.fixture
def harness(temp_dir):
    """Factory for CoreHarness instances rooted in the temp directory."""

    def _make(config=None, branches=("main", "feature/x")):
        return CoreHarness(temp_dir / "workspace" / "repo", config=config, branches=branches)

    return _make


@pytest.fixture
def tracked_config():
    """A config that is past first run with feature/x tracked."""
    return Config(tracked_branches=frozenset({"feature/x"}), untracked_branches=frozenset({"main"}))
