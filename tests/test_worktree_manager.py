"""Tests for the worktree manager against real repositories"""
from pathlib import Path

import pytest

from worktree_agent.config import Config
from worktree_agent.exceptions import GitOperationError, PathAlreadyExistsError
from worktree_agent.models.branch import TrackState
from worktree_agent.models.worktree import HookState, HookStatus, LiveWorktree, WorktreeEntry
from worktree_agent.services.git import GitRepository
from worktree_agent.services.worktree_manager import WorktreeManager


@pytest.fixture
def manager(git_repo):
    repo_root = Path(git_repo.working_dir)
    return WorktreeManager(GitRepository(repo_root), repo_root)


class TestCreateWorktree:
    """Test creating worktrees with git."""

    def test_path_uses_sanitized_branch(self, manager, git_repo):
        path = manager.worktree_path(Config(), "feature/x")
        assert path == Path(git_repo.working_dir) / ".." / "feature-x"

    def test_create_worktree(self, manager, git_repo):
        entry = manager.create_worktree(Config(), "feature/x")

        assert entry.branch_name == "feature/x"
        assert entry.hook_status.state is HookState.PENDING
        assert entry.path.is_dir()
        assert (entry.path / "README.md").exists()
        branches = {wt.branch_name for wt in manager.git.list_worktrees()}
        assert "feature/x" in branches

    def test_created_branch_tracks_remote(self, manager, git_repo):
        manager.create_worktree(Config(), "feature/x")
        tracking = git_repo.git.rev_parse("--abbrev-ref", "feature/x@{upstream}")
        assert tracking == "origin/feature/x"

    def test_create_is_idempotent_for_known_entry(self, manager):
        entry = manager.create_worktree(Config(), "feature/x")
        config = manager.record_worktree(Config(), entry)
        assert manager.create_worktree(config, "feature/x") == entry

    def test_existing_path_rejected(self, manager):
        target = manager.worktree_path(Config(), "feature/x")
        target.mkdir(parents=True)
        with pytest.raises(PathAlreadyExistsError):
            manager.create_worktree(Config(), "feature/x")

    def test_missing_branch_raises_git_operation_error(self, manager):
        with pytest.raises(GitOperationError) as exc_info:
            manager.create_worktree(Config(), "no-such-branch")
        assert exc_info.value.branch == "no-such-branch"
        assert not manager.worktree_path(Config(), "no-such-branch").exists()

    def test_existing_local_branch_is_reused(self, manager, git_repo):
        git_repo.git.branch("feature/x", "origin/feature/x")
        entry = manager.create_worktree(Config(), "feature/x")
        assert entry.path.is_dir()

    def test_custom_base_dir(self, manager, git_repo, temp_dir):
        config = Config(worktree_base_dir=str(temp_dir / "trees"))
        entry = manager.create_worktree(config, "feature/x")
        assert entry.path == temp_dir / "trees" / "feature-x"


class TestDeleteWorktree:
    """Test removing worktrees."""

    def test_delete_removes_directory_and_entry(self, manager):
        entry = manager.create_worktree(Config(), "feature/x")
        config = manager.record_worktree(Config(), entry)

        config = manager.delete_worktree(config, entry)

        assert config.get_worktree("feature/x") is None
        assert not entry.path.exists()

    def test_delete_with_missing_directory_prunes(self, manager):
        import shutil

        entry = manager.create_worktree(Config(), "feature/x")
        config = manager.record_worktree(Config(), entry)
        shutil.rmtree(entry.path)

        config = manager.delete_worktree(config, entry)

        assert config.worktrees == ()
        paths = [Path(wt.path) for wt in manager.git.list_worktrees()]
        assert entry.path.resolve() not in [p.resolve() for p in paths]


class TestTransitions:
    """Test the pure Config transitions."""

    def test_set_track_state_keeps_sets_disjoint(self):
        config = Config()
        for state in [TrackState.TRACKED, TrackState.UNTRACKED, TrackState.TRACKED, TrackState.UNDECIDED]:
            config = WorktreeManager.set_track_state(config, "b", state)
            assert not config.tracked_branches & config.untracked_branches
        assert WorktreeManager.track_state(config, "b") is TrackState.UNDECIDED

    def test_untrack_moves_branch(self):
        config = Config(tracked_branches=frozenset({"b"}))
        config = WorktreeManager.set_track_state(config, "b", TrackState.UNTRACKED)
        assert config.tracked_branches == frozenset()
        assert config.untracked_branches == {"b"}

    def test_record_replaces_existing_entry(self):
        first = WorktreeEntry("a", Path("/w/a"))
        second = WorktreeEntry("a", Path("/w/a2"))
        config = WorktreeManager.record_worktree(Config(worktrees=(first,)), second)
        assert config.worktrees == (second,)

    def test_set_hook_status_for_unknown_branch_is_noop(self):
        config = Config()
        assert WorktreeManager.set_hook_status(config, "ghost", HookStatus.running()) is config

    def test_forget_unknown_branch_is_noop(self):
        config = Config()
        assert WorktreeManager.forget_worktree(config, "ghost") is config


class TestReconcile:
    """Test aligning cached entries with the live worktree list."""

    def test_reconcile(self, temp_dir):
        kept_path = temp_dir / "kept"
        running_path = temp_dir / "running"
        for path in (kept_path, running_path):
            path.mkdir()
        config = Config(worktrees=(
            WorktreeEntry("kept", kept_path, hook_status=HookStatus.succeeded()),
            WorktreeEntry("running", running_path, hook_status=HookStatus.running()),
            WorktreeEntry("gone", temp_dir / "gone", hook_status=HookStatus.succeeded()),
        ))
        live = [
            LiveWorktree(str(temp_dir / "repo"), "main", "a", True, False),
            LiveWorktree(str(kept_path), "kept", "b", False, False),
            LiveWorktree(str(running_path), "running", "c", False, False),
        ]

        config = WorktreeManager(None, temp_dir / "repo").reconcile(config, live)

        states = {w.branch_name: w.hook_status.state for w in config.worktrees}
        assert states == {"kept": HookState.SUCCEEDED, "running": HookState.INTERRUPTED}
