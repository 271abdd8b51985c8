"""Tests for the Config value and branch name sanitizing"""
from datetime import datetime, timezone
from pathlib import Path

import pytest

from worktree_agent.config import Config, compile_pattern, sanitize_branch_name
from worktree_agent.constants import CONFIG_VERSION
from worktree_agent.exceptions import ConfigError
from worktree_agent.models.worktree import HookStatus, WorktreeEntry


class TestSanitizeBranchName:
    """Test flattening branch names into directory names."""

    def test_slashes_become_dashes(self):
        assert sanitize_branch_name("feature/x") == "feature-x"

    def test_every_hostile_character_is_replaced(self):
        assert sanitize_branch_name('a/b\\c:d*e?f"g<h>i|j') == "a-b-c-d-e-f-g-h-i-j"

    def test_plain_name_unchanged(self):
        assert sanitize_branch_name("release-1.2") == "release-1.2"

    def test_result_never_contains_hostile_characters(self):
        for name in ["x/y/z", "weird:*name?", "<tag>|pipe"]:
            assert not any(ch in sanitize_branch_name(name) for ch in '/\\:*?"<>|')

    def test_known_collision(self):
        """feature/x and feature-x map to the same directory."""
        assert sanitize_branch_name("feature/x") == sanitize_branch_name("feature-x")

    def test_distinct_names_without_substitution_do_not_collide(self):
        names = ["feature/a", "feature/b", "bugfix/a", "a"]
        assert len({sanitize_branch_name(n) for n in names}) == len(names)


class TestConfigValidation:
    """Test Config construction and validation."""

    def test_defaults(self):
        config = Config()
        assert config.version == CONFIG_VERSION
        assert config.poll_interval_seconds == 10
        assert config.remote_name == "origin"
        assert config.worktree_base_dir == ".."
        assert config.ignore_patterns == ("dependabot/*", "renovate/*")
        assert config.auto_create_worktrees is False
        assert config.post_create_command is None

    def test_overlapping_track_sets_rejected(self):
        with pytest.raises(ValueError, match="both tracked and untracked"):
            Config(tracked_branches=frozenset({"a"}), untracked_branches=frozenset({"a", "b"}))

    def test_negative_poll_interval_rejected(self):
        with pytest.raises(ConfigError):
            Config(poll_interval_seconds=-1)

    def test_non_integer_poll_interval_rejected(self):
        with pytest.raises(ConfigError):
            Config(poll_interval_seconds="10")

    def test_empty_remote_rejected(self):
        with pytest.raises(ConfigError):
            Config(remote_name="  ")

    def test_empty_base_dir_rejected(self):
        with pytest.raises(ConfigError):
            Config(worktree_base_dir="")

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ConfigError):
            Config(ignore_patterns=("",))

    def test_with_updates_validates(self):
        config = Config(tracked_branches=frozenset({"a"}))
        with pytest.raises(ConfigError):
            config.with_updates(untracked_branches=frozenset({"a"}))

    def test_config_is_immutable(self):
        config = Config()
        with pytest.raises(AttributeError):
            config.poll_interval_seconds = 5


class TestConfigHelpers:
    """Test derived properties."""

    def test_first_run_when_nothing_decided(self):
        assert Config().is_first_run is True

    def test_not_first_run_with_track_decision(self):
        assert Config(untracked_branches=frozenset({"main"})).is_first_run is False

    def test_not_first_run_with_worktree(self):
        entry = WorktreeEntry("feature/x", Path("/tmp/feature-x"))
        assert Config(worktrees=(entry,)).is_first_run is False

    def test_resolve_relative_base_dir(self, temp_dir):
        config = Config(worktree_base_dir="../trees")
        assert config.resolve_base_dir(temp_dir / "repo") == temp_dir / "repo" / ".." / "trees"

    def test_resolve_absolute_base_dir(self, temp_dir):
        config = Config(worktree_base_dir=str(temp_dir / "trees"))
        assert config.resolve_base_dir(temp_dir / "repo") == temp_dir / "trees"

    def test_get_worktree(self):
        entry = WorktreeEntry("feature/x", Path("/tmp/feature-x"))
        config = Config(worktrees=(entry,))
        assert config.get_worktree("feature/x") is entry
        assert config.get_worktree("other") is None

    def test_compile_pattern_matches_nested_names(self):
        assert compile_pattern("dependabot/*").match("dependabot/npm_and_yarn/lodash-4.17.21")
        assert not compile_pattern("dependabot/*").match("feature/dependabot")


class TestConfigSerialization:
    """Test dictionary conversion."""

    def test_to_dict_sorts_sets(self):
        config = Config(tracked_branches=frozenset({"b", "a"}))
        assert config.to_dict()["tracked_branches"] == ["a", "b"]

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"remote_name": "upstream", "color": "blue"})
        assert config.remote_name == "upstream"

    def test_from_dict_restores_types(self):
        fetched = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        original = Config(
            last_fetch=fetched,
            tracked_branches=frozenset({"feature/x"}),
            worktrees=(WorktreeEntry("feature/x", Path("/w/feature-x"), fetched, HookStatus.failed(1, "exited with code 1")),),
        )
        restored = Config.from_dict(original.to_dict())
        assert restored == original
        assert isinstance(restored.tracked_branches, frozenset)
        assert restored.worktrees[0].hook_status.exit_code == 1

    def test_from_dict_null_values_use_defaults(self):
        config = Config.from_dict({"post_create_command": None, "poll_interval_seconds": None})
        assert config.poll_interval_seconds == 10
