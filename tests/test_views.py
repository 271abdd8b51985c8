"""Tests for the renderers and formatters"""
import io
from datetime import datetime, timedelta, timezone

import pytest
from rich.console import Console

from worktree_agent.core.state import Activity, BranchRow
from worktree_agent.formatters import format_classification, format_relative, format_row_state, spinner_frame
from worktree_agent.models.branch import BranchClassification, ClassificationKind, TrackState
from worktree_agent.models.events import Intent, OutputStream, UserInput
from worktree_agent.models.worktree import HookStatus, WorktreeEntry
from worktree_agent.ui.views import FIRST_RUN_BANNER, render_main, render_status_bar


def to_text(renderable, width=120):
    console = Console(file=io.StringIO(), width=width, record=True)
    console.print(renderable)
    return console.export_text()


class TestFormatters:
    """Test the text helpers."""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=1), "just now"),
        (timedelta(seconds=42), "42s ago"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(days=2), "2d ago"),
    ])
    def test_format_relative(self, delta, expected):
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert format_relative(now - delta, now) == expected

    def test_format_relative_never(self):
        assert format_relative(None) == "never"

    def test_ignored_shows_pattern(self):
        text = format_classification(BranchClassification(ClassificationKind.IGNORED, "dependabot/*"))
        assert text.plain == "× ignored (dependabot/*)"

    def test_spinner_wraps(self):
        assert spinner_frame(0) == spinner_frame(10)

    def test_row_state_prefers_activity(self):
        row = BranchRow(
            name="feature/x",
            classification=BranchClassification(ClassificationKind.TRACKED),
            track_state=TrackState.TRACKED,
            worktree=WorktreeEntry("feature/x", "/w/feature-x", hook_status=HookStatus.failed(1, "exited with code 1")),
            activity=Activity.REMOVING,
        )
        assert "removing" in format_row_state(row).plain

    def test_row_state_shows_hook_failure(self):
        row = BranchRow(
            name="feature/x",
            classification=BranchClassification(ClassificationKind.ALREADY_WORKTREE),
            track_state=TrackState.TRACKED,
            worktree=WorktreeEntry("feature/x", "/w/feature-x", hook_status=HookStatus.failed(1, "exited with code 1")),
        )
        assert format_row_state(row).plain == "✗ failed (1)"

    def test_row_state_for_foreign_worktree(self):
        row = BranchRow(
            name="main",
            classification=BranchClassification(ClassificationKind.ALREADY_WORKTREE),
            track_state=TrackState.UNDECIDED,
        )
        assert "checked out elsewhere" in format_row_state(row).plain


class TestViews:
    """Test rendering snapshots."""

    def test_waiting_for_first_poll(self, harness, tracked_config):
        h = harness(tracked_config)
        assert "Waiting for the first poll of origin" in to_text(render_main(h.core.snapshot()))

    def test_branch_list(self, harness, tracked_config):
        h = harness(tracked_config)
        h.poll()
        h.core.handle(UserInput(Intent.CREATE, "feature/x"))
        while h.drain():
            pass

        text = to_text(render_main(h.core.snapshot(), height=20))

        assert "feature/x" in text
        assert "../feature-x" in text
        assert "main" in text
        assert "untracked" in text

    def test_first_run_banner(self, harness):
        h = harness()
        h.poll()
        text = to_text(render_main(h.core.snapshot(), height=20), width=200)
        assert FIRST_RUN_BANNER in text
        assert "undecided" in text

    def test_long_list_keeps_selection_visible(self, harness, tracked_config):
        branches = ["main", "feature/x"] + [f"topic-{i:02d}" for i in range(30)]
        h = harness(tracked_config, branches=branches)
        h.poll()
        h.core.state.selected_branch = "topic-29"

        text = to_text(render_main(h.core.snapshot(), height=8))

        assert "topic-29" in text
        assert "feature/x" not in text

    def test_log_view(self, harness, tracked_config):
        h = harness(tracked_config)
        h.core.log_buffer.add("feature/x", "npm WARN deprecated", OutputStream.STDERR)
        h.core.handle(UserInput(Intent.SHOW_LOGS))
        assert "[feature/x] npm WARN deprecated" in to_text(render_main(h.core.snapshot()))

    def test_help(self, harness, tracked_config):
        h = harness(tracked_config)
        h.core.handle(UserInput(Intent.SHOW_HELP))
        assert "Toggle tracked/untracked" in to_text(render_main(h.core.snapshot()))

    def test_status_bar(self, harness, tracked_config):
        h = harness(tracked_config)
        h.git.fetch_error = "network unreachable"
        h.poll()

        text = to_text(render_status_bar(h.core.snapshot()), width=200)

        assert "origin: polled just now" in text
        assert "auto-create: off" in text
        assert "network unreachable" in text
