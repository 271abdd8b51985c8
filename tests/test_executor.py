"""Tests for running post-create hooks"""
import sys

import pytest

from worktree_agent.models.events import HookFinished, HookOutcome, HookOutput, HookStarted, OutputStream
from worktree_agent.services.executor import HookExecutor

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="hook commands use a POSIX shell")


def run(collected_events, command, working_dir, run_id=1):
    handle = HookExecutor(collected_events).run_hook("feature/x", command, working_dir, run_id)
    assert handle.wait(10)
    return collected_events.events


class TestHookExecutor:
    """Test hook event streams."""

    def test_no_command_emits_only_finished(self, collected_events, temp_dir):
        events = run(collected_events, None, temp_dir)
        assert events == [HookFinished("feature/x", 1, HookOutcome.SUCCEEDED, exit_code=0)]

    def test_blank_command_emits_only_finished(self, collected_events, temp_dir):
        events = run(collected_events, "   ", temp_dir)
        assert [type(e) for e in events] == [HookFinished]

    def test_successful_command(self, collected_events, temp_dir):
        events = run(collected_events, "echo hello && echo world", temp_dir, run_id=7)

        assert isinstance(events[0], HookStarted)
        assert [e.line for e in events if isinstance(e, HookOutput)] == ["hello", "world"]
        finished = events[-1]
        assert finished.outcome is HookOutcome.SUCCEEDED
        assert finished.exit_code == 0
        assert all(e.run_id == 7 for e in events)

    def test_command_runs_in_working_dir(self, collected_events, temp_dir):
        (temp_dir / "marker.txt").write_text("here")
        events = run(collected_events, "cat marker.txt", temp_dir)
        assert [e.line for e in events if isinstance(e, HookOutput)] == ["here"]

    def test_failing_command(self, collected_events, temp_dir):
        events = run(collected_events, "exit 1", temp_dir)

        assert [type(e) for e in events] == [HookStarted, HookFinished]
        finished = events[-1]
        assert finished.outcome is HookOutcome.FAILED
        assert finished.exit_code == 1
        assert finished.reason == "exited with code 1"

    def test_stderr_is_tagged(self, collected_events, temp_dir):
        events = run(collected_events, "echo oops >&2; exit 3", temp_dir)

        output = [e for e in events if isinstance(e, HookOutput)]
        assert [(e.stream, e.line) for e in output] == [(OutputStream.STDERR, "oops")]
        assert events[-1].exit_code == 3

    def test_missing_working_dir_is_spawn_error(self, collected_events, temp_dir):
        events = run(collected_events, "echo hi", temp_dir / "gone")

        assert [type(e) for e in events] == [HookFinished]
        assert events[0].outcome is HookOutcome.SPAWN_ERROR
        assert "does not exist" in events[0].reason

    def test_output_precedes_finished(self, collected_events, temp_dir):
        events = run(collected_events, "for i in 1 2 3 4 5; do echo line$i; echo err$i >&2; done", temp_dir)

        assert isinstance(events[-1], HookFinished)
        output = [e for e in events if isinstance(e, HookOutput)]
        assert len(output) == 10
        stdout = [e.line for e in output if e.stream is OutputStream.STDOUT]
        assert stdout == [f"line{i}" for i in range(1, 6)]

    def test_handle_exposes_process(self, collected_events, temp_dir):
        handle = HookExecutor(collected_events).run_hook("feature/x", "true", temp_dir, 1)
        assert handle.wait(10)
        assert handle.is_done()
        assert handle.pid is not None

    def test_background_child_does_not_block_finish(self, collected_events, temp_dir):
        executor = HookExecutor(collected_events, output_grace=0.2)
        handle = executor.run_hook("feature/x", "echo before; sleep 5 &", temp_dir, 1)

        assert handle.wait(3)
        events = collected_events.events
        finished = [e for e in events if isinstance(e, HookFinished)]
        assert finished == [HookFinished("feature/x", 1, HookOutcome.SUCCEEDED, exit_code=0)]
        assert [e.line for e in events if isinstance(e, HookOutput)] == ["before"]
