"""Runs post-create hook commands and streams their output as events."""

import os
import subprocess
import threading
import time
from pathlib import Path
from typing import IO, Optional, Union

from worktree_agent.constants import HOOK_OUTPUT_GRACE_SECONDS
from worktree_agent.exceptions import HookSpawnError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.events import (
    Emitter,
    HookFinished,
    HookOutcome,
    HookOutput,
    HookStarted,
    OutputStream,
)

logger = get_logger(__name__)


class HookHandle:
    """Handle on one hook run; `wait` blocks until HookFinished was emitted."""

    def __init__(self, branch: str, run_id: int, command: Optional[str]):
        self.branch = branch
        self.run_id = run_id
        self.command = command
        self.process: Optional[subprocess.Popen] = None
        self._done = threading.Event()

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def is_done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)


class HookExecutor:
    """Starts hook commands on worker threads.

    Every run emits HookStarted, any number of HookOutput lines, then exactly
    one HookFinished. A run without a command emits only HookFinished.
    Output read more than `output_grace` seconds after the shell exits comes
    from a lingering background child and may follow HookFinished.
    """

    def __init__(self, emit: Emitter, output_grace: float = HOOK_OUTPUT_GRACE_SECONDS):
        self.emit = emit
        self.output_grace = output_grace

    def run_hook(
        self,
        branch: str,
        command: Optional[str],
        working_dir: Union[str, Path],
        run_id: int,
    ) -> HookHandle:
        """Start `command` in `working_dir` through the shell; never blocks.

        Args:
            branch: Branch the worktree belongs to
            command: Shell command line, or None when no hook is configured
            working_dir: Directory the command runs in
            run_id: Identifier echoed on every event of this run
        """
        handle = HookHandle(branch, run_id, command)

        if not command or not command.strip():
            self.emit(HookFinished(branch=branch, run_id=run_id, outcome=HookOutcome.SUCCEEDED, exit_code=0))
            handle._done.set()
            return handle

        thread = threading.Thread(
            target=self._run,
            args=(handle, Path(working_dir)),
            name=f"hook-{branch}",
            daemon=True,
        )
        thread.start()
        return handle

    def _spawn(self, command: str, working_dir: Path) -> subprocess.Popen:
        if not working_dir.is_dir():
            raise HookSpawnError(command, f"working directory does not exist: {working_dir}")
        try:
            return subprocess.Popen(
                command,
                shell=True,
                cwd=str(working_dir),
                env=os.environ.copy(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
                # Own session so the hook survives the agent quitting
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            raise HookSpawnError(command, str(e)) from e

    def _pump(self, handle: HookHandle, pipe: IO[str], stream: OutputStream) -> None:
        try:
            for line in pipe:
                self.emit(HookOutput(
                    branch=handle.branch,
                    run_id=handle.run_id,
                    stream=stream,
                    line=line.rstrip("\r\n"),
                ))
        except (OSError, ValueError) as e:
            logger.debug(f"Output reader for {handle.branch} stopped: {e}")
        finally:
            pipe.close()

    def _run(self, handle: HookHandle, working_dir: Path) -> None:
        branch, run_id, command = handle.branch, handle.run_id, handle.command
        try:
            try:
                process = self._spawn(command, working_dir)
            except HookSpawnError as e:
                logger.error(str(e))
                self.emit(HookFinished(
                    branch=branch,
                    run_id=run_id,
                    outcome=HookOutcome.SPAWN_ERROR,
                    reason=e.message,
                ))
                return

            handle.process = process
            logger.info(f"Running hook for {branch} (pid {process.pid}): {command}")
            self.emit(HookStarted(branch=branch, run_id=run_id, command=command))

            readers = [
                threading.Thread(
                    target=self._pump,
                    args=(handle, process.stdout, OutputStream.STDOUT),
                    name=f"hook-{branch}-stdout",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._pump,
                    args=(handle, process.stderr, OutputStream.STDERR),
                    name=f"hook-{branch}-stderr",
                    daemon=True,
                ),
            ]
            for reader in readers:
                reader.start()

            exit_code = process.wait()
            # Output lines must precede HookFinished
            deadline = time.monotonic() + self.output_grace
            for reader in readers:
                reader.join(max(0.0, deadline - time.monotonic()))
            if any(reader.is_alive() for reader in readers):
                logger.warning(
                    f"Hook for {branch} exited but a background process still holds its output; "
                    f"later lines are dropped"
                )

            if exit_code == 0:
                logger.info(f"Hook for {branch} succeeded")
                self.emit(HookFinished(branch=branch, run_id=run_id, outcome=HookOutcome.SUCCEEDED, exit_code=0))
            else:
                logger.warning(f"Hook for {branch} exited with code {exit_code}")
                self.emit(HookFinished(
                    branch=branch,
                    run_id=run_id,
                    outcome=HookOutcome.FAILED,
                    exit_code=exit_code,
                    reason=f"exited with code {exit_code}",
                ))
        finally:
            handle._done.set()
