"""Custom exceptions for git-worktree-agent"""

from pathlib import Path
from typing import Optional, Union


class WorktreeAgentError(Exception):
    """Base exception for all git-worktree-agent errors."""
    pass


class GitError(WorktreeAgentError):
    """Exception raised when a git capability call fails.

    The message is whatever git reported; callers treat it as opaque.
    """

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"git {operation} failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class FetchError(GitError):
    """Exception raised when fetching from the remote fails."""

    def __init__(self, remote: str, message: Optional[str] = None):
        self.remote = remote
        super().__init__(f"fetch {remote}", message)


class WorktreeError(WorktreeAgentError):
    """Base exception for worktree lifecycle failures."""
    pass


class PathAlreadyExistsError(WorktreeError):
    """Exception raised when the target directory exists and is not a known worktree."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Worktree path already exists: {self.path}")


class GitOperationError(WorktreeError):
    """Exception raised for errors in worktree git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class HookSpawnError(WorktreeAgentError):
    """Exception raised when a hook command cannot be started."""

    def __init__(self, command: str, message: str):
        self.command = command
        self.message = message
        super().__init__(f"Failed to start '{command}': {message}")


class ConfigError(WorktreeAgentError, ValueError):
    """Exception raised for invalid configuration values."""
    pass


class ConfigIOError(WorktreeAgentError):
    """Exception raised when the config file cannot be read or written."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"Config file {self.path}: {message}")


class StartupError(WorktreeAgentError):
    """Exception raised when the agent cannot start (no repository, bad path)."""
    pass
