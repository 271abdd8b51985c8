"""Worktree operations service for git-worktree-agent."""

import os
from pathlib import Path
from typing import Any, Dict, List, Union

import git

from worktree_agent.exceptions import GitError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.worktree import LiveWorktree

logger = get_logger(__name__)


def describe_git_error(operation: str, e: git.exc.GitCommandError) -> str:
    """Turn a GitCommandError into git's own message."""
    stderr = (e.stderr if hasattr(e, "stderr") and e.stderr else str(e)).strip()
    # GitPython wraps stderr as "\n  stderr: '...'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip()
    stderr = stderr.strip("'").strip()
    status = e.status if hasattr(e, "status") else "unknown"

    if stderr:
        return f"{stderr} (exit {status})"
    return f"git {operation} exited with code {status}"


def parse_worktree_porcelain(output: str) -> List[LiveWorktree]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name
        (blank line between worktrees)
    """
    worktree_list: List[LiveWorktree] = []
    current: Dict[str, Any] = {}

    def flush():
        path = current.get("path", "")
        if not path:
            return
        worktree_list.append(
            LiveWorktree(
                path=path,
                branch_name=current.get("branch", ""),
                commit_sha=current.get("HEAD", ""),
                is_main=current.get("is_main", False),
                is_orphaned=not os.path.exists(path),
            )
        )

    for line in output.split("\n"):
        line = line.strip()

        if not line:
            flush()
            current = {}
            continue

        if line.startswith("worktree "):
            current["path"] = line.split(" ", 1)[1]
            # First worktree in list is always the main one
            current["is_main"] = not worktree_list
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith("refs/heads/"):
                current["branch"] = branch_ref[len("refs/heads/"):]
            else:
                current["branch"] = ""
        elif line.startswith("detached"):
            current["branch"] = ""

    # Last entry if no trailing blank line
    flush()
    return worktree_list


class WorktreeService:
    """Service for managing git worktrees."""

    def __init__(self, repo_path: Union[str, Path]):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository
        """
        self.repo_path = str(repo_path)

    def _get_repo(self):
        """Get a thread-safe git.Repo instance.

        Creates a new repo instance for each call to ensure thread safety.

        Returns:
            git.Repo: A fresh repository instance
        """
        return git.Repo(self.repo_path)

    def list_worktrees(self) -> List[LiveWorktree]:
        """Get detailed information about all worktrees.

        Raises:
            GitError: If git cannot list worktrees
        """
        try:
            output = self._get_repo().git.worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            raise GitError("worktree list", describe_git_error("worktree list", e)) from e

        worktree_list = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktree_list)} worktrees")
        for wt in worktree_list:
            logger.debug(f"  {wt}")
        return worktree_list

    def get_worktree_branches(self) -> set[str]:
        """Get set of branch names that are checked out in worktrees."""
        return {wt.branch_name for wt in self.list_worktrees() if wt.branch_name}

    def add_worktree(self, branch: str, path: Union[str, Path], remote: str) -> None:
        """Create a worktree for `branch` tracking `remote/branch`.

        A local branch of the same name is reused when it already exists.

        Raises:
            GitError: With git's stderr when the worktree cannot be created
        """
        path = str(path)
        repo = self._get_repo()
        try:
            repo.git.worktree("add", "--track", "-b", branch, path, f"{remote}/{branch}")
            logger.info(f"Created worktree for {branch} at {path}")
            return
        except git.exc.GitCommandError as e:
            message = describe_git_error("worktree add", e)
            if "already exists" not in message or os.path.exists(path):
                logger.error(f"Failed to create worktree for {branch}: {message}")
                raise GitError("worktree add", message) from e
            logger.debug(f"Local branch {branch} already exists, checking it out instead")

        try:
            repo.git.worktree("add", path, branch)
            logger.info(f"Created worktree for existing branch {branch} at {path}")
        except git.exc.GitCommandError as e:
            message = describe_git_error("worktree add", e)
            logger.error(f"Failed to create worktree for {branch}: {message}")
            raise GitError("worktree add", message) from e

    def remove_worktree(self, path: Union[str, Path], force: bool = False) -> None:
        """Remove a worktree at the specified path.

        Args:
            path: Path to the worktree directory
            force: Force removal even if working tree is dirty or locked

        Raises:
            GitError: With git's stderr when removal fails
        """
        args = ["remove", str(path)]
        if force:
            args.append("--force")
        try:
            self._get_repo().git.worktree(*args)
            logger.info(f"Removed worktree at {path}")
        except git.exc.GitCommandError as e:
            message = describe_git_error("worktree remove", e)
            logger.error(f"Failed to remove worktree at {path}: {message}")
            raise GitError("worktree remove", message) from e

    def prune_worktrees(self) -> None:
        """Prune orphaned worktree metadata.

        Raises:
            GitError: With git's stderr when pruning fails
        """
        try:
            self._get_repo().git.worktree("prune")
            logger.info("Pruned orphaned worktree metadata")
        except git.exc.GitCommandError as e:
            message = describe_git_error("worktree prune", e)
            logger.error(f"Failed to prune worktrees: {message}")
            raise GitError("worktree prune", message) from e
