"""Git capability provider backed by GitPython."""

from pathlib import Path
from typing import List, Optional, Union

import git

from worktree_agent.exceptions import FetchError, GitError, StartupError
from worktree_agent.logging_config import get_logger
from worktree_agent.models.branch import BranchRef
from worktree_agent.models.worktree import LiveWorktree
from worktree_agent.services.git.worktrees import WorktreeService, describe_git_error

logger = get_logger(__name__)


class GitRepository:
    """Every git operation the agent needs, behind one object.

    Each call opens a fresh `git.Repo`, so one instance can be shared by the
    watcher thread and the background job thread.
    """

    def __init__(self, repo_path: Union[str, Path]):
        self.repo_path = Path(repo_path)
        self.worktree_service = WorktreeService(self.repo_path)

    @classmethod
    def discover(cls, path: Union[str, Path] = ".") -> "GitRepository":
        """Find the repository containing `path`.

        When `path` is inside a linked worktree the main working tree is used,
        so the config file and worktree base directory are always the same.

        Raises:
            StartupError: No repository contains `path`
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise StartupError(f"Path does not exist: {path}")
        try:
            repo = git.Repo(path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise StartupError(f"Not a git repository: {path}") from e

        if repo.bare or repo.working_tree_dir is None:
            raise StartupError(f"Repository at {path} has no working tree")

        common_dir = Path(repo.common_dir).resolve()
        root = common_dir.parent if common_dir.name == ".git" else Path(repo.working_tree_dir)
        logger.debug(f"Using repository at {root}")
        return cls(root)

    def _get_repo(self):
        """Get a fresh repository instance for the calling thread."""
        return git.Repo(self.repo_path)

    @property
    def exclude_file(self) -> Path:
        """The repository's `info/exclude` file (shared by all worktrees)."""
        return Path(self._get_repo().common_dir) / "info" / "exclude"

    def list_remotes(self) -> List[str]:
        return [remote.name for remote in self._get_repo().remotes]

    def remote_exists(self, remote: str) -> bool:
        return remote in self.list_remotes()

    def fetch(self, remote: str) -> None:
        """Fetch and prune one remote.

        Raises:
            FetchError: With git's stderr
        """
        try:
            self._get_repo().git.fetch(remote, "--prune")
            logger.debug(f"Fetched {remote}")
        except git.exc.GitCommandError as e:
            raise FetchError(remote, describe_git_error("fetch", e)) from e

    def list_remote_branches(self, remote: str) -> List[BranchRef]:
        """List branches under `refs/remotes/<remote>`, without the remote prefix.

        Raises:
            GitError: With git's stderr
        """
        try:
            output = self._get_repo().git.for_each_ref(
                "--format=%(refname:short) %(objectname)", f"refs/remotes/{remote}"
            )
        except git.exc.GitCommandError as e:
            raise GitError("for-each-ref", describe_git_error("for-each-ref", e)) from e

        prefix = f"{remote}/"
        branches = []
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            ref, _, sha = line.partition(" ")
            if ref == remote or ref == f"{prefix}HEAD":
                # Symbolic refs/remotes/<remote>/HEAD
                continue
            if ref.startswith(prefix):
                branches.append(BranchRef(name=ref[len(prefix):], remote_revision=sha))
        return branches

    def default_branch(self, remote: str) -> Optional[str]:
        """Branch the remote's HEAD points to, when known."""
        try:
            ref = self._get_repo().git.symbolic_ref("--short", f"refs/remotes/{remote}/HEAD")
        except git.exc.GitCommandError:
            return None
        prefix = f"{remote}/"
        return ref[len(prefix):] if ref.startswith(prefix) else None

    # Worktree capability

    def add_worktree(self, branch: str, path: Union[str, Path], remote: str) -> None:
        self.worktree_service.add_worktree(branch, path, remote)

    def remove_worktree(self, path: Union[str, Path], force: bool = False) -> None:
        self.worktree_service.remove_worktree(path, force=force)

    def list_worktrees(self) -> List[LiveWorktree]:
        return self.worktree_service.list_worktrees()

    def prune_worktrees(self) -> None:
        self.worktree_service.prune_worktrees()
