"""Services for git-worktree-agent."""
