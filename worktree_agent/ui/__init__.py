"""Terminal UI pieces for git-worktree-agent."""
