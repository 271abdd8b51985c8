"""Core application logic for git-worktree-agent."""
