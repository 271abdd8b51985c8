"""Shared constants for git-worktree-agent."""

from worktree_agent.models.branch import ClassificationKind
from worktree_agent.models.worktree import HookState


# Config file stored in the repository root
CONFIG_FILE_NAME = ".gwa-config.json"
CONFIG_VERSION = 2

DEFAULT_POLL_INTERVAL_SECONDS = 10
MIN_POLL_INTERVAL_SECONDS = 1
DEFAULT_REMOTE = "origin"
DEFAULT_WORKTREE_BASE_DIR = ".."
DEFAULT_IGNORE_PATTERNS = ("dependabot/*", "renovate/*")

# Characters that cannot appear in a flat worktree directory name
PATH_HOSTILE_CHARACTERS = '/\\:*?"<>|'

RENDER_TICK_SECONDS = 0.25
# How long to keep reading hook output after the shell exits; a background child may hold the pipes
HOOK_OUTPUT_GRACE_SECONDS = 2.0
LOG_CAPACITY = 2000
FETCH_LOG_SOURCE = "fetch:{remote}"


# Symbol constants
SYMBOL_SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
SYMBOL_DEFAULT_BRANCH = " *"

CLASSIFICATION_SYMBOLS = {
    ClassificationKind.ALREADY_WORKTREE: "●",
    ClassificationKind.TRACKED: "+",
    ClassificationKind.UNTRACKED: "-",
    ClassificationKind.IGNORED: "×",
    ClassificationKind.UNDECIDED: "?",
}

HOOK_SYMBOLS = {
    HookState.PENDING: "…",
    HookState.RUNNING: "⟳",
    HookState.SUCCEEDED: "✓",
    HookState.FAILED: "✗",
    HookState.INTERRUPTED: "!",
}


# Colors (Rich color names)
CLASSIFICATION_COLORS = {
    ClassificationKind.ALREADY_WORKTREE: "green",
    ClassificationKind.TRACKED: "cyan",
    ClassificationKind.UNTRACKED: "bright_black",
    ClassificationKind.IGNORED: "bright_black",
    ClassificationKind.UNDECIDED: "yellow",
}

HOOK_COLORS = {
    HookState.PENDING: "yellow",
    HookState.RUNNING: "blue",
    HookState.SUCCEEDED: "green",
    HookState.FAILED: "red",
    HookState.INTERRUPTED: "magenta",
}


# Help overlay text
HELP_TEXT = """
Navigation
  ↑/k  ↓/j       Move selection
  l              Toggle log view
  ?              Toggle this help
  Esc            Back to the branch list

Worktrees
  Enter          Create worktree for the selected branch
                 (first run: confirm selection and create tracked branches)
  d              Delete the selected worktree
  Space / t      Toggle tracked/untracked
  u              Untrack the selected branch
  x              Clear the track decision
  a              Toggle auto-create for new branches
  r              Poll the remote now
  s              Edit settings

  q              Quit

Legend
  ● worktree   + tracked   - untracked   × ignored   ? undecided
"""
