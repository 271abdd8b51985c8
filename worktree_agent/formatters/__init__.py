"""Formatting utilities for git-worktree-agent.

- date: Date and time formatting
- status: Classification, hook and row state formatting
"""

# Date formatters
from .date import format_relative, format_time

# Status formatters
from .status import (
    format_classification,
    format_hook_status,
    format_row_state,
    row_symbol,
    spinner_frame,
)

__all__ = [
    # Date
    "format_relative",
    "format_time",
    # Status
    "format_classification",
    "format_hook_status",
    "format_row_state",
    "row_symbol",
    "spinner_frame",
]
