"""Status formatting for branch rows and hooks."""

from typing import Optional

from rich.text import Text

from worktree_agent.constants import (
    CLASSIFICATION_COLORS,
    CLASSIFICATION_SYMBOLS,
    HOOK_COLORS,
    HOOK_SYMBOLS,
    SYMBOL_SPINNER,
)
from worktree_agent.core.state import BranchRow
from worktree_agent.models.branch import BranchClassification, ClassificationKind
from worktree_agent.models.worktree import HookStatus


def spinner_frame(tick: int) -> str:
    return SYMBOL_SPINNER[tick % len(SYMBOL_SPINNER)]


def format_classification(classification: Optional[BranchClassification]) -> Text:
    """
    Format a classification as a colored symbol plus label.

    Args:
        classification: Classification, or None for branches no longer on the remote

    Returns:
        Styled text such as "? undecided" or "× ignored (dependabot/*)"
    """
    if classification is None:
        return Text("  gone from remote", style="red")
    symbol = CLASSIFICATION_SYMBOLS[classification.kind]
    color = CLASSIFICATION_COLORS[classification.kind]
    return Text(f"{symbol} {classification}", style=color)


def format_hook_status(status: HookStatus) -> Text:
    """
    Format a worktree's hook status.

    Args:
        status: Hook status of the worktree entry

    Returns:
        Styled text such as "✓ succeeded" or "✗ failed (1)"
    """
    symbol = HOOK_SYMBOLS[status.state]
    return Text(f"{symbol} {status}", style=HOOK_COLORS[status.state])


def row_symbol(row: BranchRow) -> Text:
    """The one-character marker in front of a branch name."""
    if row.has_worktree:
        kind = ClassificationKind.ALREADY_WORKTREE
    elif row.classification is not None:
        kind = row.classification.kind
    else:
        return Text("!", style="red")
    return Text(CLASSIFICATION_SYMBOLS[kind], style=CLASSIFICATION_COLORS[kind])


def format_row_state(row: BranchRow, tick: int = 0) -> Text:
    """
    Describe what is happening with a branch right now.

    In-flight git work wins over the hook status, which wins over the
    classification.
    """
    if row.activity is not None:
        return Text(f"{spinner_frame(tick)} {row.activity.value}...", style="blue")
    if row.worktree is not None:
        text = format_hook_status(row.worktree.hook_status)
        if row.worktree.hook_status.is_active:
            text = Text(f"{spinner_frame(tick)} {row.worktree.hook_status}", style="blue")
        return text
    if row.has_worktree:
        return Text(f"{CLASSIFICATION_SYMBOLS[ClassificationKind.ALREADY_WORKTREE]} checked out elsewhere",
                    style="bright_black")
    return format_classification(row.classification)
