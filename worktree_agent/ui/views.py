"""Pure renderers: each turns an AppSnapshot into a rich renderable."""

import os
from datetime import datetime
from typing import Optional

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from worktree_agent.constants import HELP_TEXT, SYMBOL_DEFAULT_BRANCH
from worktree_agent.core.state import AppSnapshot, BranchRow, ViewMode
from worktree_agent.formatters import format_relative, format_row_state, format_time, row_symbol, spinner_frame
from worktree_agent.models.events import OutputStream

FIRST_RUN_BANNER = (
    "First run: choose which branches get worktrees. "
    "Space/t toggles tracked, Enter confirms and creates the tracked ones."
)


def _display_path(row: BranchRow, snapshot: AppSnapshot) -> str:
    if row.worktree is None:
        return ""
    try:
        return os.path.relpath(row.worktree.path, snapshot.repo_root)
    except ValueError:
        return str(row.worktree.path)


def _visible_window(count: int, selected: int, height: Optional[int]) -> range:
    """Rows to show so the selection stays on screen."""
    if not height or count <= height:
        return range(count)
    start = max(0, min(selected - height // 2, count - height))
    return range(start, start + height)


def render_branch_list(snapshot: AppSnapshot, height: Optional[int] = None, tick: int = 0) -> RenderableType:
    """Branch table with cursor, marker, name, state and worktree path."""
    if not snapshot.rows:
        if snapshot.last_poll is None:
            message = f"{spinner_frame(tick)} Waiting for the first poll of {snapshot.remote_name}..."
        else:
            message = f"No branches on {snapshot.remote_name}."
        return Text(message, style="dim")

    table = Table(box=None, expand=True, show_header=True, header_style="bold", pad_edge=False)
    table.add_column("", width=1, no_wrap=True)
    table.add_column("", width=1, no_wrap=True)
    table.add_column("Branch", ratio=3, no_wrap=True, overflow="ellipsis")
    table.add_column("State", ratio=2, no_wrap=True)
    table.add_column("Worktree", ratio=3, no_wrap=True, overflow="ellipsis")

    # Header takes one line
    window_height = height - 1 if height else None
    for index in _visible_window(len(snapshot.rows), snapshot.selected, window_height):
        row = snapshot.rows[index]
        is_selected = index == snapshot.selected
        name = Text(row.name, style="bold" if is_selected else "")
        if row.is_default:
            name.append(SYMBOL_DEFAULT_BRANCH, style="yellow")
        table.add_row(
            Text("›", style="bold cyan") if is_selected else Text(" "),
            row_symbol(row),
            name,
            format_row_state(row, tick),
            Text(_display_path(row, snapshot), style="dim"),
            style="reverse" if is_selected else None,
        )
    return table


def render_status_bar(snapshot: AppSnapshot, now: Optional[datetime] = None, tick: int = 0) -> Text:
    """One line of counters followed by the latest status message."""
    text = Text()
    if snapshot.polling:
        text.append(f"{spinner_frame(tick)} polling {snapshot.remote_name}", style="blue")
    else:
        text.append(f"{snapshot.remote_name}: polled {format_relative(snapshot.last_poll, now)}")
    text.append(f" | every {snapshot.poll_interval_seconds}s")
    text.append(f" | branches: {snapshot.last_poll_count}")
    text.append(f" | worktrees: {snapshot.worktree_count}")
    text.append(f" | tracked: {snapshot.tracked_count}")
    text.append(" | auto-create: ")
    text.append("on" if snapshot.auto_create else "off", style="green" if snapshot.auto_create else "dim")

    if snapshot.status_message:
        text.append("\n")
        text.append(snapshot.status_message, style="red" if snapshot.status_is_error else "cyan")
    elif snapshot.last_error:
        text.append("\n")
        text.append(f"Last poll failed: {snapshot.last_error}", style="red")
    return text


def render_log_view(snapshot: AppSnapshot, height: Optional[int] = None) -> Text:
    """Most recent log lines, newest at the bottom."""
    entries = snapshot.log_entries
    if height:
        entries = entries[-height:]
    if not entries:
        return Text("No output yet.", style="dim")

    text = Text()
    for i, entry in enumerate(entries):
        if i:
            text.append("\n")
        text.append(f"{format_time(entry.timestamp)} ", style="dim")
        text.append(f"[{entry.source}] ", style="cyan")
        text.append(entry.line, style="red" if entry.stream is OutputStream.STDERR else "")
    return text


def render_help() -> Text:
    return Text(HELP_TEXT.strip("\n"))


def render_main(snapshot: AppSnapshot, height: Optional[int] = None, tick: int = 0) -> RenderableType:
    """Dispatch on the view mode."""
    if snapshot.mode is ViewMode.HELP_OVERLAY:
        return render_help()
    if snapshot.mode is ViewMode.LOG_VIEW:
        return render_log_view(snapshot, height)
    if snapshot.mode is ViewMode.FIRST_RUN_SELECTION:
        banner = Text(FIRST_RUN_BANNER, style="bold yellow")
        return Group(banner, Text(""), render_branch_list(snapshot, height - 2 if height else None, tick))
    return render_branch_list(snapshot, height, tick)
