"""Modal screens for git-worktree-agent TUI."""

from typing import Dict, Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static, Switch

from worktree_agent.config import Config


class ConfirmScreen(ModalScreen[bool]):
    """Modal confirmation dialog."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 80%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #confirm-message {
        width: 100%;
        height: auto;
        padding: 1 0;
    }

    #button-container {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("y", "answer(True)", "Yes"),
        Binding("n,escape", "answer(False)", "No"),
    ]

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Static(self.message, id="confirm-message")
            with Container(id="button-container"):
                yield Button("Yes", variant="error", id="yes")
                yield Button("No", variant="primary", id="no")

    def action_answer(self, confirmed: bool) -> None:
        self.dismiss(confirmed)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press."""
        self.dismiss(event.button.id == "yes")


def parse_settings(values: Dict[str, str], auto_create: bool) -> dict:
    """Turn the settings form's raw text into Config field values.

    Empty optional fields become None; an empty base directory is left out
    so the stored one is kept.

    Raises:
        ValueError: The poll interval is not a whole number
    """
    changes: dict = {"auto_create_worktrees": auto_create}
    interval = values.get("poll_interval_seconds", "").strip()
    if interval:
        changes["poll_interval_seconds"] = int(interval)
    for key in ("post_create_command", "command_working_dir", "base_branch"):
        if key in values:
            changes[key] = values[key].strip() or None
    base_dir = values.get("worktree_base_dir", "").strip()
    if base_dir:
        changes["worktree_base_dir"] = base_dir
    return changes


class SettingsScreen(ModalScreen[Optional[dict]]):
    """Edit the runtime settings; dismisses with the changed fields or None."""

    DEFAULT_CSS = """
    SettingsScreen {
        align: center middle;
    }

    #settings-dialog {
        width: 80%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #settings-title {
        text-style: bold;
        padding-bottom: 1;
    }

    .settings-label {
        padding-top: 1;
        color: $text-muted;
    }

    #auto-create-row {
        height: auto;
        padding-top: 1;
    }

    #button-container {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+s", "save", "Save"),
    ]

    FIELDS = (
        ("poll_interval_seconds", "Poll interval (seconds)"),
        ("worktree_base_dir", "Worktree directory"),
        ("base_branch", "Base branch (empty: remote default)"),
        ("post_create_command", "Post-create command (empty: none)"),
        ("command_working_dir", "Command working directory (empty: worktree root)"),
    )

    def __init__(self, config: Config):
        super().__init__()
        self.config = config

    def compose(self) -> ComposeResult:
        with Vertical(id="settings-dialog"):
            yield Static("⚙ Settings", id="settings-title")
            for key, label in self.FIELDS:
                value = self.config.get(key)
                yield Label(label, classes="settings-label")
                yield Input(
                    value="" if value is None else str(value),
                    id=key,
                    type="integer" if key == "poll_interval_seconds" else "text",
                )
            with Horizontal(id="auto-create-row"):
                yield Label("Auto-create worktrees for new branches  ")
                yield Switch(value=self.config.auto_create_worktrees, id="auto_create_worktrees")
            with Container(id="button-container"):
                yield Button("Save", variant="primary", id="save")
                yield Button("Cancel", id="cancel")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_save(self) -> None:
        values = {key: self.query_one(f"#{key}", Input).value for key, _ in self.FIELDS}
        auto_create = self.query_one("#auto_create_worktrees", Switch).value
        try:
            changes = parse_settings(values, auto_create)
        except ValueError:
            self.notify("Poll interval must be a whole number of seconds", severity="error")
            return
        self.dismiss(changes)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.action_save()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save":
            self.action_save()
        else:
            self.action_cancel()
