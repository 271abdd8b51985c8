"""Interactive TUI for git-worktree-agent using Textual."""

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widgets import Footer, Static

from .__version__ import __version__
from .constants import RENDER_TICK_SECONDS
from .core.app_core import AppCore
from .core.state import ViewMode
from .logging_config import get_logger
from .models.events import Event, Intent, SettingsSubmitted, UserInput
from .ui.screens import ConfirmScreen, SettingsScreen
from .ui.views import render_main, render_status_bar
from .ui.widgets import AgentHeader

logger = get_logger(__name__)


class CoreEvent(Message):
    """Carries a producer event onto the app's message queue."""

    def __init__(self, event: Event) -> None:
        super().__init__()
        self.event = event


class WorktreeAgentApp(App):
    """Interactive TUI for git-worktree-agent.

    The app's message queue is the single consumer: producer threads call
    `emit`, which posts a CoreEvent, and `on_core_event` applies it.
    """

    TITLE = "Git Worktree Agent"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Screen {
        background: $surface;
    }

    #main-view {
        height: 1fr;
        padding: 0 1;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("enter", "create", "Create"),
        Binding("d", "delete", "Delete"),
        Binding("space,t", "dispatch('toggle_track')", "Track"),
        Binding("u", "dispatch('untrack')", "Untrack", show=False),
        Binding("x", "dispatch('clear_track')", "Clear", show=False),
        Binding("a", "dispatch('toggle_auto_create')", "Auto-create"),
        Binding("r", "dispatch('force_poll')", "Poll"),
        Binding("s", "settings", "Settings"),
        Binding("l", "dispatch('show_logs')", "Logs"),
        Binding("question_mark", "dispatch('show_help')", "Help"),
        Binding("escape", "dispatch('back')", "Back", show=False),
        Binding("up,k", "dispatch('move_up')", "Up", show=False),
        Binding("down,j", "dispatch('move_down')", "Down", show=False),
    ]

    def __init__(self, git):
        """Build the core for the repository behind `git`.

        Nothing is emitted until `on_mount` starts the watcher.
        """
        super().__init__()
        self.core = AppCore.create(git, self.emit)
        self._tick = 0

    def emit(self, event: Event) -> None:
        """Thread-safe entry point for every producer."""
        self.post_message(CoreEvent(event))

    def compose(self) -> ComposeResult:
        yield AgentHeader(self.core.config.remote_name, self.core.repo_root.name, icon="")
        yield Static(id="main-view")
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.core.start()
        self.set_interval(RENDER_TICK_SECONDS, self._render)
        self._render()

    def on_core_event(self, message: CoreEvent) -> None:
        self.core.handle(message.event)

    def _render(self) -> None:
        """Redraw from a fresh snapshot; runs on the render tick only."""
        self._tick += 1
        snapshot = self.core.snapshot()
        main_view = self.query_one("#main-view", Static)
        main_view.update(render_main(snapshot, main_view.size.height or None, self._tick))
        self.query_one("#status-bar", Static).update(render_status_bar(snapshot, tick=self._tick))

    def _dispatch(self, intent: Intent, branch=None) -> None:
        self.core.handle(UserInput(intent, branch))
        self._render()

    def action_dispatch(self, intent: str) -> None:
        self._dispatch(Intent(intent))

    def action_create(self) -> None:
        self._dispatch(Intent.CREATE)

    def action_delete(self) -> None:
        """Ask for confirmation before removing the selected worktree."""
        snapshot = self.core.snapshot()
        if snapshot.mode is not ViewMode.NORMAL:
            return
        row = snapshot.selected_row
        if row is None or row.worktree is None:
            # Let the core explain why nothing can be deleted
            self._dispatch(Intent.DELETE)
            return

        branch = row.name
        message = f"Delete the worktree for {branch}?\n\n{row.worktree.path}"

        def handle_confirmation(confirmed: bool | None) -> None:
            if confirmed:
                self._dispatch(Intent.DELETE, branch)
            else:
                self.notify("Deletion cancelled")

        self.push_screen(ConfirmScreen(message), handle_confirmation)

    def action_settings(self) -> None:
        """Open the settings editor; saved changes go through the core like any other input."""
        if self.core.snapshot().mode is not ViewMode.NORMAL:
            return

        def handle_settings(changes: dict | None) -> None:
            if changes is None:
                return
            self.core.handle(SettingsSubmitted(changes))
            self._render()

        self.push_screen(SettingsScreen(self.core.config), handle_settings)

    async def action_quit(self) -> None:
        """Override quit action to stop the core before exiting."""
        try:
            self.core.handle(UserInput(Intent.QUIT))
        finally:
            self.exit()


def run_tui(git) -> None:
    """Run the interactive app until the user quits."""
    WorktreeAgentApp(git).run()
