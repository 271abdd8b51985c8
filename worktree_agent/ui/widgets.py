"""Custom widgets for git-worktree-agent TUI."""

from textual.app import ComposeResult, RenderResult
from textual.events import Click
from textual.widgets import Header
from textual.widgets._header import HeaderIcon, HeaderTitle, HeaderClockSpace
from rich.text import Text

from worktree_agent.__version__ import __version__


class WatchTarget(HeaderClockSpace):
    """Shows which remote of which repository is being watched, plus the version."""

    DEFAULT_CSS = """
    WatchTarget {
        width: auto;
        dock: right;
        padding: 0 1;
        background: $foreground 5%;
        color: $text;
        text-align: center;
        text-opacity: 85%;
    }
    """

    def __init__(self, remote: str, repo_name: str):
        super().__init__()
        self.remote = remote
        self.repo_name = repo_name

    def render(self) -> RenderResult:
        text = Text(f"{self.repo_name} ", style="bold")
        text.append(f"⇄ {self.remote}")
        text.append(f"  v{__version__}", style="dim")
        return text


class AgentHeader(Header):
    """Header with the watch target docked right; clicks do not expand it."""

    def __init__(self, remote: str, repo_name: str, **kwargs):
        super().__init__(**kwargs)
        self.remote = remote
        self.repo_name = repo_name

    def compose(self) -> ComposeResult:
        yield HeaderIcon().data_bind(Header.icon)
        yield HeaderTitle()
        yield WatchTarget(self.remote, self.repo_name)

    def on_click(self, event: Click) -> None:
        event.stop()
