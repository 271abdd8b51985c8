"""Command-line interface for git-worktree-agent"""

import json
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.text import Text

from worktree_agent.config import Config
from worktree_agent.core.app_core import AppCore
from worktree_agent.core.loop import EventInbox, EventLoop
from worktree_agent.core.state import AppSnapshot, ViewMode
from worktree_agent.exceptions import ConfigError, ConfigIOError, StartupError
from worktree_agent.formatters import format_time
from worktree_agent.logging_config import get_logger, setup_logging
from worktree_agent.models.events import Intent, OutputStream, UserInput
from worktree_agent.services.config_store import ConfigStore
from worktree_agent.services.git import GitRepository

from .args import parse_args

console = Console()
logger = get_logger(__name__)


class ConsoleReporter:
    """Prints new log lines and status changes from each snapshot."""

    def __init__(self, output: Console):
        self.console = output
        self._printed = 0
        self._last_status: Optional[str] = None

    def __call__(self, snapshot: AppSnapshot) -> None:
        fresh = snapshot.log_total - self._printed
        if fresh > 0:
            for entry in snapshot.log_entries[-fresh:]:
                line = Text(f"{format_time(entry.timestamp)} ", style="dim")
                line.append(f"[{entry.source}] ", style="cyan")
                line.append(entry.line, style="red" if entry.stream is OutputStream.STDERR else "")
                self.console.print(line)
            self._printed = snapshot.log_total

        if snapshot.status_message and snapshot.status_message != self._last_status:
            style = "red" if snapshot.status_is_error else "green"
            self.console.print(Text(snapshot.status_message, style=style))
        self._last_status = snapshot.status_message


def _config_updates(args) -> dict:
    updates = {}
    if args.set_command is not None:
        updates["post_create_command"] = args.set_command or None
    if args.set_poll_interval is not None:
        updates["poll_interval_seconds"] = args.set_poll_interval
    if args.set_base_dir is not None:
        updates["worktree_base_dir"] = args.set_base_dir
    if args.auto_create is not None:
        updates["auto_create_worktrees"] = args.auto_create
    return updates


def init_config(git: GitRepository, store: ConfigStore) -> int:
    """Write a default config without asking anything."""
    if store.exists():
        console.print(f"[yellow]Config already exists at {store.config_file}[/yellow]")
        return 0

    remotes = git.list_remotes()
    if not remotes:
        console.print("[red]Error: repository has no remotes to watch[/red]")
        return 1
    remote = "origin" if "origin" in remotes else remotes[0]
    config = Config(remote_name=remote, base_branch=git.default_branch(remote))
    store.save(config)
    console.print(f"[green]Wrote {store.config_file}[/green] (watching remote '{remote}')")
    return 0


def update_config(store: ConfigStore, updates: dict) -> int:
    config = store.load().with_updates(**updates)
    store.save(config)
    for key, value in updates.items():
        console.print(f"  {key}: {value!r}")
    console.print(f"[green]Updated {store.config_file}[/green]")
    return 0


def show_config(store: ConfigStore) -> int:
    config = store.load()
    for warning in store.warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    console.print(f"[bold]{store.config_file}[/bold]" + ("" if store.exists() else " (defaults, not written yet)"))
    console.print_json(json.dumps(config.to_dict()))
    return 0


def run_headless(git: GitRepository) -> int:
    """Run the watcher loop on this thread until interrupted."""
    inbox = EventInbox()
    core = AppCore.create(git, inbox.put)
    if core.state.mode is ViewMode.FIRST_RUN_SELECTION:
        # No selection screen without a terminal UI; accept the stored selection
        core.handle(UserInput(Intent.CREATE))

    reporter = ConsoleReporter(console)
    loop = EventLoop(core, inbox, render=reporter)
    console.print(
        f"Watching [bold]{core.config.remote_name}[/bold] every {core.config.poll_interval_seconds}s "
        f"in {git.repo_path} (Ctrl+C to stop)"
    )
    core.start()
    try:
        loop.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping...[/yellow]")
        core.handle(UserInput(Intent.QUIT))
        reporter(core.snapshot())
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    one_shot = args.init or args.show_config or bool(_config_updates(args))

    # Default to interactive if running in a TTY, unless explicitly disabled
    use_interactive = not one_shot and not args.no_interactive and sys.stdin.isatty()
    log_file = setup_logging(verbose=args.verbose, debug=args.debug, tui_mode=use_interactive)
    if args.debug:
        console.print("[yellow]Debug mode enabled[/yellow]")
        if log_file:
            console.print(f"[yellow]Logging to {log_file}[/yellow]")

    try:
        git = GitRepository.discover(args.path)
        store = ConfigStore(git.repo_path, git.exclude_file)

        if args.init:
            return init_config(git, store)
        updates = _config_updates(args)
        if updates:
            return update_config(store, updates)
        if args.show_config:
            return show_config(store)

        if use_interactive:
            from worktree_agent.tui import run_tui
            run_tui(git)
            return 0
        return run_headless(git)
    except StartupError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except (ConfigError, ConfigIOError) as e:
        console.print(f"[red]Config error: {e}[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 0
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
