"""Command-line argument parsing for git-worktree-agent."""

import argparse
from typing import Optional, Sequence

from worktree_agent.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gwa",
        description="Watch a git remote and keep a worktree for every branch you care about",
        epilog="Settings live in .gwa-config.json at the repository root. "
        "In the TUI press ? for key bindings.",
    )
    parser.add_argument(
        "-p", "--path", default=".", help="Path inside the git repository (default: current directory)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"git-worktree-agent {__version__}")
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="Run the watcher without the TUI, printing activity to the console",
    )

    config_group = parser.add_argument_group("configuration")
    config_group.add_argument(
        "--show-config", action="store_true", help="Print the repository's configuration and exit"
    )
    config_group.add_argument(
        "--init",
        action="store_true",
        help="Write a default configuration (remote 'origin' or the first remote) and exit",
    )
    config_group.add_argument(
        "--set-command", metavar="CMD", help="Set the command run in each new worktree ('' clears it)"
    )
    config_group.add_argument(
        "--set-poll-interval", type=int, metavar="SECONDS", help="Set the poll interval in seconds"
    )
    config_group.add_argument(
        "--set-base-dir", metavar="DIR", help="Set the directory new worktrees are created in"
    )
    config_group.add_argument(
        "--auto-create",
        dest="auto_create",
        action="store_const",
        const=True,
        default=None,
        help="Create worktrees for new branches automatically",
    )
    config_group.add_argument(
        "--no-auto-create",
        dest="auto_create",
        action="store_const",
        const=False,
        help="Only create worktrees on request",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
