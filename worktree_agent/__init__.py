"""
git-worktree-agent - Keep local git worktrees in sync with remote branches
"""

from .__version__ import __version__
from .core.app_core import AppCore
from .cli.main import main

__all__ = ["AppCore", "main", "__version__"]
