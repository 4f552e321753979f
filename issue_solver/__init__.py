"""
issue-solver - Solve GitHub issues with an AI coding assistant in isolated git worktrees
"""

from .__version__ import __version__
from .core import IssueSolver
from .cli.main import main

__all__ = ["IssueSolver", "main", "__version__"]
