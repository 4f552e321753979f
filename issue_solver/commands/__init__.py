"""Command implementations. Each returns a process exit code."""

from .clean import clean_all_command, clean_command, clean_merged_command
from .config import config_command
from .go import go_command
from .listing import list_command, show_command
from .merge import merge_command
from .pr import pr_command
from .review import review_command
from .session import session_command
from .solve import new_command, select_command, solve_command

__all__ = [
    "clean_all_command",
    "clean_command",
    "clean_merged_command",
    "config_command",
    "go_command",
    "list_command",
    "show_command",
    "merge_command",
    "pr_command",
    "review_command",
    "session_command",
    "new_command",
    "select_command",
    "solve_command",
]
