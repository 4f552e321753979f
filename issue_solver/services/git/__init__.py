"""Git-related services for issue-solver."""

from .repository import GitRepository, is_git_repo
from .worktrees import WorktreeService, parse_worktree_porcelain

__all__ = [
    "GitRepository",
    "WorktreeService",
    "is_git_repo",
    "parse_worktree_porcelain",
]
