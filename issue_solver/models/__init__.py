"""Data models for issue-solver."""

from .worktree import (
    IssueState,
    IssueStatus,
    PRState,
    PRStatus,
    StatusLabel,
    TeardownResult,
    Worktree,
    WorktreeSession,
    WorktreeWithStatus,
)
from .issue import Issue, IssueListItem, Label, OpenPullRequest

__all__ = [
    "IssueState",
    "IssueStatus",
    "PRState",
    "PRStatus",
    "StatusLabel",
    "TeardownResult",
    "Worktree",
    "WorktreeSession",
    "WorktreeWithStatus",
    "Issue",
    "IssueListItem",
    "Label",
    "OpenPullRequest",
]
