"""Formatting utilities for issue-solver.

- status: worktree status labels
- issue: issue and pull request rows
"""

from .status import format_status_label, format_worktree_row, format_teardown_result
from .issue import format_labels, format_issue_row, format_pr_row

__all__ = [
    # Status
    "format_status_label",
    "format_worktree_row",
    "format_teardown_result",
    # Issue
    "format_labels",
    "format_issue_row",
    "format_pr_row",
]
