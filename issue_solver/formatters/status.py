"""Status and teardown formatting utilities."""

from issue_solver.models.worktree import StatusLabel, TeardownResult, WorktreeWithStatus
from issue_solver.services.status_service import get_status_label

# Rich styles per status label
STATUS_STYLES = {
    StatusLabel.ORPHANED: "magenta",
    StatusLabel.PR_MERGED: "green",
    StatusLabel.PR_OPEN: "cyan",
    StatusLabel.PR_CLOSED: "red",
    StatusLabel.ISSUE_CLOSED: "yellow",
    StatusLabel.ISSUE_OPEN: "white",
    StatusLabel.UNKNOWN: "dim",
}


def format_status_label(label: StatusLabel) -> str:
    """
    Format a status label as rich markup.

    Args:
        label: Status label enum value

    Returns:
        Markup string, e.g. "[green]PR merged[/green]"
    """
    style = STATUS_STYLES[label]
    return f"[{style}]{label.value}[/{style}]"


def format_worktree_row(status: WorktreeWithStatus) -> str:
    """
    Format a worktree with its status for lists and pickers.

    Example:
        "#42  issue-42-fix-login  [green]PR merged[/green]"
    """
    worktree = status.worktree
    branch = worktree.branch or ("(detached HEAD)" if worktree.detached else "(no branch)")
    return f"#{worktree.issue_number}  {branch}  {format_status_label(get_status_label(status))}"


def format_teardown_result(result: TeardownResult) -> str:
    """One line summarizing what teardown achieved for a worktree."""
    issue = f"#{result.worktree.issue_number}"
    if result.fully_cleaned:
        return f"[green]✓[/green] {issue} cleaned"
    if result.residual_path:
        return f"[yellow]⚠[/yellow] {issue} partially cleaned, run: {result.manual_command}"
    return f"[yellow]⚠[/yellow] {issue} cleaned with errors: {'; '.join(result.errors)}"
