"""Issue and pull request formatting utilities."""

from typing import List, Optional, Set

from issue_solver.models.issue import IssueListItem, Label, OpenPullRequest


def format_labels(labels: List[Label]) -> str:
    if not labels:
        return ""
    return " ".join(f"[dim]\\[{label.name}][/dim]" for label in labels)


def format_issue_row(issue: IssueListItem, issues_with_prs: Optional[Set[int]] = None) -> str:
    """
    Format an issue for lists and pickers.

    Example:
        "#12  [cyan]\\[PR][/cyan] Fix login  [dim]\\[bug][/dim]"
    """
    pr_marker = "[cyan]\\[PR][/cyan] " if issues_with_prs and issue.number in issues_with_prs else ""
    labels = format_labels(issue.labels)
    row = f"#{issue.number}  {pr_marker}{issue.title}"
    return f"{row}  {labels}" if labels else row


def format_pr_row(pr: OpenPullRequest) -> str:
    """Format an open PR with its review decision and mergeability."""
    if pr.can_merge:
        state = "[green]ready[/green]"
    elif pr.has_conflicts:
        state = "[red]conflicts[/red]"
    elif pr.review_decision == "CHANGES_REQUESTED":
        state = "[yellow]changes requested[/yellow]"
    elif pr.review_decision == "APPROVED":
        state = "[yellow]approved, mergeability unknown[/yellow]"
    else:
        state = "[dim]awaiting review[/dim]"
    return f"PR #{pr.number}  {pr.title}  {state}"
