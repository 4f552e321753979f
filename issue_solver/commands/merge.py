"""Merge approved pull requests and clean up their worktrees."""

from typing import List, Optional, Tuple

from rich.console import Console

from issue_solver.core import IssueSolver
from issue_solver.exceptions import GitHubAPIError
from issue_solver.formatters import format_pr_row, format_teardown_result
from issue_solver.logging_config import get_logger
from issue_solver.models.issue import OpenPullRequest
from issue_solver.models.worktree import Worktree
from issue_solver.services.lifecycle import WorktreeLifecycle
from issue_solver.ui.picker import Choice, confirm, pick_many

console = Console()
logger = get_logger(__name__)


def _worktree_for_pr(worktrees: List[Worktree], pr: OpenPullRequest) -> Optional[Worktree]:
    for worktree in worktrees:
        if worktree.branch == pr.head_ref_name:
            return worktree
    if pr.issue_number is not None:
        for worktree in worktrees:
            if worktree.is_orphaned and worktree.issue_number == str(pr.issue_number):
                return worktree
    return None


def clean_up_for_pr(
    solver: IssueSolver,
    pr: OpenPullRequest,
    worktrees: List[Worktree],
    lifecycle: Optional[WorktreeLifecycle] = None,
) -> None:
    """Tear down the local side of a PR so the remote branch can be deleted."""
    lifecycle = lifecycle or solver.lifecycle
    worktree = _worktree_for_pr(worktrees, pr)
    if worktree is not None:
        result = lifecycle.tear_down(worktree, pr.number)
        console.print(format_teardown_result(result))
    elif solver.repository.branch_exists(pr.head_ref_name):
        solver.worktree_service.delete_branch(pr.head_ref_name, force=True)


def merge_pull_requests(
    solver: IssueSolver,
    prs: List[OpenPullRequest],
    lifecycle: Optional[WorktreeLifecycle] = None,
) -> Tuple[int, int]:
    """Tear down then squash-merge each PR. One failure never stops the rest.

    Returns:
        Tuple of (merged, failed) counts.
    """
    worktrees = solver.discover()
    merged = failed = 0
    for pr in prs:
        try:
            clean_up_for_pr(solver, pr, worktrees, lifecycle)
        except Exception as e:
            logger.warning(f"Cleanup before merging PR #{pr.number} failed: {e}")

        try:
            with console.status(f"Merging PR #{pr.number}..."):
                solver.github_service.merge_pull_request(pr.number, delete_branch=True)
            console.print(f"[green]✓ Merged PR #{pr.number}: {pr.title[:50]}[/green]")
            merged += 1
        except GitHubAPIError as e:
            console.print(f"[red]✗ Failed to merge PR #{pr.number}: {e}[/red]")
            failed += 1
    return merged, failed


def merge_command(solver: IssueSolver) -> int:
    """Pick open PRs (approved and mergeable ones pre-checked), merge and clean up."""
    project = solver.github_service.get_repo_name() or solver.repository.project_name
    console.print(f"\n[bold]Open PRs for {project}:[/bold]\n")
    with console.status("Fetching open PRs..."):
        prs = solver.github_service.list_open_prs()

    if not prs:
        console.print("[yellow]No open PRs found.[/yellow]")
        return 0

    choices = [Choice(format_pr_row(pr), pr, checked=pr.can_merge) for pr in prs]
    selected = pick_many("Select PRs to merge and clean up", choices)
    if not selected:
        console.print("[dim]No PRs selected.[/dim]")
        return 0

    if not confirm(f"Merge {len(selected)} PR(s) and clean up worktrees?", default=True):
        console.print("[dim]Cancelled.[/dim]")
        return 0

    merged, failed = merge_pull_requests(solver, selected)
    console.print()
    if merged:
        console.print(f"[green]Merged {merged} PR(s)![/green]")
    if failed:
        console.print(f"[yellow]{failed} PR(s) could not be merged.[/yellow]")
    return 1 if failed else 0
