"""Clean up issue worktrees: one issue, a picked set, or everything already merged."""

from typing import Dict, List

from rich.console import Console

from issue_solver.core import IssueSolver
from issue_solver.exceptions import WorktreeNotFoundError
from issue_solver.formatters import format_teardown_result, format_worktree_row
from issue_solver.logging_config import get_logger
from issue_solver.models.worktree import TeardownResult, Worktree, WorktreeWithStatus
from issue_solver.naming import issue_number_from_branch
from issue_solver.services.status_service import cleanup_candidates, is_preselected_for_cleanup
from issue_solver.ui.picker import Choice, confirm, pick_many

console = Console()
logger = get_logger(__name__)


def report_teardown(results: List[TeardownResult]) -> None:
    """Print one line per worktree and a closing summary."""
    for result in results:
        console.print(format_teardown_result(result))

    cleaned = sum(1 for r in results if r.fully_cleaned)
    residual = [r for r in results if r.residual_path]
    console.print()
    if cleaned:
        console.print(f"[green]Cleaned {cleaned} worktree(s).[/green]")
    if residual:
        console.print("[yellow]Some folders could not be removed. Delete them manually:[/yellow]")
        for result in residual:
            console.print(f"  {result.manual_command}")


def _pr_numbers(statuses: List[WorktreeWithStatus]) -> Dict[str, int]:
    return {s.worktree.issue_number: s.pr_status.number for s in statuses if s.pr_status}


def _tear_down(solver: IssueSolver, statuses: List[WorktreeWithStatus]) -> List[TeardownResult]:
    with console.status(f"Removing {len(statuses)} worktree(s)..."):
        results = solver.lifecycle.tear_down_many(
            [s.worktree for s in statuses], _pr_numbers(statuses)
        )
    report_teardown(results)
    return results


def clean_command(solver: IssueSolver, issue_number: int) -> int:
    """Remove the worktree, folder and branch of a single issue."""
    targets: List[Worktree] = [
        wt for wt in solver.discover() if wt.issue_number == str(issue_number)
    ]

    if not targets:
        branches = [
            b for b in solver.repository.list_local_branches()
            if issue_number_from_branch(b) == str(issue_number)
        ]
        if not branches:
            console.print(f"[red]{WorktreeNotFoundError(issue_number)}[/red]")
            return 1

        console.print(f"[yellow]No worktree for issue #{issue_number}, but these branches exist:[/yellow]")
        for branch in branches:
            console.print(f"  {branch}")
        if not confirm("Delete the branch(es)?", default=True):
            console.print("[dim]Cancelled.[/dim]")
            return 0
        failed = 0
        for branch in branches:
            ok, error = solver.worktree_service.delete_branch(branch, force=True)
            if ok:
                console.print(f"[green]Deleted branch {branch}[/green]")
            else:
                console.print(f"[red]{error}[/red]")
                failed += 1
        return 1 if failed else 0

    statuses = solver.status_service.fetch_statuses_sync(targets)
    console.print(f"\n[bold]Issue #{issue_number}[/bold]")
    for status in statuses:
        console.print(f"  {format_worktree_row(status)}")
        console.print(f"  [dim]{status.worktree.path}[/dim]")
    console.print()

    if not confirm(f"Remove worktree and branch for issue #{issue_number}?", default=True):
        console.print("[dim]Cancelled.[/dim]")
        return 0

    _tear_down(solver, statuses)
    return 0


def clean_all_command(solver: IssueSolver) -> int:
    """Pick worktrees to remove; merged and orphaned ones start checked."""
    with console.status("Checking worktree status..."):
        statuses = solver.discover_with_status()
    if not statuses:
        console.print("[yellow]No issue worktrees found.[/yellow]")
        return 0

    choices = [
        Choice(format_worktree_row(s), s, checked=is_preselected_for_cleanup(s)) for s in statuses
    ]
    selected = pick_many("Select worktrees to remove", choices)
    if not selected:
        console.print("[dim]Nothing selected.[/dim]")
        return 0

    if not confirm(f"Remove {len(selected)} worktree(s) and their branches?"):
        console.print("[dim]Cancelled.[/dim]")
        return 0

    _tear_down(solver, selected)
    return 0


def clean_merged_command(solver: IssueSolver) -> int:
    """Remove every worktree whose PR is merged, plus orphaned folders. No prompt."""
    with console.status("Checking worktree status..."):
        statuses = solver.discover_with_status()
    if not statuses:
        console.print("[yellow]No issue worktrees found.[/yellow]")
        return 0

    targets = cleanup_candidates(statuses)
    if not targets:
        console.print("[dim]No merged or orphaned worktrees to clean.[/dim]")
        return 0

    logger.info(f"Cleaning {len(targets)} of {len(statuses)} worktrees")
    for status in targets:
        console.print(f"  {format_worktree_row(status)}")
    console.print()
    _tear_down(solver, targets)
    return 0
