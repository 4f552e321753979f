"""Jump to an issue worktree: open it in an editor, open its PR, or print a cd command."""

import shutil
import subprocess
import webbrowser
from typing import Optional

from rich.console import Console

from issue_solver.core import IssueSolver
from issue_solver.exceptions import WorktreeNotFoundError
from issue_solver.formatters import format_status_label, format_worktree_row
from issue_solver.services.status_service import get_status_label
from issue_solver.ui.picker import Choice, choose_action, pick_one

console = Console()

EDITOR_COMMAND = "code"


def go_command(solver: IssueSolver, issue_number: Optional[int] = None) -> int:
    worktrees = solver.discover()
    if not worktrees:
        console.print("[yellow]No issue worktrees found.[/yellow]")
        console.print("[dim]Run `issue-solver <number>` to start working on an issue.[/dim]")
        return 0

    if issue_number is not None:
        worktree = solver.find_worktree(issue_number)
        if worktree is None:
            console.print(f"[red]{WorktreeNotFoundError(issue_number)}[/red]")
            console.print("\n[dim]Available worktrees:[/dim]")
            for wt in worktrees:
                console.print(f"[dim]  #{wt.issue_number}: {wt.path}[/dim]")
            return 1
        status = solver.status_service.fetch_status(worktree)
    else:
        with console.status("Checking worktree status..."):
            statuses = solver.status_service.fetch_statuses_sync(worktrees)
        status = pick_one(
            "Select a worktree to open",
            [Choice(format_worktree_row(s), s) for s in statuses],
        )
        if status is None:
            console.print("[dim]Cancelled.[/dim]")
            return 0
        worktree = status.worktree

    console.print(f"\n[bold]Issue #{worktree.issue_number}[/bold]")
    console.print(f"[dim]  Path: {worktree.path}[/dim]")
    console.print(f"[dim]  Branch: {worktree.branch or '(none)'}[/dim]")
    console.print(f"  Status: {format_status_label(get_status_label(status))}")
    if status.pr_status:
        console.print(f"[cyan]  PR: {status.pr_status.url}[/cyan]")
    console.print()

    actions = [("Open in editor", "editor"), ("Print cd command", "cd")]
    if status.pr_status:
        actions.insert(0, ("Open PR in browser", "pr"))
    action = choose_action(actions)

    if action == "pr":
        webbrowser.open(status.pr_status.url)
    elif action == "editor":
        if shutil.which(EDITOR_COMMAND) is None:
            console.print(f"[yellow]{EDITOR_COMMAND} is not on PATH[/yellow]")
            console.print(f'cd "{worktree.path}"')
            return 0
        subprocess.Popen([EDITOR_COMMAND, worktree.path])
    elif action == "cd":
        console.print("\n[dim]Run this command:[/dim]\n")
        console.print(f'[cyan]cd "{worktree.path}"[/cyan]')
    else:
        console.print("[dim]Cancelled.[/dim]")
    return 0
