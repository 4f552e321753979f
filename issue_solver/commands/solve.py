"""Solve issues: prepare a worktree and start an assistant session in a new terminal."""

import os
from typing import Optional

from rich.console import Console

from issue_solver.commands.listing import resolve_limit
from issue_solver.core import IssueSolver
from issue_solver.exceptions import GitHubAPIError, IssueNotFoundError, WorktreeCreationError
from issue_solver.formatters import format_issue_row
from issue_solver.logging_config import get_logger
from issue_solver.services.ai_tool import get_ai_tool
from issue_solver.services.prompts import SOLVE_PROMPT_FILE, build_solve_prompt
from issue_solver.services.terminal import (
    build_runner_script,
    open_in_new_terminal,
    session_command,
    write_runner_script,
)
from issue_solver.ui.picker import Choice, pick_many

console = Console()
logger = get_logger(__name__)


def solve_command(
    solver: IssueSolver,
    issue_number: int,
    auto_close: Optional[bool] = None,
    tool: Optional[str] = None,
) -> int:
    """Create or resume the worktree for an issue and launch the assistant on it."""
    auto_close = solver.config.auto_close if auto_close is None else auto_close
    ai_tool = get_ai_tool(tool or solver.config.ai_tool)

    with console.status(f"Fetching issue #{issue_number}..."):
        issue = solver.github_service.get_issue(issue_number)
    if issue is None:
        console.print(f"[red]{IssueNotFoundError(issue_number)}[/red]")
        return 1

    console.print(f"\n[bold]Issue #{issue_number}: {issue.title}[/bold]")
    console.print(f"[dim]{issue.url}[/dim]\n")

    try:
        with console.status("Preparing worktree..."):
            session = solver.lifecycle.create_or_attach_worktree(issue_number, issue.title)
    except WorktreeCreationError as e:
        console.print(f"[red]Failed to create worktree for issue #{issue_number}: {e}[/red]")
        return 1

    if session.created:
        console.print(f"[green]Created worktree at {session.path}[/green]")
    else:
        console.print(f"[yellow]Worktree already exists at {session.path}[/yellow]")
        console.print(f"[dim]Resuming work on issue #{issue_number}...[/dim]")

    with open(os.path.join(session.path, SOLVE_PROMPT_FILE), "w") as f:
        f.write(build_solve_prompt(issue))

    extra = ["--tool", ai_tool.key]
    if auto_close:
        extra.append("--auto-close")
    script = build_runner_script(
        session.path,
        f"Issue #{issue_number}: {issue.title}",
        session_command(issue_number, *extra),
        keep_open=not auto_close,
        return_dir=solver.repository.project_root,
    )
    script_path = write_runner_script(session.path, script)
    logger.debug(f"Runner script written to {script_path}")

    console.print(f"\n[cyan]Opening new terminal to run {ai_tool.name}...[/cyan]")
    if not ai_tool.is_installed():
        console.print(
            f"[yellow]{ai_tool.command} was not found on PATH. Install it with: "
            f"{ai_tool.install_hint}[/yellow]"
        )
    open_in_new_terminal(script_path)

    console.print(f"[dim]When {ai_tool.name} commits, a PR is created automatically.[/dim]")
    console.print(f"[dim]Open the worktree: code {session.path}[/dim]")
    console.print(f"[dim]Clean up later: issue-solver clean {issue_number}[/dim]")
    return 0


def select_command(
    solver: IssueSolver,
    limit: Optional[int] = None,
    show_all: bool = False,
    auto_close: Optional[bool] = None,
    tool: Optional[str] = None,
) -> int:
    """Pick several open issues and solve each in its own terminal."""
    effective_limit = resolve_limit(solver, limit, show_all)

    with console.status("Fetching issues..."):
        issues = solver.github_service.list_issues(effective_limit)
        issues_with_prs = solver.github_service.get_issues_with_open_prs() if issues else set()

    if not issues:
        console.print("[yellow]No open issues found.[/yellow]")
        return 0

    if effective_limit and len(issues) == effective_limit and limit is None:
        console.print(
            f"[dim]Showing first {effective_limit} issues. "
            "Use --limit <n> or --all to see more.[/dim]"
        )

    choices = [Choice(format_issue_row(i, issues_with_prs), i.number) for i in issues]
    selected = pick_many(f"Open issues for {solver.repository.project_name}", choices)
    if not selected:
        console.print("[dim]No issues selected.[/dim]")
        return 0

    console.print(f"\n[cyan]Starting {len(selected)} issue(s)...[/cyan]")
    failed = []
    for issue_number in selected:
        if solve_command(solver, issue_number, auto_close=auto_close, tool=tool) != 0:
            failed.append(issue_number)
        console.print()

    if failed:
        numbers = ", ".join(f"#{n}" for n in failed)
        console.print(f"[yellow]Could not start: {numbers}[/yellow]")
        return 1
    return 0


def new_command(
    solver: IssueSolver,
    title: str,
    body: str = "",
    labels: Optional[list] = None,
    auto_close: Optional[bool] = None,
    tool: Optional[str] = None,
) -> int:
    """Create an issue and start solving it right away."""
    try:
        with console.status("Creating issue..."):
            issue_number = solver.github_service.create_issue(title, body, labels)
    except GitHubAPIError as e:
        console.print(f"[red]Failed to create issue: {e}[/red]")
        console.print("[dim]Make sure you have write access to this repository.[/dim]")
        return 1

    console.print(f"[green]Created issue #{issue_number}[/green]")
    return solve_command(solver, issue_number, auto_close=auto_close, tool=tool)
