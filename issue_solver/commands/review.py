"""AI review of open pull requests."""

import os
from typing import Optional

from rich.console import Console

from issue_solver.core import IssueSolver
from issue_solver.exceptions import WorktreeCreationError
from issue_solver.formatters import format_pr_row
from issue_solver.models.issue import OpenPullRequest
from issue_solver.services.ai_tool import get_ai_tool
from issue_solver.services.prompts import REVIEW_PROMPT_FILE, build_review_prompt
from issue_solver.services.terminal import (
    build_runner_script,
    open_in_new_terminal,
    session_command,
    write_runner_script,
)
from issue_solver.ui.picker import Choice, pick_one

console = Console()

REVIEW_RUNNER_FILE = ".issue-solver-review-runner.sh"


def _select_pr(solver: IssueSolver, issue_number: Optional[int]) -> Optional[OpenPullRequest]:
    with console.status("Fetching open PRs..."):
        prs = [pr for pr in solver.github_service.list_open_prs() if pr.issue_number is not None]

    if issue_number is not None:
        pr = next((p for p in prs if p.issue_number == issue_number), None)
        if pr is None:
            console.print(f"[red]No open PR found for issue #{issue_number}[/red]")
            console.print(f"[dim]First solve the issue: issue-solver {issue_number}[/dim]")
        return pr

    if not prs:
        console.print("[yellow]No open PRs for issue branches found.[/yellow]")
        return None
    return pick_one("Select a PR to review", [Choice(format_pr_row(p), p) for p in prs])


def review_command(
    solver: IssueSolver,
    issue_number: Optional[int] = None,
    merge: bool = False,
    tool: Optional[str] = None,
) -> int:
    """Check out a PR branch and start a review session in a new terminal.

    With merge, the session squash-merges the PR once the review approves it.
    """
    ai_tool = get_ai_tool(tool or solver.config.ai_tool)
    pr = _select_pr(solver, issue_number)
    if pr is None:
        return 1 if issue_number is not None else 0

    issue = solver.github_service.get_issue(pr.issue_number)
    console.print(f"\n[bold]Reviewing PR #{pr.number}: {pr.title}[/bold]")
    if pr.url:
        console.print(f"[dim]{pr.url}[/dim]\n")

    try:
        with console.status("Preparing worktree..."):
            session = solver.lifecycle.checkout_pull_request(
                pr.issue_number, issue.title if issue else pr.title, pr.head_ref_name
            )
    except WorktreeCreationError as e:
        console.print(f"[red]Failed to create worktree for PR #{pr.number}: {e}[/red]")
        return 1

    diff = solver.github_service.get_pr_diff(pr.number)
    if not diff:
        console.print("[yellow]Could not fetch the PR diff; the assistant will read the files.[/yellow]")
    with open(os.path.join(session.path, REVIEW_PROMPT_FILE), "w") as f:
        f.write(build_review_prompt(issue, pr.number, pr.title, diff))

    extra = ["--review", str(pr.number), "--tool", ai_tool.key]
    if merge:
        extra.append("--merge")
    script = build_runner_script(
        session.path,
        f"Review PR #{pr.number}: {pr.title}",
        session_command(pr.issue_number, *extra),
        keep_open=True,
    )
    script_path = write_runner_script(session.path, script, REVIEW_RUNNER_FILE)

    console.print(f"[cyan]Opening new terminal for the review with {ai_tool.name}...[/cyan]")
    open_in_new_terminal(script_path)
    if solver.config.bot_token:
        console.print("[dim]The review will be posted with the bot token.[/dim]")
    console.print(f"[dim]Clean up later: issue-solver clean {pr.issue_number}[/dim]")
    return 0
