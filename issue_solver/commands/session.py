"""The hidden ``session`` command that runs inside the spawned terminal."""

import asyncio
import os
from typing import Optional

from rich.console import Console

from issue_solver.commands.merge import merge_pull_requests
from issue_solver.core import IssueSolver
from issue_solver.exceptions import IssueNotFoundError, WorktreeNotFoundError
from issue_solver.formatters import format_teardown_result
from issue_solver.logging_config import get_logger
from issue_solver.services.ai_tool import get_ai_tool
from issue_solver.services.lifecycle import WorktreeLifecycle
from issue_solver.services.prompts import (
    REVIEW_PROMPT_FILE,
    REVIEW_RESULT_FILE,
    SOLVE_PROMPT_FILE,
    build_solve_prompt,
)
from issue_solver.services.session import (
    CommitWatcher,
    PullRequestSync,
    run_review_session,
    run_solve_session,
)
from issue_solver.services.window_closer import WindowCloser

console = Console()
logger = get_logger(__name__)

RULE = "━" * 48


def _in_terminal_lifecycle(solver: IssueSolver) -> WorktreeLifecycle:
    """Lifecycle that leaves windows alone, since the session's own window is one of them."""
    return WorktreeLifecycle(
        solver.repository,
        solver.config,
        worktree_service=solver.worktree_service,
        window_closer=WindowCloser(),
    )


def session_command(
    solver: IssueSolver,
    issue_number: int,
    tool: Optional[str] = None,
    auto_close: bool = False,
    review_pr: Optional[int] = None,
    merge: bool = False,
) -> int:
    worktree = solver.find_worktree(issue_number)
    if worktree is None or worktree.is_orphaned:
        console.print(f"[red]{WorktreeNotFoundError(issue_number)}[/red]")
        return 1
    if worktree.detached and review_pr is None:
        console.print(f"[red]Worktree {worktree.path} is on a detached HEAD, nothing to push[/red]")
        return 1

    ai_tool = get_ai_tool(tool or solver.config.ai_tool)
    if review_pr is not None:
        return _review(solver, worktree.path, issue_number, review_pr, ai_tool, merge)
    return _solve(solver, worktree, issue_number, ai_tool, auto_close)


def _solve(solver, worktree, issue_number, ai_tool, auto_close) -> int:
    issue = solver.github_service.get_issue(issue_number)
    if issue is None:
        console.print(f"[red]{IssueNotFoundError(issue_number)}[/red]")
        return 1

    prompt_file = os.path.join(worktree.path, SOLVE_PROMPT_FILE)
    if not os.path.exists(prompt_file):
        with open(prompt_file, "w") as f:
            f.write(build_solve_prompt(issue))

    console.print(f"[bold]{ai_tool.name} - Issue #{issue_number}: {issue.title}[/bold]")
    console.print(RULE)
    console.print("When a commit lands, the branch is pushed and a PR is created.")
    if auto_close:
        console.print("The worktree is removed after the session ends.")
    console.print(RULE + "\n")

    base_branch = solver.repository.default_branch()
    sync = PullRequestSync(
        solver.repository,
        solver.github_service,
        issue_number,
        issue.title,
        worktree.branch,
        worktree.path,
        base_branch,
    )
    watcher = CommitWatcher(
        solver.repository, worktree.path, sync.sync, solver.config.poll_interval
    )
    returncode, pr = asyncio.run(
        run_solve_session(
            ai_tool.build_args(prompt_file), worktree.path, sync, watcher, prompt_file
        )
    )
    logger.debug(f"{ai_tool.command} exited with {returncode}, {watcher.triggered} syncs")

    console.print(f"\n{RULE}")
    console.print(f"{ai_tool.name} session ended.")
    if pr is not None:
        console.print(f"PR #{pr.number}: {pr.url}")

    if auto_close:
        os.chdir(solver.repository.project_root)
        result = _in_terminal_lifecycle(solver).tear_down(worktree, keep_branch=True)
        if result.residual_path:
            console.print(format_teardown_result(result))
        else:
            console.print(f"Worktree removed. Branch '{worktree.branch}' is kept.")
    else:
        console.print(f"To clean up: issue-solver clean {issue_number}")
    console.print(RULE)
    return 0 if returncode == 0 else 1


def _review(solver, path, issue_number, pr_number, ai_tool, merge) -> int:
    prompt_file = os.path.join(path, REVIEW_PROMPT_FILE)
    if not os.path.exists(prompt_file):
        console.print(f"[red]Review prompt missing in {path}. Run: issue-solver review {issue_number}[/red]")
        return 1

    console.print(f"[bold]{ai_tool.name} review - PR #{pr_number}[/bold]")
    console.print(RULE + "\n")

    returncode, event = asyncio.run(
        run_review_session(
            ai_tool.build_args(prompt_file),
            path,
            solver.github_service,
            pr_number,
            os.path.join(path, REVIEW_RESULT_FILE),
            prompt_file,
        )
    )

    if merge and event == "APPROVE":
        pr = next((p for p in solver.github_service.list_open_prs() if p.number == pr_number), None)
        if pr is None or not pr.can_merge:
            console.print(f"[yellow]PR #{pr_number} is not ready to merge yet[/yellow]")
        else:
            os.chdir(solver.repository.project_root)
            merged, _ = merge_pull_requests(solver, [pr], _in_terminal_lifecycle(solver))
            if merged:
                console.print(f"[green]Merged PR #{pr_number}[/green]")

    console.print(f"\n{RULE}")
    console.print("Review session ended.")
    console.print(RULE)
    return 0 if returncode == 0 else 1
