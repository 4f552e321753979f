"""Create the PR for an issue that has already been worked on."""

from rich.console import Console

from issue_solver.core import IssueSolver
from issue_solver.exceptions import IssueNotFoundError, WorktreeNotFoundError
from issue_solver.services.session import PullRequestSync
from issue_solver.ui.picker import confirm

console = Console()


def pr_command(solver: IssueSolver, issue_number: int) -> int:
    """Push the issue branch and open a PR that closes the issue."""
    with console.status(f"Fetching issue #{issue_number}..."):
        issue = solver.github_service.get_issue(issue_number)
    if issue is None:
        console.print(f"[red]{IssueNotFoundError(issue_number)}[/red]")
        return 1

    worktree = solver.find_worktree(issue_number)
    if worktree is None or worktree.is_orphaned:
        path = worktree.path if worktree else None
        console.print(f"[red]{WorktreeNotFoundError(issue_number, path)}[/red]")
        console.print(f"[dim]Make sure you've run: issue-solver {issue_number}[/dim]")
        return 1
    if worktree.detached:
        console.print(f"[yellow]Worktree {worktree.path} is on a detached HEAD[/yellow]")
        console.print("[dim]Check out the issue branch there before creating a PR.[/dim]")
        return 1

    base_branch = solver.repository.default_branch()
    commits = solver.repository.commit_count(worktree.path, base_branch)
    if commits == 0:
        console.print(f"[yellow]No commits found on branch {worktree.branch}[/yellow]")
        console.print("[dim]Commit changes in the worktree before creating a PR.[/dim]")
        return 1

    console.print(f"\n[bold]Issue #{issue_number}: {issue.title}[/bold]")
    console.print(f"[dim]Branch: {worktree.branch}[/dim]")
    console.print(f"[dim]Commits: {commits}[/dim]\n")

    if not confirm(f"Create PR to close issue #{issue_number}?", default=True):
        console.print("[dim]Cancelled.[/dim]")
        return 0

    sync = PullRequestSync(
        solver.repository,
        solver.github_service,
        issue_number,
        issue.title,
        worktree.branch,
        worktree.path,
        base_branch,
    )
    with console.status("Pushing branch and creating PR..."):
        pr = sync.sync()
    if pr is None:
        return 1

    console.print(f"[dim]The PR closes issue #{issue_number} when merged.[/dim]")
    console.print(f"[dim]Clean up after merge: issue-solver clean {issue_number}[/dim]")
    return 0
