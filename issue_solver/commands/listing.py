"""List and show open issues."""

from rich.console import Console
from rich.table import Table

from issue_solver.core import IssueSolver
from issue_solver.exceptions import IssueNotFoundError
from issue_solver.formatters import format_labels

console = Console()


def resolve_limit(solver: IssueSolver, limit=None, show_all: bool = False) -> int:
    """Issue limit for listings; 0 means everything."""
    if show_all:
        return 0
    if limit is not None:
        return limit
    return solver.config.issue_limit


def list_command(solver: IssueSolver, limit=None, show_all: bool = False, verbose: bool = False) -> int:
    """Print open issues, marking those that already have an open PR."""
    project = solver.github_service.get_repo_name() or solver.repository.project_name
    effective_limit = resolve_limit(solver, limit, show_all)

    with console.status("Fetching issues..."):
        issues = solver.github_service.list_issues(effective_limit)
        issues_with_prs = solver.github_service.get_issues_with_open_prs() if issues else set()

    console.print(f"\n[bold]Open issues for {project}:[/bold]\n")
    if not issues:
        console.print("[yellow]No open issues found.[/yellow]")
        return 0

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Title")
    table.add_column("Labels")
    for issue in issues:
        title = issue.title
        if issue.number in issues_with_prs:
            title += " [magenta]\\[PR][/magenta]"
        table.add_row(f"#{issue.number}", title, format_labels(issue.labels))
    console.print(table)

    if verbose:
        console.print(f"\n[dim]{len(issues)} issues, {len(issues_with_prs)} with open PRs[/dim]")
    if effective_limit and len(issues) == effective_limit and limit is None:
        console.print(
            f"\n[dim]Showing first {effective_limit} issues. "
            "Use --limit <n> or --all to see more.[/dim]"
        )
    console.print()
    return 0


def show_command(solver: IssueSolver, issue_number: int) -> int:
    """Print the full description of an issue."""
    issue = solver.github_service.get_issue(issue_number)
    if issue is None:
        console.print(f"[red]{IssueNotFoundError(issue_number)}[/red]")
        return 1

    console.print()
    console.print(f"[bold cyan]#{issue.number}[/bold cyan] [bold]{issue.title}[/bold]")
    console.print(f"[dim]{issue.url}[/dim]")
    if issue.labels:
        console.print(format_labels(issue.labels))
    console.print()
    if issue.body:
        console.print(issue.body, markup=False)
    else:
        console.print("[dim]No description provided.[/dim]")
    console.print()
    return 0
