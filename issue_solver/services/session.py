"""Assistant sessions: run the AI tool in a worktree while keeping its PR current."""

import asyncio
import contextlib
import os
from typing import Callable, List, Optional, Tuple

from rich.console import Console

from issue_solver.exceptions import GitHubAPIError
from issue_solver.logging_config import get_logger
from issue_solver.models.worktree import PRState, PRStatus
from issue_solver.services.github_service import REVIEW_EVENTS, GitHubService
from issue_solver.services.git.repository import GitRepository

console = Console()
logger = get_logger(__name__)


def pr_title(issue_number: int, title: str) -> str:
    return f"Fix #{issue_number}: {title}"


def pr_body(issue_number: int, commit_messages: List[str]) -> str:
    """PR description closing the issue and listing its commits."""
    changes = "\n".join(f"- {message}" for message in commit_messages)
    return f"## Summary\n\nCloses #{issue_number}\n\n## Changes\n\n{changes}\n"


class PullRequestSync:
    """Pushes an issue branch and makes sure exactly one open PR tracks it."""

    def __init__(
        self,
        repository: GitRepository,
        github_service: GitHubService,
        issue_number: int,
        title: str,
        branch: str,
        worktree_path: str,
        base_branch: str,
    ):
        self.repository = repository
        self.github_service = github_service
        self.issue_number = issue_number
        self.title = title
        self.branch = branch
        self.worktree_path = worktree_path
        self.base_branch = base_branch

    def sync(self) -> Optional[PRStatus]:
        """Push new commits and open a PR if none is open yet.

        Returns:
            The open PR, or None when there is nothing to push or a step failed.
        """
        if self.repository.commit_count(self.worktree_path, self.base_branch) == 0:
            logger.debug(f"No commits on {self.branch} yet")
            return None

        existing = self.github_service.find_pr_for_branch(self.branch)
        if existing is not None and existing.state == PRState.OPEN:
            ok, error = self.repository.push_branch(
                self.worktree_path, self.branch, set_upstream=False
            )
            if ok:
                console.print(f"[green]Pushed new commits to PR #{existing.number}[/green]")
            else:
                console.print(f"[red]Could not push to PR #{existing.number}: {error}[/red]")
            return existing

        ok, error = self.repository.push_branch(self.worktree_path, self.branch)
        if not ok:
            console.print(f"[red]Could not push {self.branch}: {error}[/red]")
            return None

        commits = self.repository.commit_messages(self.worktree_path, self.base_branch)
        try:
            pr = self.github_service.create_pull_request(
                title=pr_title(self.issue_number, self.title),
                body=pr_body(self.issue_number, commits),
                head=self.branch,
                base=self.base_branch,
            )
        except GitHubAPIError as e:
            console.print(f"[red]Could not create PR for issue #{self.issue_number}: {e}[/red]")
            return None

        console.print(f"[bold green]PR created:[/bold green] {pr.url}")
        return pr


class CommitWatcher:
    """Polls HEAD of a worktree and calls on_commit whenever it moves.

    The first observation only records HEAD, so a resumed worktree does not
    trigger a sync for commits that already existed.
    """

    def __init__(
        self,
        repository: GitRepository,
        worktree_path: str,
        on_commit: Callable[[], object],
        poll_interval: float = 2.0,
    ):
        self.repository = repository
        self.worktree_path = worktree_path
        self.on_commit = on_commit
        self.poll_interval = poll_interval
        self.last_commit: Optional[str] = None
        self.triggered = 0
        self._task: Optional[asyncio.Task] = None
        self._sync: Optional[asyncio.Future] = None

    async def poll_once(self) -> bool:
        """Check HEAD once. Returns True if on_commit ran."""
        current = await asyncio.to_thread(self.repository.head_commit, self.worktree_path)
        changed = bool(current and self.last_commit and current != self.last_commit)
        if current:
            self.last_commit = current
        if not changed:
            return False

        logger.info(f"New commit {current[:8]} in {self.worktree_path}")
        self.triggered += 1
        # Cancelling the watcher leaves the sync running; stop() awaits it
        self._sync = asyncio.ensure_future(asyncio.to_thread(self.on_commit))
        try:
            await asyncio.shield(self._sync)
        except Exception as e:
            logger.warning(f"Sync after commit {current[:8]} failed: {e}")
        return True

    async def run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Stop polling. A sync already running is awaited before this returns."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        sync, self._sync = self._sync, None
        if sync is None:
            return
        if not sync.done():
            logger.debug("Waiting for the running sync to finish")
        try:
            await sync
        except Exception as e:
            logger.debug(f"Last sync ended with an error: {e}")


async def run_assistant(args: List[str], cwd: str) -> int:
    """Run the assistant attached to this terminal and wait for it to exit."""
    logger.debug(f"Starting assistant: {args[0]} in {cwd}")
    try:
        process = await asyncio.create_subprocess_exec(*args, cwd=cwd)
    except OSError as e:
        console.print(f"[red]Could not start {args[0]}: {e}[/red]")
        return 127
    return await process.wait()


def _remove_quietly(path: str) -> None:
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


async def run_solve_session(
    args: List[str],
    worktree_path: str,
    sync: PullRequestSync,
    watcher: CommitWatcher,
    prompt_file: Optional[str] = None,
) -> Tuple[int, Optional[PRStatus]]:
    """Run the assistant with the commit watcher alongside, then sync one last time.

    Returns:
        Tuple of (assistant exit code, open PR or None).
    """
    watcher.start()
    try:
        returncode = await run_assistant(args, worktree_path)
    finally:
        await watcher.stop()
        if prompt_file:
            _remove_quietly(prompt_file)

    pr = await asyncio.to_thread(sync.sync)
    return returncode, pr


def parse_review_file(path: str) -> Optional[Tuple[str, str]]:
    """Read a review written by the assistant.

    The first line names the event; anything unrecognised is posted as a comment.

    Returns:
        Tuple of (event, body), or None when no review was written.
    """
    try:
        with open(path) as f:
            content = f.read().strip()
    except OSError:
        return None
    if not content:
        return None

    first, _, rest = content.partition("\n")
    event = first.strip().upper().replace(" ", "_")
    if event in REVIEW_EVENTS:
        return event, rest.strip() or event.replace("_", " ").capitalize()
    return "COMMENT", content


async def run_review_session(
    args: List[str],
    worktree_path: str,
    github_service: GitHubService,
    pr_number: int,
    review_file: str,
    prompt_file: Optional[str] = None,
) -> Tuple[int, Optional[str]]:
    """Run the assistant as reviewer, then post what it wrote.

    Returns:
        Tuple of (assistant exit code, posted review event or None).
    """
    try:
        returncode = await run_assistant(args, worktree_path)
    finally:
        if prompt_file:
            _remove_quietly(prompt_file)

    review = parse_review_file(review_file)
    if review is None:
        console.print(f"[yellow]No review was written for PR #{pr_number}[/yellow]")
        return returncode, None

    event, body = review
    try:
        await asyncio.to_thread(github_service.post_review, pr_number, body, event)
    except GitHubAPIError as e:
        console.print(f"[red]Could not post review on PR #{pr_number}: {e}[/red]")
        console.print(f"[dim]The review is still in {review_file}[/dim]")
        return returncode, None

    _remove_quietly(review_file)
    console.print(f"[green]Posted {event} review on PR #{pr_number}[/green]")
    return returncode, event
