"""Status lookup and classification for issue worktrees."""

import asyncio
from typing import List, TYPE_CHECKING, Union

from issue_solver.logging_config import get_logger
from issue_solver.models.worktree import (
    IssueState,
    PRState,
    StatusLabel,
    Worktree,
    WorktreeWithStatus,
)

if TYPE_CHECKING:
    from issue_solver.config import Config
    from issue_solver.services.github_service import GitHubService

logger = get_logger(__name__)

_PR_LABELS = {
    PRState.MERGED: StatusLabel.PR_MERGED,
    PRState.OPEN: StatusLabel.PR_OPEN,
    PRState.CLOSED: StatusLabel.PR_CLOSED,
}


def get_status_label(status: WorktreeWithStatus) -> StatusLabel:
    """Classify a worktree: orphan, then PR state, then issue state."""
    if status.worktree.is_orphaned:
        return StatusLabel.ORPHANED
    if status.pr_status is not None:
        return _PR_LABELS[status.pr_status.state]
    if status.issue_status is not None:
        if status.issue_status.state == IssueState.CLOSED:
            return StatusLabel.ISSUE_CLOSED
        return StatusLabel.ISSUE_OPEN
    return StatusLabel.UNKNOWN


def is_preselected_for_cleanup(status: WorktreeWithStatus) -> bool:
    """Merged PRs and orphaned folders are safe to clean without a second look."""
    return status.worktree.is_orphaned or status.pr_state == PRState.MERGED


def cleanup_candidates(statuses: List[WorktreeWithStatus]) -> List[WorktreeWithStatus]:
    return [s for s in statuses if is_preselected_for_cleanup(s)]


class StatusService:
    """Joins discovered worktrees with issue and PR state from GitHub."""

    def __init__(self, github_service: "GitHubService", config: Union["Config", dict]):
        self.github_service = github_service
        self.max_concurrent = config.get("max_concurrent_requests", 10)

    def fetch_status(self, worktree: Worktree) -> WorktreeWithStatus:
        """Look up issue and PR state for one worktree. Never raises."""
        issue_status = None
        pr_status = None
        try:
            issue_status = self.github_service.get_issue_state(int(worktree.issue_number))
        except Exception as e:
            logger.debug(f"Issue lookup for #{worktree.issue_number} failed: {e}")
        if worktree.branch:
            try:
                pr_status = self.github_service.find_pr_for_branch(worktree.branch)
            except Exception as e:
                logger.debug(f"PR lookup for {worktree.branch} failed: {e}")
        return WorktreeWithStatus(worktree=worktree, issue_status=issue_status, pr_status=pr_status)

    async def fetch_statuses(self, worktrees: List[Worktree]) -> List[WorktreeWithStatus]:
        """Look up every worktree concurrently and return once all are known.

        Results keep the order of the input list.
        """
        if not worktrees:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_one(worktree: Worktree) -> WorktreeWithStatus:
            async with semaphore:
                return await asyncio.to_thread(self.fetch_status, worktree)

        logger.debug(
            f"Fetching status for {len(worktrees)} worktrees "
            f"({self.max_concurrent} concurrent requests)"
        )
        return list(await asyncio.gather(*(fetch_one(wt) for wt in worktrees)))

    def fetch_statuses_sync(self, worktrees: List[Worktree]) -> List[WorktreeWithStatus]:
        """Blocking wrapper around fetch_statuses for command code."""
        return asyncio.run(self.fetch_statuses(worktrees))
