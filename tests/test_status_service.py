"""Tests for status lookup and classification"""
import asyncio
import threading
import time
from unittest.mock import Mock

from issue_solver.formatters import format_status_label, format_worktree_row
from issue_solver.models.worktree import (
    IssueState,
    IssueStatus,
    PRState,
    PRStatus,
    StatusLabel,
    Worktree,
    WorktreeWithStatus,
)
from issue_solver.services.status_service import (
    StatusService,
    cleanup_candidates,
    get_status_label,
    is_preselected_for_cleanup,
)


def _worktree(number, orphaned=False):
    branch = "" if orphaned else f"issue-{number}-work"
    return Worktree(path=f"/src/myproject-issue-{number}-work", branch=branch, issue_number=str(number))


def _status(number=1, orphaned=False, pr=None, issue=None):
    return WorktreeWithStatus(
        worktree=_worktree(number, orphaned),
        issue_status=IssueStatus(issue) if issue else None,
        pr_status=PRStatus(number=100 + number, state=pr, url="u") if pr else None,
    )


class TestStatusLabel:
    """Test label priority: orphan, PR, issue, unknown."""

    def test_orphan_wins(self):
        status = _status(orphaned=True, pr=PRState.OPEN, issue=IssueState.OPEN)
        assert get_status_label(status) == StatusLabel.ORPHANED

    def test_pr_states(self):
        assert get_status_label(_status(pr=PRState.MERGED, issue=IssueState.CLOSED)) == StatusLabel.PR_MERGED
        assert get_status_label(_status(pr=PRState.OPEN)) == StatusLabel.PR_OPEN
        assert get_status_label(_status(pr=PRState.CLOSED)) == StatusLabel.PR_CLOSED

    def test_issue_states(self):
        assert get_status_label(_status(issue=IssueState.CLOSED)) == StatusLabel.ISSUE_CLOSED
        assert get_status_label(_status(issue=IssueState.OPEN)) == StatusLabel.ISSUE_OPEN

    def test_unknown(self):
        assert get_status_label(_status()) == StatusLabel.UNKNOWN


class TestCleanupPreselection:
    """Only merged PRs and orphaned folders are pre-selected."""

    def test_preselected(self):
        assert is_preselected_for_cleanup(_status(pr=PRState.MERGED)) is True
        assert is_preselected_for_cleanup(_status(orphaned=True)) is True

    def test_not_preselected(self):
        assert is_preselected_for_cleanup(_status(pr=PRState.OPEN)) is False
        assert is_preselected_for_cleanup(_status(pr=PRState.CLOSED)) is False
        assert is_preselected_for_cleanup(_status(issue=IssueState.CLOSED)) is False
        assert is_preselected_for_cleanup(_status()) is False

    def test_cleanup_candidates_keep_order(self):
        statuses = [
            _status(1, pr=PRState.MERGED),
            _status(2, pr=PRState.OPEN),
            _status(3, orphaned=True),
        ]
        assert [s.worktree.issue_number for s in cleanup_candidates(statuses)] == ["1", "3"]


class TestFormatting:
    """Test status rendering."""

    def test_format_status_label(self):
        assert format_status_label(StatusLabel.PR_MERGED) == "[green]PR merged[/green]"

    def test_format_worktree_row(self):
        row = format_worktree_row(_status(42, pr=PRState.MERGED))
        assert row == "#42  issue-42-work  [green]PR merged[/green]"

    def test_format_orphan_row(self):
        assert "(no branch)" in format_worktree_row(_status(3, orphaned=True))

    def test_format_detached_row(self):
        worktree = Worktree("/src/myproject-issue-5-work", "", "5", detached=True)
        row = format_worktree_row(WorktreeWithStatus(worktree=worktree))
        assert "(detached HEAD)" in row
        assert "orphaned" not in row


class TestStatusService:
    """Test concurrent status lookup."""

    def test_fetch_status(self, mock_config):
        github = Mock()
        github.get_issue_state.return_value = IssueStatus(IssueState.CLOSED)
        github.find_pr_for_branch.return_value = PRStatus(5, PRState.MERGED, "u")

        status = StatusService(github, mock_config).fetch_status(_worktree(42))
        assert status.issue_status.state == IssueState.CLOSED
        assert status.pr_state == PRState.MERGED
        github.get_issue_state.assert_called_once_with(42)
        github.find_pr_for_branch.assert_called_once_with("issue-42-work")

    def test_orphan_skips_pr_lookup(self, mock_config):
        github = Mock()
        github.get_issue_state.return_value = IssueStatus(IssueState.OPEN)
        StatusService(github, mock_config).fetch_status(_worktree(3, orphaned=True))
        github.find_pr_for_branch.assert_not_called()

    def test_fetch_status_never_raises(self, mock_config):
        github = Mock()
        github.get_issue_state.side_effect = RuntimeError("network down")
        github.find_pr_for_branch.side_effect = RuntimeError("network down")
        status = StatusService(github, mock_config).fetch_status(_worktree(42))
        assert status.issue_status is None
        assert status.pr_status is None
        assert get_status_label(status) == StatusLabel.UNKNOWN

    def test_failed_issue_lookup_keeps_pr(self, mock_config):
        """A merged PR is still seen when the issue lookup fails."""
        github = Mock()
        github.get_issue_state.side_effect = RuntimeError("rate limited")
        github.find_pr_for_branch.return_value = PRStatus(5, PRState.MERGED, "u")
        status = StatusService(github, mock_config).fetch_status(_worktree(42))
        assert status.issue_status is None
        assert get_status_label(status) == StatusLabel.PR_MERGED

    def test_failed_pr_lookup_keeps_issue(self, mock_config):
        github = Mock()
        github.get_issue_state.return_value = IssueStatus(IssueState.CLOSED)
        github.find_pr_for_branch.side_effect = RuntimeError("rate limited")
        status = StatusService(github, mock_config).fetch_status(_worktree(42))
        assert get_status_label(status) == StatusLabel.ISSUE_CLOSED

    def test_detached_worktree_uses_issue_state(self, mock_config):
        github = Mock()
        github.get_issue_state.return_value = IssueStatus(IssueState.OPEN)
        worktree = Worktree("/src/myproject-issue-5-work", "", "5", detached=True)
        status = StatusService(github, mock_config).fetch_status(worktree)
        github.find_pr_for_branch.assert_not_called()
        assert get_status_label(status) == StatusLabel.ISSUE_OPEN
        assert not is_preselected_for_cleanup(status)

    def test_results_keep_input_order(self, mock_config):
        github = Mock()

        def slow_state(number):
            # Later issues answer first
            time.sleep((6 - number) * 0.01)
            return IssueStatus(IssueState.OPEN)

        github.get_issue_state.side_effect = slow_state
        github.find_pr_for_branch.return_value = None
        worktrees = [_worktree(n) for n in range(1, 6)]

        statuses = asyncio.run(StatusService(github, mock_config).fetch_statuses(worktrees))
        assert [s.worktree for s in statuses] == worktrees

    def test_concurrency_is_capped(self):
        github = Mock()
        lock = threading.Lock()
        active = {"now": 0, "max": 0}

        def tracked(number):
            with lock:
                active["now"] += 1
                active["max"] = max(active["max"], active["now"])
            time.sleep(0.02)
            with lock:
                active["now"] -= 1
            return IssueStatus(IssueState.OPEN)

        github.get_issue_state.side_effect = tracked
        github.find_pr_for_branch.return_value = None
        service = StatusService(github, {"max_concurrent_requests": 2})

        statuses = service.fetch_statuses_sync([_worktree(n) for n in range(1, 7)])
        assert len(statuses) == 6
        assert 1 <= active["max"] <= 2

    def test_empty(self, mock_config):
        assert StatusService(Mock(), mock_config).fetch_statuses_sync([]) == []
