"""Tests for merging PRs and cleaning up their worktrees"""
import os
from unittest.mock import Mock

from issue_solver.commands.merge import _worktree_for_pr, merge_command, merge_pull_requests
from issue_solver.exceptions import GitHubAPIError
from issue_solver.models.issue import OpenPullRequest
from issue_solver.models.worktree import TeardownResult, Worktree


def _pr(number, head, issue_number, decision="APPROVED", mergeable="MERGEABLE"):
    return OpenPullRequest(
        number=number,
        title=f"Fix #{issue_number}: something",
        head_ref_name=head,
        issue_number=issue_number,
        review_decision=decision,
        mergeable=mergeable,
    )


class TestWorktreeForPR:
    """Test matching PRs to local worktrees."""

    def test_match_by_branch(self):
        worktrees = [Worktree("/src/p-issue-42-x", "issue-42-x", "42")]
        assert _worktree_for_pr(worktrees, _pr(1, "issue-42-x", 42)) is worktrees[0]

    def test_orphan_matched_by_issue_number(self):
        worktrees = [Worktree("/src/p-issue-42-x", "", "42")]
        assert _worktree_for_pr(worktrees, _pr(1, "issue-42-x", 42)) is worktrees[0]

    def test_no_match(self):
        worktrees = [Worktree("/src/p-issue-42-x", "issue-42-x", "42")]
        assert _worktree_for_pr(worktrees, _pr(1, "feature/y", None)) is None


class TestMergePullRequests:
    """Test teardown-before-merge and failure counting."""

    def test_teardown_happens_before_merge(self, solver):
        session = solver.lifecycle.create_or_attach_worktree(42, "Fix login")
        calls = []

        lifecycle = Mock()
        lifecycle.tear_down.side_effect = lambda worktree, pr_number: (
            calls.append(("teardown", worktree.issue_number, pr_number))
            or TeardownResult(worktree=worktree, branch_deleted=True, directory_removed=True)
        )
        solver.github_service.merge_pull_request.side_effect = (
            lambda number, delete_branch: calls.append(("merge", number))
        )

        merged, failed = merge_pull_requests(solver, [_pr(10, session.branch, 42)], lifecycle)

        assert (merged, failed) == (1, 0)
        assert calls == [("teardown", "42", 10), ("merge", 10)]

    def test_real_teardown_then_merge(self, solver):
        session = solver.lifecycle.create_or_attach_worktree(42, "Fix login")

        def merge(number, delete_branch):
            # Local worktree and branch are already gone when GitHub deletes the head branch
            assert not os.path.exists(session.path)
            assert not solver.repository.branch_exists(session.branch)

        solver.github_service.merge_pull_request.side_effect = merge
        assert merge_pull_requests(solver, [_pr(10, session.branch, 42)]) == (1, 0)

    def test_failures_are_counted_and_do_not_stop_the_rest(self, solver):
        def merge(number, delete_branch):
            if number == 11:
                raise GitHubAPIError("merge", "PR #11: not mergeable")

        solver.github_service.merge_pull_request.side_effect = merge
        prs = [_pr(11, "issue-50-nothing", 50), _pr(12, "issue-51-other", 51)]

        assert merge_pull_requests(solver, prs) == (1, 1)
        assert solver.github_service.merge_pull_request.call_count == 2

    def test_branch_without_worktree_is_deleted(self, solver, git_repo):
        git_repo.git.branch("issue-60-branch-only")
        merge_pull_requests(solver, [_pr(13, "issue-60-branch-only", 60)])
        assert not solver.repository.branch_exists("issue-60-branch-only")


class TestMergeCommand:
    """Test the interactive merge command."""

    def test_no_open_prs(self, solver):
        solver.github_service.list_open_prs.return_value = []
        assert merge_command(solver) == 0

    def test_ready_prs_are_preselected(self, solver, monkeypatch):
        ready = _pr(10, "issue-42-x", 42)
        waiting = _pr(11, "issue-43-y", 43, decision=None)
        conflicted = _pr(12, "issue-44-z", 44, mergeable="CONFLICTING")
        solver.github_service.list_open_prs.return_value = [ready, waiting, conflicted]
        seen = {}

        def accept_defaults(title, choices):
            seen["checked"] = [c.value.number for c in choices if c.checked]
            return [c.value for c in choices if c.checked]

        monkeypatch.setattr("issue_solver.commands.merge.pick_many", accept_defaults)
        monkeypatch.setattr("issue_solver.commands.merge.confirm", lambda *a, **k: True)

        assert merge_command(solver) == 0
        assert seen["checked"] == [10]
        solver.github_service.merge_pull_request.assert_called_once_with(10, delete_branch=True)

    def test_failed_merge_exit_code(self, solver, monkeypatch):
        solver.github_service.list_open_prs.return_value = [_pr(10, "issue-42-x", 42)]
        solver.github_service.merge_pull_request.side_effect = GitHubAPIError("merge", "PR #10")
        monkeypatch.setattr("issue_solver.commands.merge.pick_many", lambda t, c: [c[0].value])
        monkeypatch.setattr("issue_solver.commands.merge.confirm", lambda *a, **k: True)
        assert merge_command(solver) == 1
