"""End-to-end tests for the clean commands"""
import os

import git
import pytest

from issue_solver.commands.clean import clean_all_command, clean_command, clean_merged_command
from issue_solver.models.worktree import PRState, PRStatus


def _prs_by_issue(mapping):
    """find_pr_for_branch stub answering per issue number."""
    def find_pr(branch):
        number = int(branch.split("-")[1])
        state = mapping.get(number)
        return PRStatus(number=100 + number, state=state, url=f"https://github.com/pr/{number}") if state else None
    return find_pr


@pytest.fixture
def populated(solver, workspace):
    """Worktrees for #42 (merged PR), #43 (open PR) and an orphaned folder for #99."""
    merged = solver.lifecycle.create_or_attach_worktree(42, "Fix login")
    open_ = solver.lifecycle.create_or_attach_worktree(43, "Add search")
    orphan = workspace / "myproject-issue-99-old-stuff"
    orphan.mkdir()
    (orphan / "leftover.txt").write_text("x")
    solver.github_service.find_pr_for_branch.side_effect = _prs_by_issue(
        {42: PRState.MERGED, 43: PRState.OPEN}
    )
    return {"merged": merged, "open": open_, "orphan": str(orphan)}


class TestCleanMerged:
    """Test `clean --merged`."""

    def test_removes_merged_and_orphaned_only(self, solver, populated):
        assert clean_merged_command(solver) == 0

        assert not os.path.exists(populated["merged"].path)
        assert not os.path.exists(populated["orphan"])
        assert not solver.repository.branch_exists(populated["merged"].branch)

        assert os.path.exists(populated["open"].path)
        assert solver.repository.branch_exists(populated["open"].branch)
        assert [w.issue_number for w in solver.discover()] == ["43"]

    def test_nothing_to_clean(self, solver):
        assert clean_merged_command(solver) == 0

    def test_nothing_merged(self, solver):
        solver.lifecycle.create_or_attach_worktree(43, "Add search")
        solver.github_service.find_pr_for_branch.side_effect = _prs_by_issue({43: PRState.OPEN})
        assert clean_merged_command(solver) == 0
        assert len(solver.discover()) == 1

    def test_detached_worktree_survives(self, solver, commit_in):
        """A live worktree mid-rebase keeps its uncommitted work."""
        session = solver.lifecycle.create_or_attach_worktree(5, "Rework parser")
        commit_in(session.path)
        with open(os.path.join(session.path, "draft.txt"), "w") as f:
            f.write("not committed yet\n")
        git.Repo(session.path).git.checkout("--detach")

        assert clean_merged_command(solver) == 0

        assert os.path.exists(os.path.join(session.path, "draft.txt"))
        assert [(w.issue_number, w.detached) for w in solver.discover()] == [("5", True)]

    def test_unreachable_github_keeps_everything_but_orphans(self, solver, populated):
        solver.github_service.find_pr_for_branch.side_effect = RuntimeError("offline")
        solver.github_service.get_issue_state.side_effect = RuntimeError("offline")
        assert clean_merged_command(solver) == 0
        assert sorted(w.issue_number for w in solver.discover()) == ["42", "43"]


class TestCleanSingle:
    """Test `clean <issue>`."""

    def test_removes_issue_worktree(self, solver, populated, monkeypatch):
        monkeypatch.setattr("issue_solver.commands.clean.confirm", lambda *a, **k: True)
        assert clean_command(solver, 43) == 0
        assert not os.path.exists(populated["open"].path)
        assert os.path.exists(populated["merged"].path)

    def test_removes_orphan_by_number(self, solver, populated, monkeypatch):
        monkeypatch.setattr("issue_solver.commands.clean.confirm", lambda *a, **k: True)
        assert clean_command(solver, 99) == 0
        assert not os.path.exists(populated["orphan"])

    def test_declined(self, solver, populated, monkeypatch):
        monkeypatch.setattr("issue_solver.commands.clean.confirm", lambda *a, **k: False)
        assert clean_command(solver, 43) == 0
        assert os.path.exists(populated["open"].path)

    def test_unknown_issue(self, solver):
        assert clean_command(solver, 7) == 1

    def test_detached_worktree_then_branch(self, solver, monkeypatch):
        monkeypatch.setattr("issue_solver.commands.clean.confirm", lambda *a, **k: True)
        session = solver.lifecycle.create_or_attach_worktree(5, "Rework parser")
        git.Repo(session.path).git.checkout("--detach")

        assert clean_command(solver, 5) == 0
        assert not os.path.exists(session.path)
        assert solver.repository.branch_exists(session.branch)

        assert clean_command(solver, 5) == 0
        assert not solver.repository.branch_exists(session.branch)

    def test_branch_without_worktree(self, solver, git_repo, monkeypatch):
        git_repo.git.branch("issue-7-add-docs")
        monkeypatch.setattr("issue_solver.commands.clean.confirm", lambda *a, **k: True)
        assert clean_command(solver, 7) == 0
        assert not solver.repository.branch_exists("issue-7-add-docs")


class TestCleanAll:
    """Test `clean --all` with the picker."""

    def test_preselection_is_used(self, solver, populated, monkeypatch):
        seen = {}

        def accept_defaults(title, choices):
            seen["checked"] = sorted(c.value.worktree.issue_number for c in choices if c.checked)
            return [c.value for c in choices if c.checked]

        monkeypatch.setattr("issue_solver.commands.clean.pick_many", accept_defaults)
        monkeypatch.setattr("issue_solver.commands.clean.confirm", lambda *a, **k: True)

        assert clean_all_command(solver) == 0
        assert seen["checked"] == ["42", "99"]
        assert [w.issue_number for w in solver.discover()] == ["43"]

    def test_cancelled_picker(self, solver, populated, monkeypatch):
        monkeypatch.setattr("issue_solver.commands.clean.pick_many", lambda title, choices: None)
        assert clean_all_command(solver) == 0
        assert len(solver.discover()) == 3

    def test_no_worktrees(self, solver):
        assert clean_all_command(solver) == 0
