"""Pytest fixtures for issue-solver tests"""
import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock
import pytest
import git

from issue_solver.core import IssueSolver
from issue_solver.models.worktree import IssueState, IssueStatus
from issue_solver.services.window_closer import WindowCloser


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handlers installed by setup_logging when a test runs the CLI."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing.

    Resolved so paths compare equal to what git reports on macOS, where /tmp is a symlink.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def mock_config():
    """Create a mock configuration dictionary."""
    return {
        'verbose': False,
        'debug': False,
        'github_token': 'test_token_for_testing',
        'ai_tool': 'claude',
        'auto_close': False,
        'issue_limit': 50,
        'poll_interval': 0.01,
        'window_close_delay': 0,
        'max_concurrent_requests': 4,
    }


def _commit(repo, path: Path, name: str, content: str, message: str):
    (path / name).write_text(content)
    repo.git.add(name)
    repo.git.commit("-m", message)
    return repo.head.commit.hexsha


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with a local bare origin.

    Layout:
        temp_dir/remotes/myproject.git   bare origin
        temp_dir/workspace/myproject     main checkout; issue worktrees become its siblings
    """
    remote_path = temp_dir / "remotes" / "myproject.git"
    remote_path.parent.mkdir()
    git.Repo.init(remote_path, bare=True).close()

    repo_path = temp_dir / "workspace" / "myproject"
    repo_path.mkdir(parents=True)
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()
    repo.config_writer().set_value("commit", "gpgsign", "false").release()

    _commit(repo, repo_path, "README.md", "# Test Repository\n", "Initial commit")
    repo.git.branch('-M', 'main')

    repo.create_remote('origin', str(remote_path))
    repo.git.push('origin', 'main')
    repo.git.symbolic_ref('refs/remotes/origin/HEAD', 'refs/remotes/origin/main')

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def workspace(git_repo):
    """Directory holding the main checkout and its issue worktrees."""
    return Path(git_repo.working_dir).parent


@pytest.fixture
def mock_github_service():
    """Create a mock GitHubService with every issue open and no PRs."""
    service = Mock()
    service.get_issue_state.return_value = IssueStatus(IssueState.OPEN)
    service.find_pr_for_branch.return_value = None
    service.get_issue.return_value = None
    service.list_open_prs.return_value = []
    service.get_repo_name.return_value = "test/myproject"
    return service


@pytest.fixture
def solver(git_repo, mock_config, mock_github_service):
    """IssueSolver on the test repository with GitHub mocked out and no window automation."""
    return IssueSolver(
        git_repo.working_dir,
        mock_config,
        github_service=mock_github_service,
        window_closer=WindowCloser(),
    )


@pytest.fixture
def commit_in():
    """Helper committing a file inside a worktree."""
    def _commit_in(worktree_path, name="change.txt", content="change\n", message="Change"):
        repo = git.Repo(worktree_path)
        try:
            return _commit(repo, Path(worktree_path), name, content, message)
        finally:
            repo.close()
    return _commit_in
