"""Service wiring shared by every issue-solver command."""

from typing import List, Optional, Union

from issue_solver.config import Config
from issue_solver.exceptions import GitHubAPIError
from issue_solver.logging_config import get_logger
from issue_solver.models.worktree import Worktree, WorktreeWithStatus
from issue_solver.services.git import GitRepository, WorktreeService
from issue_solver.services.github_service import GitHubService
from issue_solver.services.lifecycle import WorktreeLifecycle
from issue_solver.services.status_service import StatusService
from issue_solver.services.window_closer import WindowCloser

logger = get_logger(__name__)


class IssueSolver:
    """Holds the repository, GitHub and lifecycle services for one invocation."""

    def __init__(
        self,
        repo_path: str,
        config: Union[Config, dict],
        github_service: Optional[GitHubService] = None,
        window_closer: Optional[WindowCloser] = None,
    ):
        """Initialize IssueSolver.

        Args:
            repo_path: Any path inside the repository
            config: Configuration dict or Config object
            github_service: Pre-built GitHub service, mainly for tests
            window_closer: Window closer used during teardown
        """
        self.repo_path = repo_path
        if isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config

        self.repository = GitRepository(repo_path)
        self.github_service = github_service or GitHubService(
            self.repository.project_root, self.config
        )
        self.worktree_service = WorktreeService(self.repository)
        self.status_service = StatusService(self.github_service, self.config)
        self.lifecycle = WorktreeLifecycle(
            self.repository,
            self.config,
            worktree_service=self.worktree_service,
            window_closer=window_closer,
        )

    def connect(self) -> None:
        """Open the GitHub repository behind the origin remote.

        Raises:
            GitHubAPIError: If there is no origin remote or GitHub rejects the token
        """
        remote_url = self.repository.remote_url()
        if not remote_url:
            raise GitHubAPIError("setup", "repository has no origin remote")
        self.github_service.setup_github_api(remote_url)

    def close(self) -> None:
        self.github_service.close()

    def discover(self) -> List[Worktree]:
        return self.worktree_service.discover_issue_worktrees()

    def find_worktree(self, issue_number: int) -> Optional[Worktree]:
        """Registered worktree for an issue, falling back to an orphaned folder."""
        matches = [wt for wt in self.discover() if wt.issue_number == str(issue_number)]
        registered = [wt for wt in matches if not wt.is_orphaned]
        return (registered or matches or [None])[0]

    def discover_with_status(self) -> List[WorktreeWithStatus]:
        """Every issue worktree joined with its GitHub state, fetched concurrently."""
        worktrees = self.discover()
        return self.status_service.fetch_statuses_sync(worktrees)
