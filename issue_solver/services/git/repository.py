"""Repository-level git queries for issue-solver."""

import os
import re
from typing import List, Optional

import git

from issue_solver.logging_config import get_logger

logger = get_logger(__name__)

REMOTE_NAME = "origin"


def _describe_git_error(e: git.exc.GitCommandError) -> str:
    """Render a GitCommandError as a one-line message."""
    stderr = (e.stderr if hasattr(e, "stderr") else str(e)).strip()
    status = e.status if hasattr(e, "status") else "unknown"
    if stderr:
        return f"exit {status}: {stderr}"
    return f"exit code {status}"


def is_git_repo(path: str) -> bool:
    """Check whether path is inside a git working tree."""
    try:
        git.Repo(path, search_parent_directories=True)
        return True
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return False


class GitRepository:
    """Read-mostly access to the main repository and its worktrees."""

    def __init__(self, repo_path: str):
        """Initialize the service.

        Args:
            repo_path: Any path inside the repository
        """
        self.repo_path = repo_path
        self._project_root: Optional[str] = None
        self._project_name: Optional[str] = None

    def _get_repo(self, path: Optional[str] = None):
        """Get a fresh git.Repo instance.

        GitPython repos are lightweight, so a new one is opened for every call.
        Passing a worktree path opens that worktree instead of the main checkout.
        """
        return git.Repo(path or self.repo_path, search_parent_directories=path is None)

    @property
    def project_root(self) -> str:
        """Top-level directory of the repository."""
        if self._project_root is None:
            try:
                self._project_root = self._get_repo().git.rev_parse("--show-toplevel").strip()
            except Exception as e:
                logger.debug(f"Could not resolve repository root: {e}")
                self._project_root = os.path.abspath(self.repo_path)
        return self._project_root

    @property
    def parent_dir(self) -> str:
        """Directory that holds the project root and its issue worktrees."""
        return os.path.dirname(self.project_root)

    @property
    def project_name(self) -> str:
        """Repository name from the origin URL, or the root folder name."""
        if self._project_name is None:
            self._project_name = os.path.basename(self.project_root)
            remote_url = self.remote_url()
            if remote_url:
                match = re.search(r"[/:]([^/:]+?)(\.git)?/?$", remote_url)
                if match:
                    self._project_name = match.group(1)
        return self._project_name

    def remote_url(self) -> Optional[str]:
        """URL of the origin remote, if configured."""
        try:
            return self._get_repo().git.config("--get", f"remote.{REMOTE_NAME}.url").strip() or None
        except Exception as e:
            logger.debug(f"No {REMOTE_NAME} remote URL: {e}")
            return None

    def default_branch(self) -> str:
        """Determine the integration branch new issue branches fork from.

        Prefers origin's symbolic HEAD, then a develop branch, then main.
        """
        repo = self._get_repo()
        try:
            ref = repo.git.symbolic_ref(f"refs/remotes/{REMOTE_NAME}/HEAD").strip()
            prefix = f"refs/remotes/{REMOTE_NAME}/"
            if ref.startswith(prefix):
                return ref[len(prefix):]
        except git.exc.GitCommandError:
            logger.debug("origin/HEAD is not set")

        for ref in ("refs/heads/develop", f"refs/remotes/{REMOTE_NAME}/develop"):
            try:
                repo.git.show_ref("--verify", "--quiet", ref)
                return "develop"
            except git.exc.GitCommandError:
                continue

        return "main"

    def branch_exists(self, branch_name: str) -> bool:
        """Check whether a local branch exists."""
        try:
            self._get_repo().git.show_ref("--verify", "--quiet", f"refs/heads/{branch_name}")
            return True
        except git.exc.GitCommandError:
            return False

    def list_local_branches(self) -> List[str]:
        """Names of all local branches."""
        try:
            output = self._get_repo().git.branch("--format=%(refname:short)")
            return [line.strip() for line in output.splitlines() if line.strip()]
        except Exception as e:
            logger.debug(f"Could not list branches: {e}")
            return []

    def fetch_branch(self, branch: str, remote: str = REMOTE_NAME) -> tuple[bool, Optional[str]]:
        """Fetch one branch from the remote.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.fetch(remote, branch, "--quiet")
            logger.debug(f"Fetched {remote}/{branch}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git fetch {remote} {branch} failed ({_describe_git_error(e)})"
            logger.debug(error_msg)
            return False, error_msg

    def commit_count(self, worktree_path: str, base_branch: str) -> int:
        """Number of commits in the worktree that are not on the remote base branch."""
        try:
            output = self._get_repo(worktree_path).git.log(
                f"{REMOTE_NAME}/{base_branch}..HEAD", "--oneline"
            )
            return len([line for line in output.splitlines() if line.strip()])
        except Exception as e:
            logger.debug(f"Could not count commits in {worktree_path}: {e}")
            return 0

    def commit_messages(self, worktree_path: str, base_branch: str, limit: int = 10) -> List[str]:
        """Subjects of the newest commits not yet on the remote base branch."""
        try:
            output = self._get_repo(worktree_path).git.log(
                f"{REMOTE_NAME}/{base_branch}..HEAD", "--pretty=format:%s", f"-{limit}"
            )
            return [line for line in output.splitlines() if line.strip()]
        except Exception as e:
            logger.debug(f"Could not list commits in {worktree_path}: {e}")
            return []

    def head_commit(self, worktree_path: str) -> Optional[str]:
        """SHA of HEAD in the given worktree."""
        try:
            return self._get_repo(worktree_path).head.commit.hexsha
        except Exception as e:
            logger.debug(f"Could not read HEAD in {worktree_path}: {e}")
            return None

    def push_branch(
        self, worktree_path: str, branch: str, set_upstream: bool = True
    ) -> tuple[bool, Optional[str]]:
        """Push the branch to origin.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        args = ["-u"] if set_upstream else []
        try:
            self._get_repo(worktree_path).git.push(*args, REMOTE_NAME, branch)
            logger.info(f"Pushed {branch} to {REMOTE_NAME}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git push {REMOTE_NAME} {branch} failed ({_describe_git_error(e)})"
            logger.warning(error_msg)
            return False, error_msg

    def pull(self, worktree_path: str) -> bool:
        """Best-effort pull inside a worktree."""
        try:
            self._get_repo(worktree_path).git.pull("--quiet")
            return True
        except git.exc.GitCommandError as e:
            logger.debug(f"git pull in {worktree_path} failed ({_describe_git_error(e)})")
            return False
