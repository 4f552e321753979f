"""Worktree operations service for issue-solver."""

import os
from typing import Dict, List, Optional

import git

from issue_solver.exceptions import WorktreeCreationError
from issue_solver.logging_config import get_logger
from issue_solver.models.worktree import Worktree
from issue_solver.naming import folder_prefix, issue_number_from_branch, issue_number_from_folder
from issue_solver.services.git.repository import GitRepository, _describe_git_error

logger = get_logger(__name__)


def parse_worktree_porcelain(output: str) -> List[Dict[str, str]]:
    """Parse ``git worktree list --porcelain`` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name
        (blank line between worktrees)

    Returns:
        One dict per worktree with 'path' and 'branch' keys. Detached worktrees
        get an empty branch.
    """
    entries: List[Dict[str, str]] = []
    current: Dict[str, str] = {}

    for line in output.split("\n"):
        line = line.strip()

        if not line:
            # Empty line marks end of worktree entry
            if current.get("path"):
                entries.append(current)
            current = {}
            continue

        if line.startswith("worktree "):
            current = {"path": line.split(" ", 1)[1], "branch": ""}
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith("refs/heads/"):
                current["branch"] = branch_ref[len("refs/heads/"):]
        elif line.startswith("detached"):
            current["branch"] = ""

    # Handle last entry if no trailing blank line
    if current.get("path"):
        entries.append(current)

    return entries


def _same_path(a: str, b: str) -> bool:
    return os.path.realpath(a) == os.path.realpath(b)


class WorktreeService:
    """Service for discovering, creating and removing issue worktrees."""

    def __init__(self, repository: GitRepository):
        """Initialize the worktree service.

        Args:
            repository: Repository the worktrees belong to
        """
        self.repository = repository

    def _get_repo(self):
        return git.Repo(self.repository.project_root)

    def list_registered(self) -> List[Dict[str, str]]:
        """All worktrees git knows about, including the main checkout."""
        try:
            output = self._get_repo().git.worktree("list", "--porcelain")
        except Exception as e:
            logger.debug(f"Could not list worktrees: {e}")
            return []
        entries = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(entries)} registered worktrees")
        return entries

    def discover_issue_worktrees(self) -> List[Worktree]:
        """Find every issue worktree, including folders git has lost track of.

        Git's registry and the filesystem can disagree after a killed process, a
        manual ``rm -rf`` or a half-finished ``git worktree remove``. Registered
        issue worktrees are listed first; any sibling folder that follows the
        naming convention but matched no registered path is reported as an
        orphan with an empty branch. Registered issue folders on a detached
        HEAD are reported as detached, never as orphans.
        """
        project_name = self.repository.project_name
        prefix = folder_prefix(project_name)

        worktrees: List[Worktree] = []
        matched_paths: List[str] = []

        for entry in self.list_registered():
            path, branch = entry["path"], entry.get("branch", "")
            issue_number = issue_number_from_branch(branch)
            if issue_number and prefix in path:
                worktrees.append(Worktree(path=path, branch=branch, issue_number=issue_number))
                matched_paths.append(path)
                continue

            # A registered issue folder is never an orphan, whatever it has checked out
            folder_issue = issue_number_from_folder(
                project_name, os.path.basename(path.rstrip(os.sep))
            )
            if not folder_issue:
                continue
            matched_paths.append(path)
            if branch:
                logger.debug(f"Skipping {path}: on branch {branch}, not an issue branch")
            else:
                worktrees.append(
                    Worktree(path=path, branch="", issue_number=folder_issue, detached=True)
                )

        parent_dir = self.repository.parent_dir
        try:
            names = sorted(os.listdir(parent_dir))
        except OSError as e:
            logger.debug(f"Could not scan {parent_dir} for orphaned folders: {e}")
            names = []

        for name in names:
            folder = os.path.join(parent_dir, name)
            if not name.startswith(prefix) or not os.path.isdir(folder):
                continue
            issue_number = issue_number_from_folder(project_name, name)
            if not issue_number:
                continue
            if any(_same_path(folder, p) for p in matched_paths):
                continue
            logger.debug(f"Orphaned folder for issue #{issue_number}: {folder}")
            worktrees.append(Worktree(path=folder, branch="", issue_number=issue_number))

        return worktrees

    def add_worktree(
        self, path: str, branch: str, new_branch_from: Optional[str] = None
    ) -> None:
        """Create a worktree at path.

        Args:
            path: Folder to create
            branch: Existing branch to check out, or name of the branch to create
            new_branch_from: Start point when a new branch should be created

        Raises:
            WorktreeCreationError: If git refuses to create the worktree
        """
        args = ["add", path]
        if new_branch_from:
            args += ["-b", branch, new_branch_from]
        else:
            args.append(branch)

        try:
            self._get_repo().git.worktree(*args)
            logger.info(f"Created worktree at {path} on {branch}")
        except git.exc.GitCommandError as e:
            raise WorktreeCreationError(path, _describe_git_error(e)) from e

    def remove_worktree(self, path: str, force: bool = True) -> tuple[bool, Optional[str]]:
        """Remove a worktree at the specified path.

        Args:
            path: Path to the worktree directory
            force: Force removal even if working tree is dirty or locked

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        args = ["remove", path]
        if force:
            args.append("--force")

        try:
            self._get_repo().git.worktree(*args)
            logger.info(f"Removed worktree at {path}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git worktree remove failed ({_describe_git_error(e)})"
            logger.warning(f"Failed to remove worktree at {path}: {error_msg}")
            return False, error_msg
        except Exception as e:
            error_msg = f"Unexpected error removing worktree: {e}"
            logger.warning(error_msg)
            return False, error_msg

    def prune_worktrees(self) -> tuple[bool, Optional[str]]:
        """Prune stale worktree metadata.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.worktree("prune")
            logger.debug("Pruned stale worktree metadata")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git worktree prune failed ({_describe_git_error(e)})"
            logger.warning(error_msg)
            return False, error_msg
        except Exception as e:
            error_msg = f"Unexpected error pruning worktrees: {e}"
            logger.warning(error_msg)
            return False, error_msg

    def delete_branch(self, branch: str, force: bool = True) -> tuple[bool, Optional[str]]:
        """Delete a local branch. A branch that is already gone counts as deleted.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.branch("-D" if force else "-d", branch)
            logger.info(f"Deleted branch {branch}")
            return True, None
        except git.exc.GitCommandError as e:
            stderr = str(getattr(e, "stderr", "") or "")
            if "not found" in stderr:
                logger.debug(f"Branch {branch} was already deleted")
                return True, None
            error_msg = f"git branch -D {branch} failed ({_describe_git_error(e)})"
            logger.warning(error_msg)
            return False, error_msg
        except Exception as e:
            error_msg = f"Unexpected error deleting branch {branch}: {e}"
            logger.warning(error_msg)
            return False, error_msg
