"""Worktree lifecycle: create-or-attach for solving, teardown for cleaning.

Every command that creates or removes an issue worktree goes through
WorktreeLifecycle so the steps, and their failure handling, live in one place.
"""

import os
import shutil
import subprocess
import time
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING, Union

from issue_solver.logging_config import get_logger
from issue_solver.models.worktree import TeardownResult, Worktree, WorktreeSession
from issue_solver.naming import branch_name, worktree_path
from issue_solver.services.git.repository import REMOTE_NAME, GitRepository
from issue_solver.services.git.worktrees import WorktreeService
from issue_solver.services.window_closer import WindowCloser, get_window_closer

if TYPE_CHECKING:
    from issue_solver.config import Config

logger = get_logger(__name__)

ENV_SCAN_SKIP_DIRS = {
    "node_modules", ".git", "dist", "build", ".next", ".turbo", ".venv", "venv", "__pycache__",
}
RM_RETRIES = 3
RM_RETRY_DELAY = 0.1


class WorktreeSetup:
    """Prepares a freshly created worktree with files git does not track."""

    def __init__(self, link_dirs: Iterable[str] = ("node_modules", ".venv")):
        self.link_dirs = list(link_dirs)

    @staticmethod
    def find_env_files(root: str) -> List[str]:
        """Relative paths of every ``.env*`` file under root."""
        found = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in ENV_SCAN_SKIP_DIRS)
            for name in sorted(filenames):
                if name.startswith(".env"):
                    found.append(os.path.relpath(os.path.join(dirpath, name), root))
        return found

    def copy_env_files(self, source: str, target: str) -> List[str]:
        """Copy env files into target, never overwriting what is already there."""
        copied = []
        for rel_path in self.find_env_files(source):
            dest = os.path.join(target, rel_path)
            if os.path.exists(dest):
                continue
            try:
                os.makedirs(os.path.dirname(dest), exist_ok=True)
                shutil.copy2(os.path.join(source, rel_path), dest)
                copied.append(rel_path)
            except OSError as e:
                logger.warning(f"Could not copy {rel_path} into {target}: {e}")
        return copied

    def link_dependency_dirs(self, source: str, target: str) -> List[str]:
        """Symlink installed dependency folders so the worktree needs no fresh install."""
        linked = []
        for name in self.link_dirs:
            src = os.path.join(source, name)
            dest = os.path.join(target, name)
            if os.path.exists(src) and not os.path.lexists(dest):
                try:
                    os.symlink(src, dest)
                    linked.append(name)
                except OSError as e:
                    logger.warning(f"Could not link {name} into {target}: {e}")
        return linked

    def run(self, source: str, target: str) -> None:
        copied = self.copy_env_files(source, target)
        linked = self.link_dependency_dirs(source, target)
        logger.info(f"Worktree setup: copied {len(copied)} env files, linked {linked or 'nothing'}")


def force_remove_directory(path: str) -> bool:
    """Delete a directory tree, retrying with ``rm -rf`` while files are still being released.

    Returns:
        True if the directory is gone afterwards.
    """
    if not os.path.lexists(path):
        return True

    try:
        if os.path.islink(path):
            os.unlink(path)
        else:
            shutil.rmtree(path)
    except OSError as e:
        logger.debug(f"shutil.rmtree failed for {path}: {e}")

    for attempt in range(RM_RETRIES):
        if not os.path.lexists(path):
            return True
        try:
            subprocess.run(["/bin/rm", "-rf", path], check=True, capture_output=True, timeout=10)
        except (subprocess.SubprocessError, OSError) as e:
            logger.debug(f"rm -rf attempt {attempt + 1} failed for {path}: {e}")
        time.sleep(RM_RETRY_DELAY)

    return not os.path.lexists(path)


def cwd_inside(paths: Iterable[str], cwd: Optional[str] = None) -> Optional[str]:
    """Return the first path that contains the current working directory."""
    try:
        current = os.path.realpath(cwd or os.getcwd())
    except OSError:
        return None
    for path in paths:
        real = os.path.realpath(path)
        if current == real or current.startswith(real + os.sep):
            return path
    return None


class WorktreeLifecycle:
    """Creates, resumes and tears down issue worktrees."""

    def __init__(
        self,
        repository: GitRepository,
        config: Union["Config", dict],
        worktree_service: Optional[WorktreeService] = None,
        window_closer: Optional[WindowCloser] = None,
        setup: Optional[WorktreeSetup] = None,
    ):
        self.repository = repository
        self.config = config
        self.worktree_service = worktree_service or WorktreeService(repository)
        self.window_closer = window_closer or get_window_closer()
        self.setup = setup or WorktreeSetup(config.get("link_dirs", ["node_modules", ".venv"]))
        self.window_close_delay = config.get("window_close_delay", 0.5)

    def paths_for(self, issue_number: int, title: str) -> tuple[str, str]:
        """Branch name and worktree folder for an issue."""
        return (
            branch_name(issue_number, title),
            worktree_path(
                self.repository.parent_dir, self.repository.project_name, issue_number, title
            ),
        )

    def create_or_attach_worktree(
        self, issue_number: int, title: str, base_branch: Optional[str] = None
    ) -> WorktreeSession:
        """Make sure a worktree exists for the issue and return it.

        An existing folder is resumed untouched. Otherwise the worktree is
        attached to a surviving local branch, or a new branch is cut from the
        remote base branch.

        Raises:
            WorktreeCreationError: If git cannot create the worktree
        """
        branch, path = self.paths_for(issue_number, title)
        base = base_branch or self.repository.default_branch()

        ok, error = self.repository.fetch_branch(base)
        if not ok:
            logger.warning(f"Could not fetch {REMOTE_NAME}/{base}, using local refs: {error}")

        session = WorktreeSession(
            issue_number=issue_number,
            title=title,
            branch=branch,
            path=path,
            base_branch=base,
            created=False,
        )

        if os.path.exists(path):
            logger.info(f"Resuming issue #{issue_number} in existing worktree {path}")
            return session

        if self.repository.branch_exists(branch):
            logger.info(f"Attaching worktree to existing branch {branch}")
            self.worktree_service.add_worktree(path, branch)
        else:
            self.worktree_service.add_worktree(
                path, branch, new_branch_from=f"{REMOTE_NAME}/{base}"
            )

        self.setup.run(self.repository.project_root, path)
        session.created = True
        return session

    def checkout_pull_request(
        self, issue_number: int, title: str, head_ref: str
    ) -> WorktreeSession:
        """Make sure a worktree for an existing PR branch exists, tracking the remote head.

        Raises:
            WorktreeCreationError: If git cannot create the worktree
        """
        path = os.path.join(
            self.repository.parent_dir, f"{self.repository.project_name}-{head_ref}"
        )
        ok, error = self.repository.fetch_branch(head_ref)
        if not ok:
            logger.warning(f"Could not fetch {REMOTE_NAME}/{head_ref}: {error}")

        session = WorktreeSession(
            issue_number=issue_number,
            title=title,
            branch=head_ref,
            path=path,
            base_branch=self.repository.default_branch(),
            created=False,
        )

        if os.path.exists(path):
            self.repository.pull(path)
            logger.info(f"Using existing worktree {path} for {head_ref}")
            return session

        if self.repository.branch_exists(head_ref):
            self.worktree_service.add_worktree(path, head_ref)
        else:
            self.worktree_service.add_worktree(
                path, head_ref, new_branch_from=f"{REMOTE_NAME}/{head_ref}"
            )

        self.setup.run(self.repository.project_root, path)
        session.created = True
        return session

    def tear_down(
        self, worktree: Worktree, pr_number: Optional[int] = None, keep_branch: bool = False
    ) -> TeardownResult:
        """Remove a worktree, its folder and its local branch.

        Each step runs regardless of earlier failures. Anything that could not be
        removed is reported on the result instead of raised.

        Args:
            worktree: Target, possibly an orphaned folder
            pr_number: PR number used to find review windows
            keep_branch: Leave the local branch in place
        """
        result = TeardownResult(worktree=worktree)
        path = worktree.path

        try:
            self.window_closer.close_windows(
                path, worktree.issue_number, str(pr_number) if pr_number else None
            )
            if self.window_close_delay:
                time.sleep(self.window_close_delay)
        except Exception as e:
            logger.debug(f"Closing windows for issue #{worktree.issue_number} failed: {e}")

        if not worktree.is_orphaned and os.path.exists(path):
            ok, error = self.worktree_service.remove_worktree(path, force=True)
            result.worktree_removed = ok
            if error:
                result.errors.append(error)

        if os.path.lexists(path):
            if not force_remove_directory(path):
                result.errors.append(f"could not delete directory {path}")
        result.directory_removed = not os.path.lexists(path)

        ok, error = self.worktree_service.prune_worktrees()
        if error:
            result.errors.append(error)

        if worktree.branch and not keep_branch:
            ok, error = self.worktree_service.delete_branch(worktree.branch, force=True)
            result.branch_deleted = ok
            if error:
                result.errors.append(error)

        if os.path.lexists(path):
            result.residual_path = path
            logger.warning(
                f"Could not fully remove {path} for issue #{worktree.issue_number}. "
                f"Remove it manually: {result.manual_command}"
            )
        return result

    def tear_down_many(
        self,
        worktrees: List[Worktree],
        pr_numbers: Optional[Dict[str, int]] = None,
    ) -> List[TeardownResult]:
        """Tear down several worktrees; one failure never stops the rest.

        Args:
            worktrees: Targets, orphaned folders included
            pr_numbers: Optional PR number per issue number, used to close review windows
        """
        pr_numbers = pr_numbers or {}
        inside = cwd_inside(wt.path for wt in worktrees)
        if inside:
            logger.warning(
                f"The current directory is inside {inside}, which is about to be removed"
            )

        results = []
        for worktree in worktrees:
            try:
                results.append(self.tear_down(worktree, pr_numbers.get(worktree.issue_number)))
            except Exception as e:
                logger.error(f"Teardown of issue #{worktree.issue_number} failed: {e}")
                failed = TeardownResult(worktree=worktree, errors=[str(e)])
                if os.path.lexists(worktree.path):
                    failed.residual_path = worktree.path
                results.append(failed)
        return results
