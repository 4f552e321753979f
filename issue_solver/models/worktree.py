"""Worktree and status data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class PRState(Enum):
    """State of a pull request on GitHub."""
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class IssueState(Enum):
    """State of an issue on GitHub."""
    OPEN = "open"
    CLOSED = "closed"


class StatusLabel(Enum):
    """Display classification of an issue worktree, highest priority first."""
    ORPHANED = "orphaned folder"
    PR_MERGED = "PR merged"
    PR_OPEN = "PR open"
    PR_CLOSED = "PR closed"
    ISSUE_CLOSED = "issue closed"
    ISSUE_OPEN = "issue open"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Worktree:
    """An issue worktree observed on disk or in git's worktree registry.

    An empty branch on an unregistered folder marks an orphan: a directory
    following the naming convention that git no longer knows about. A
    registered worktree on a detached HEAD (mid-rebase, ``checkout --detach``)
    also has an empty branch but is still live.
    """

    path: str
    branch: str
    issue_number: str
    detached: bool = False

    @property
    def is_orphaned(self) -> bool:
        return not self.branch and not self.detached

    def __str__(self) -> str:
        if self.detached:
            branch = "(detached HEAD)"
        else:
            branch = self.branch or "(orphaned folder)"
        return f"#{self.issue_number} {branch} @ {self.path}"


@dataclass(frozen=True)
class PRStatus:
    """Pull request associated with a branch."""

    number: int
    state: PRState
    url: str


@dataclass(frozen=True)
class IssueStatus:
    """Open/closed state of an issue."""

    state: IssueState


@dataclass
class WorktreeWithStatus:
    """A worktree joined with what GitHub currently says about it."""

    worktree: Worktree
    issue_status: Optional[IssueStatus] = None
    pr_status: Optional[PRStatus] = None

    @property
    def pr_state(self) -> Optional[PRState]:
        return self.pr_status.state if self.pr_status else None


@dataclass
class TeardownResult:
    """Outcome of tearing down a single worktree."""

    worktree: Worktree
    worktree_removed: bool = False
    directory_removed: bool = False
    branch_deleted: bool = False
    residual_path: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def fully_cleaned(self) -> bool:
        return self.residual_path is None and (self.worktree.is_orphaned or self.branch_deleted)

    @property
    def manual_command(self) -> Optional[str]:
        if self.residual_path is None:
            return None
        return f'rm -rf "{self.residual_path}"'


@dataclass
class WorktreeSession:
    """A worktree ready for work on an issue."""

    issue_number: int
    title: str
    branch: str
    path: str
    base_branch: str
    created: bool  # False when an existing worktree was resumed
