"""Issue and pull request models as returned by GitHub."""

from dataclasses import dataclass, field
from typing import List, Optional

from issue_solver.models.worktree import IssueState


@dataclass(frozen=True)
class Label:
    name: str
    color: str = ""


@dataclass
class Issue:
    """A single GitHub issue with its description."""

    number: int
    title: str
    body: str
    url: str
    state: IssueState = IssueState.OPEN
    labels: List[Label] = field(default_factory=list)


@dataclass
class IssueListItem:
    """Summary row used when listing issues."""

    number: int
    title: str
    labels: List[Label] = field(default_factory=list)


@dataclass
class OpenPullRequest:
    """An open pull request as shown by the merge and review commands."""

    number: int
    title: str
    head_ref_name: str
    issue_number: Optional[int]
    review_decision: Optional[str]  # APPROVED, CHANGES_REQUESTED, REVIEW_REQUIRED or None
    mergeable: str  # MERGEABLE, CONFLICTING or UNKNOWN
    url: str = ""

    @property
    def can_merge(self) -> bool:
        return self.review_decision == "APPROVED" and self.mergeable == "MERGEABLE"

    @property
    def has_conflicts(self) -> bool:
        return self.mergeable == "CONFLICTING"
