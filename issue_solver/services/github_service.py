"""GitHub API integration service"""

from itertools import islice
from typing import Optional, List, Set, TYPE_CHECKING, Union
from urllib.parse import urlparse

from github import Github, Auth

from issue_solver.exceptions import GitHubAPIError
from issue_solver.logging_config import get_logger
from issue_solver.models.issue import Issue, IssueListItem, Label, OpenPullRequest
from issue_solver.models.worktree import IssueState, IssueStatus, PRState, PRStatus
from issue_solver.naming import issue_number_from_branch

if TYPE_CHECKING:
    from github.PullRequest import PullRequest
    from github.Repository import Repository
    from issue_solver.config import Config

logger = get_logger(__name__)

REVIEW_EVENTS = ("COMMENT", "APPROVE", "REQUEST_CHANGES")


def parse_github_repo(remote_url: str) -> str:
    """Turn an SSH or HTTPS remote URL into ``owner/repo``."""
    if remote_url.startswith("git@"):
        # Handle SSH URL format (git@github.com:org/repo.git)
        path = remote_url.split(":", 1)[1]
    else:
        # Handle HTTPS URL format (https://github.com/org/repo.git)
        path = urlparse(remote_url).path
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path


def pr_state(pr) -> PRState:
    """Map a PyGithub pull request onto open/closed/merged."""
    if pr.merged:
        return PRState.MERGED
    return PRState.OPEN if pr.state == "open" else PRState.CLOSED


def review_decision(pr) -> Optional[str]:
    """Summarize reviews the way GitHub's reviewDecision field does.

    Each reviewer's latest approving or blocking review counts.
    """
    latest = {}
    for review in pr.get_reviews():
        if review.state in ("APPROVED", "CHANGES_REQUESTED", "DISMISSED"):
            latest[review.user.login if review.user else None] = review.state

    states = set(latest.values())
    if "CHANGES_REQUESTED" in states:
        return "CHANGES_REQUESTED"
    if "APPROVED" in states:
        return "APPROVED"
    requested_users, requested_teams = pr.get_review_requests()
    if requested_users.totalCount or requested_teams.totalCount:
        return "REVIEW_REQUIRED"
    return None


def token_login(token: str) -> Optional[str]:
    """Login of the account behind a token, or None if GitHub rejects it."""
    github = Github(auth=Auth.Token(token))
    try:
        return github.get_user().login
    except Exception as e:
        logger.debug(f"[GitHub] Token check failed: {e}")
        return None
    finally:
        github.close()


def mergeable_state(pr) -> str:
    """Map PyGithub's tri-state mergeable flag onto GitHub's GraphQL names."""
    if pr.mergeable is True:
        return "MERGEABLE"
    if pr.mergeable is False:
        return "CONFLICTING"
    return "UNKNOWN"


class GitHubService:
    """Issues, pull requests and reviews for the current repository.

    Read methods never raise: any failure is logged and reported as None or an
    empty collection so listings keep working offline. Mutating methods raise
    GitHubAPIError naming the issue or PR they acted on.
    """

    def __init__(self, repo_path: str, config: Union["Config", dict]):
        """Initialize the service.

        Note: GitHub token is validated before commands use this service.
        """
        self.repo_path = repo_path
        self.config = config
        self.debug_mode = config.get("debug", False)
        self.github_token = config.get("github_token")
        self.bot_token = config.get("bot_token")
        self.github_repo: Optional[str] = None
        self.github: Optional[Github] = None
        self.gh_repo: Optional["Repository"] = None

    def setup_github_api(self, remote_url: str) -> None:
        """Setup GitHub API access for the repository behind remote_url."""
        try:
            self.github_repo = parse_github_repo(remote_url)

            assert self.github_token is not None, "GitHub token must be set"
            self.github = Github(auth=Auth.Token(self.github_token))
            self.gh_repo = self.github.get_repo(self.github_repo)

            logger.debug(f"[GitHub] GitHub integration enabled for: {self.github_repo}")
        except Exception as e:
            logger.error(f"[GitHub] Failed to setup GitHub API: {e}")
            raise GitHubAPIError("setup", str(e)) from e

    def _head(self, branch: str) -> str:
        assert self.github_repo is not None
        return f"{self.github_repo.split('/')[0]}:{branch}"

    # Read paths

    def get_repo_name(self) -> str:
        return self.github_repo or ""

    def get_issue(self, issue_number: int) -> Optional[Issue]:
        """Fetch a single issue with its description."""
        try:
            assert self.gh_repo is not None
            issue = self.gh_repo.get_issue(issue_number)
            return Issue(
                number=issue_number,
                title=issue.title,
                body=issue.body or "",
                url=issue.html_url,
                state=IssueState(issue.state),
                labels=[Label(label.name, label.color) for label in issue.labels],
            )
        except Exception as e:
            logger.debug(f"[GitHub] Could not fetch issue #{issue_number}: {e}")
            return None

    def get_issue_state(self, issue_number: int) -> Optional[IssueStatus]:
        """Open/closed state of an issue."""
        try:
            assert self.gh_repo is not None
            return IssueStatus(IssueState(self.gh_repo.get_issue(int(issue_number)).state))
        except Exception as e:
            logger.debug(f"[GitHub] Could not fetch state of issue #{issue_number}: {e}")
            return None

    def list_issues(self, limit: int = 50) -> List[IssueListItem]:
        """Open issues, newest first. A limit of 0 lists every issue."""
        try:
            assert self.gh_repo is not None
            issues = (i for i in self.gh_repo.get_issues(state="open") if i.pull_request is None)
            if limit:
                issues = islice(issues, limit)
            return [
                IssueListItem(
                    number=i.number,
                    title=i.title,
                    labels=[Label(label.name, label.color) for label in i.labels],
                )
                for i in issues
            ]
        except Exception as e:
            logger.debug(f"[GitHub] Could not list issues: {e}")
            return []

    def get_issues_with_open_prs(self) -> Set[int]:
        """Issue numbers that already have an open PR from an issue branch."""
        try:
            assert self.gh_repo is not None
            numbers = set()
            for pr in self.gh_repo.get_pulls(state="open"):
                issue_number = issue_number_from_branch(pr.head.ref)
                if issue_number:
                    numbers.add(int(issue_number))
            return numbers
        except Exception as e:
            logger.debug(f"[GitHub] Could not list open PRs: {e}")
            return set()

    def find_pr_for_branch(self, branch: str) -> Optional[PRStatus]:
        """Most recent PR from branch, in any state."""
        try:
            assert self.gh_repo is not None
            pulls = self.gh_repo.get_pulls(
                state="all", head=self._head(branch), sort="created", direction="desc"
            )
            pr = next(iter(pulls), None)
            if pr is None:
                return None
            status = PRStatus(number=pr.number, state=pr_state(pr), url=pr.html_url)
            if self.debug_mode:
                logger.debug(f"[GitHub] Branch {branch} has PR #{pr.number} ({status.state.value})")
            return status
        except Exception as e:
            logger.debug(f"[GitHub] Error fetching PR for branch {branch}: {e}")
            return None

    def list_open_prs(self, limit: int = 50) -> List[OpenPullRequest]:
        """Open PRs with review decision and mergeability."""
        try:
            assert self.gh_repo is not None
            result = []
            for pr in islice(self.gh_repo.get_pulls(state="open"), limit):
                issue_number = issue_number_from_branch(pr.head.ref)
                result.append(
                    OpenPullRequest(
                        number=pr.number,
                        title=pr.title,
                        head_ref_name=pr.head.ref,
                        issue_number=int(issue_number) if issue_number else None,
                        review_decision=review_decision(pr),
                        mergeable=mergeable_state(pr),
                        url=pr.html_url,
                    )
                )
            return result
        except Exception as e:
            logger.debug(f"[GitHub] Could not list open PRs: {e}")
            return []

    def get_pr_diff(self, pr_number: int) -> str:
        """Unified diff of a PR assembled from per-file patches."""
        try:
            assert self.gh_repo is not None
            parts = []
            for f in self.gh_repo.get_pull(pr_number).get_files():
                if f.patch:
                    parts.append(f"--- a/{f.filename}\n+++ b/{f.filename}\n{f.patch}")
            return "\n".join(parts)
        except Exception as e:
            logger.debug(f"[GitHub] Could not fetch diff for PR #{pr_number}: {e}")
            return ""

    # Mutating paths

    def create_issue(self, title: str, body: str = "", labels: Optional[List[str]] = None) -> int:
        """Create an issue and return its number."""
        try:
            assert self.gh_repo is not None
            issue = self.gh_repo.create_issue(title=title, body=body or "", labels=labels or [])
            logger.info(f"[GitHub] Created issue #{issue.number}")
            return issue.number
        except Exception as e:
            raise GitHubAPIError("create issue", f"'{title}': {e}") from e

    def create_pull_request(self, title: str, body: str, head: str, base: str) -> PRStatus:
        """Open a PR from head into base."""
        try:
            assert self.gh_repo is not None
            pr = self.gh_repo.create_pull(title=title, body=body, head=head, base=base)
            logger.info(f"[GitHub] Created PR #{pr.number} for {head}")
            return PRStatus(number=pr.number, state=PRState.OPEN, url=pr.html_url)
        except Exception as e:
            raise GitHubAPIError("create pull request", f"branch {head}: {e}") from e

    def merge_pull_request(self, pr_number: int, delete_branch: bool = True) -> None:
        """Squash-merge a PR and delete its head branch."""
        try:
            assert self.gh_repo is not None
            pr = self.gh_repo.get_pull(pr_number)
            status = pr.merge(merge_method="squash")
            if not status.merged:
                raise GitHubAPIError("merge", f"PR #{pr_number}: {status.message}")
        except GitHubAPIError:
            raise
        except Exception as e:
            raise GitHubAPIError("merge", f"PR #{pr_number}: {e}") from e

        if delete_branch:
            try:
                self.gh_repo.get_git_ref(f"heads/{pr.head.ref}").delete()
            except Exception as e:
                # Repositories with auto-delete enabled have already removed it
                logger.debug(f"[GitHub] Could not delete branch {pr.head.ref}: {e}")

    def post_review(self, pr_number: int, body: str, event: str = "COMMENT") -> None:
        """Post a review on a PR, authenticated as the bot account when one is configured."""
        if event not in REVIEW_EVENTS:
            raise ValueError(f"event must be one of {REVIEW_EVENTS}, got '{event}'")
        bot = Github(auth=Auth.Token(self.bot_token)) if self.bot_token else None
        try:
            repo = bot.get_repo(self.github_repo) if bot else self.gh_repo
            assert repo is not None
            pr: "PullRequest" = repo.get_pull(pr_number)
            pr.create_review(body=body, event=event)
            logger.info(f"[GitHub] Posted {event} review on PR #{pr_number}")
        except Exception as e:
            raise GitHubAPIError("review", f"PR #{pr_number}: {e}") from e
        finally:
            if bot is not None:
                bot.close()

    def close(self) -> None:
        """Close the GitHub API connection to clean up resources."""
        if self.github:
            try:
                self.github.close()
                logger.debug("[GitHub] Closed GitHub API connection")
            except Exception as e:
                logger.debug(f"[GitHub] Error closing GitHub API connection: {e}")
