"""Custom exceptions for issue-solver"""

from typing import Optional


class IssueSolverError(Exception):
    """Base exception for all issue-solver errors."""
    pass


class GitOperationError(IssueSolverError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, target: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.target = target
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if target:
            error_msg += f" for '{target}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class GitHubAPIError(IssueSolverError):
    """Exception raised for errors in GitHub API operations."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"GitHub API operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class IssueNotFoundError(IssueSolverError):
    """Exception raised when an issue cannot be fetched from GitHub."""

    def __init__(self, issue_number: int):
        self.issue_number = issue_number
        super().__init__(f"Could not find issue #{issue_number}")


class WorktreeNotFoundError(IssueSolverError):
    """Exception raised when no worktree exists for an issue."""

    def __init__(self, issue_number: int, path: Optional[str] = None):
        self.issue_number = issue_number
        self.path = path
        error_msg = f"No worktree found for issue #{issue_number}"
        if path:
            error_msg += f" at {path}"
        super().__init__(error_msg)


class WorktreeCreationError(GitOperationError):
    """Exception raised when a worktree cannot be created."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__("worktree add", path, message)
