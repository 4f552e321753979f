"""Prompts handed to the coding assistant."""

from typing import Optional

from issue_solver.models.issue import Issue

MAX_DIFF_CHARS = 50_000

SOLVE_PROMPT_FILE = ".issue-solver-prompt.txt"
REVIEW_PROMPT_FILE = ".issue-solver-review-prompt.txt"
REVIEW_RESULT_FILE = ".issue-solver-review.md"


def build_solve_prompt(issue: Issue) -> str:
    return f"""Please solve this GitHub issue:

## Issue #{issue.number}: {issue.title}

{issue.body}

---

Instructions:
1. Analyze the issue and understand what needs to be done
2. Implement the necessary changes
3. Make sure to run tests if applicable
4. When done, commit your changes with a descriptive message that references the issue
5. Commits are pushed automatically and a PR closing #{issue.number} is opened for you"""


def truncate_diff(diff: str, limit: int = MAX_DIFF_CHARS) -> str:
    if len(diff) <= limit:
        return diff
    return diff[:limit] + f"\n... (diff truncated at {limit} characters)"


def build_review_prompt(issue: Optional[Issue], pr_number: int, pr_title: str, diff: str) -> str:
    """Review instructions for a PR, with its diff inlined.

    The assistant writes its verdict to REVIEW_RESULT_FILE; the session posts it
    to GitHub once the assistant exits.
    """
    if issue is not None:
        header = f"You are reviewing PR #{pr_number} for issue #{issue.number}: {issue.title}"
        description = f"## Issue Description\n{issue.body}\n"
    else:
        header = f"You are reviewing PR #{pr_number}: {pr_title}"
        description = ""

    if diff:
        diff_section = f"```diff\n{truncate_diff(diff)}\n```"
    else:
        diff_section = "The diff could not be fetched. Compare this branch with its base to see the changes."

    return f"""{header}

{description}
## Your Task
Review the code changes in this PR. Look for:
1. Bugs and logic errors
2. Security vulnerabilities
3. Missing error handling
4. Code quality issues
5. Missing tests
6. Performance problems

## How to Leave Feedback
Write your review to `{REVIEW_RESULT_FILE}` in the current directory.
The first line must be exactly one of APPROVE, REQUEST_CHANGES or COMMENT.
Everything after it is posted as the review body. Reference files by path and
put proposed fixes in ```suggestion blocks.

## PR Diff
{diff_section}

Start by examining the diff and the changed files, then write your review."""
