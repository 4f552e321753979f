"""Branch and worktree naming conventions.

Everything here is a pure function of its arguments. Branch names and worktree
folders are always re-derived from the issue number and title; no index of
them is ever stored.
"""

import os
import re
from typing import Optional

SLUG_MAX_LENGTH = 30

_BRACKET_PREFIX = re.compile(r"^\[.*?\]\s*")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_ISSUE_BRANCH = re.compile(r"^issue-(\d+)-")


def _dedupe_words(slug: str) -> str:
    words = slug.split("-")
    # Collapse "faq-faq" left behind when a tag is repeated as the first word
    return "-".join(word for i, word in enumerate(words) if i == 0 or word != words[i - 1])


def slugify(title: str) -> str:
    """Turn an issue title into a short, hyphenated token.

    Examples:
        >>> slugify("[Bug] Fix login issue")
        'fix-login-issue'
        >>> slugify("[FAQ] FAQ question")
        'faq-question'
    """
    text = _BRACKET_PREFIX.sub("", title or "", count=1)
    slug = _NON_ALNUM_RUN.sub("-", text.lower()).strip("-")

    # Truncating mid-word can expose a new duplicate or a trailing hyphen,
    # so repeat until the slug is stable.
    while True:
        shortened = _dedupe_words(slug)[:SLUG_MAX_LENGTH].strip("-")
        if shortened == slug:
            return slug
        slug = shortened


def branch_name(issue_number: int, title: str) -> str:
    """Branch used for an issue: ``issue-{number}-{slug}``."""
    return f"issue-{issue_number}-{slugify(title)}"


def folder_prefix(project_name: str) -> str:
    """Prefix shared by every worktree folder of a project."""
    return f"{project_name}-issue-"


def worktree_path(parent_dir: str, project_name: str, issue_number: int, title: str) -> str:
    """Sibling folder of the project root that holds the issue's worktree."""
    return os.path.join(parent_dir, f"{project_name}-{branch_name(issue_number, title)}")


def issue_number_from_branch(branch: str) -> Optional[str]:
    """Extract the issue number from an ``issue-N-...`` branch name."""
    match = _ISSUE_BRANCH.match(branch or "")
    return match.group(1) if match else None


def issue_number_from_folder(project_name: str, folder_name: str) -> Optional[str]:
    """Extract the issue number from a ``{project}-issue-N-...`` folder name."""
    match = re.match(rf"^{re.escape(folder_prefix(project_name))}(\d+)-", folder_name)
    return match.group(1) if match else None
