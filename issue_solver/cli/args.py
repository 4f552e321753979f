"""Command-line argument parsing for issue-solver."""

import argparse
import sys
from typing import List, Optional

from issue_solver.__version__ import __version__
from issue_solver.config import AI_TOOLS

DEFAULT_COMMAND = "solve"

COMMANDS = {
    "solve", "list", "ls", "show", "new", "pr", "clean", "rm", "go", "review", "merge",
    "config", "session",
}


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    common.add_argument(
        "--debug", action="store_true", help="Show debug information and write a log file"
    )
    return common


def _solve_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--auto-close",
        action="store_true",
        default=None,
        help="Remove the worktree and close the terminal when the session ends",
    )
    parser.add_argument("--tool", choices=AI_TOOLS, help="AI tool to run (default: claude)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="issue-solver",
        description="Solve GitHub issues with an AI coding assistant in isolated git worktrees",
        epilog="Setup: requires a GITHUB_TOKEN or GH_TOKEN environment variable. "
        "Get a token at https://github.com/settings/tokens (scope: repo)",
    )
    parser.add_argument("--version", action="version", version=f"issue-solver {__version__}")
    common = _common_options()
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    solve = subparsers.add_parser(
        "solve", parents=[common], help="Solve an issue, or pick several (default command)"
    )
    solve.add_argument("issue", nargs="?", help="Issue number to solve")
    solve.add_argument("-n", "--limit", type=int, help="Maximum number of issues to list")
    solve.add_argument("--all", action="store_true", help="List all issues (no limit)")
    _solve_options(solve)

    list_parser = subparsers.add_parser(
        "list", aliases=["ls"], parents=[common], help="List open issues"
    )
    list_parser.add_argument("-n", "--limit", type=int, help="Maximum number of issues to show")
    list_parser.add_argument("--all", action="store_true", help="Show all issues (no limit)")

    show = subparsers.add_parser("show", parents=[common], help="Show full details of an issue")
    show.add_argument("issue", help="Issue number")

    new = subparsers.add_parser(
        "new", parents=[common], help="Create a new issue and immediately start solving it"
    )
    new.add_argument("title", help="Issue title")
    new.add_argument("-b", "--body", default="", help="Issue description")
    new.add_argument("-l", "--label", nargs="+", default=[], help="Labels to add")
    _solve_options(new)

    pr = subparsers.add_parser("pr", parents=[common], help="Create a PR for a solved issue")
    pr.add_argument("issue", help="Issue number")

    clean = subparsers.add_parser(
        "clean",
        aliases=["rm"],
        parents=[common],
        help="Remove the worktree and branch of an issue (or all, or merged)",
    )
    clean.add_argument("issue", nargs="?", help="Issue number to clean")
    clean.add_argument("-a", "--all", action="store_true", help="Pick from all issue worktrees")
    clean.add_argument(
        "-m",
        "--merged",
        action="store_true",
        help="Clean worktrees with merged PRs and orphaned folders (no confirmation)",
    )

    go = subparsers.add_parser(
        "go", parents=[common], help="Open an issue worktree in an editor, or view its PR"
    )
    go.add_argument("issue", nargs="?", help="Issue number")

    review = subparsers.add_parser(
        "review", parents=[common], help="Review a PR with the AI tool and post its review"
    )
    review.add_argument("issue", nargs="?", help="Issue number whose PR to review")
    review.add_argument(
        "-m", "--merge", action="store_true", help="Merge the PR if the review approves it"
    )
    review.add_argument("--tool", choices=AI_TOOLS, help="AI tool to run")

    subparsers.add_parser(
        "merge", parents=[common], help="Merge approved PRs and clean up worktrees"
    )

    config = subparsers.add_parser(
        "config", parents=[common], help="Manage settings (bot-token, ai-tool, --clear)"
    )
    config.add_argument("action", nargs="?", choices=["bot-token", "ai-tool"])
    config.add_argument("value", nargs="?")
    config.add_argument("--clear", action="store_true", help="Remove stored settings")

    # Runs inside the terminal opened by solve and review
    session = subparsers.add_parser("session", parents=[common])
    session.add_argument("issue")
    session.add_argument("--review", dest="review_pr", type=int)
    session.add_argument("--merge", action="store_true")
    session.add_argument("-c", "--auto-close", action="store_true")
    session.add_argument("--tool", choices=AI_TOOLS)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Anything that does not start with a command name is treated as
    ``solve``, so ``issue-solver 42`` and ``issue-solver -c`` work.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help", "--version")):
        argv.insert(0, DEFAULT_COMMAND)
    args = build_parser().parse_args(argv)
    if args.command == "ls":
        args.command = "list"
    elif args.command == "rm":
        args.command = "clean"
    return args


def parse_issue_number(value: Optional[str]) -> Optional[int]:
    """Positive issue number from the command line, or None if value is not one."""
    if value is None:
        return None
    value = value.lstrip("#")
    if not value.isdigit() or int(value) <= 0:
        return None
    return int(value)
