"""Command-line interface for issue-solver"""

import argparse
import os
import shutil
import sys
from typing import List, Optional

from rich.console import Console

from issue_solver import commands
from issue_solver.cli.args import parse_args, parse_issue_number
from issue_solver.config import Config, load_config_file
from issue_solver.core import IssueSolver
from issue_solver.logging_config import get_logger, setup_logging
from issue_solver.services.git import is_git_repo

console = Console()
logger = get_logger(__name__)


def build_config(args: argparse.Namespace) -> Config:
    """Stored settings overlaid with command-line flags."""
    values = load_config_file()
    if getattr(args, "tool", None):
        values["ai_tool"] = args.tool
    if getattr(args, "auto_close", None):
        values["auto_close"] = True
    values["verbose"] = args.verbose
    values["debug"] = args.debug
    return Config.from_dict(values)


def check_requirements(config: Config, path: str) -> List[str]:
    """What is missing to run a command here. Empty when everything is in place."""
    missing = []
    if not is_git_repo(path):
        missing.append("Not in a git repository")
    if not config.github_token:
        missing.append("GitHub token: set GITHUB_TOKEN or GH_TOKEN")
    if shutil.which("git") is None:
        missing.append("git is not installed")
    return missing


def _issue_or_exit(value: Optional[str]) -> Optional[int]:
    number = parse_issue_number(value)
    if number is None:
        console.print(f"[red]Invalid issue number: {value}[/red]")
    return number


def dispatch(solver: IssueSolver, args: argparse.Namespace) -> int:
    """Run the parsed command against a connected solver."""
    command = args.command

    if command in ("solve", "show", "pr", "session") or (
        command in ("clean", "go", "review") and args.issue is not None
    ):
        issue_number = _issue_or_exit(args.issue) if args.issue is not None else None
        if args.issue is not None and issue_number is None:
            return 1
    else:
        issue_number = None

    if command == "solve":
        if issue_number is not None:
            return commands.solve_command(solver, issue_number, args.auto_close, args.tool)
        return commands.select_command(solver, args.limit, args.all, args.auto_close, args.tool)
    if command == "list":
        return commands.list_command(solver, args.limit, args.all, args.verbose)
    if command == "show":
        return commands.show_command(solver, issue_number)
    if command == "new":
        return commands.new_command(
            solver, args.title, args.body, args.label, args.auto_close, args.tool
        )
    if command == "pr":
        return commands.pr_command(solver, issue_number)
    if command == "clean":
        if args.merged:
            return commands.clean_merged_command(solver)
        if args.all or issue_number is None:
            return commands.clean_all_command(solver)
        return commands.clean_command(solver, issue_number)
    if command == "go":
        return commands.go_command(solver, issue_number)
    if command == "review":
        return commands.review_command(solver, issue_number, args.merge, args.tool)
    if command == "merge":
        return commands.merge_command(solver)
    if command == "session":
        return commands.session_command(
            solver, issue_number, args.tool, args.auto_close, args.review_pr, args.merge
        )

    console.print(f"[red]Unknown command: {command}[/red]")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        if parsed_args.command == "config":
            return commands.config_command(parsed_args.action, parsed_args.value, parsed_args.clear)

        config = build_config(parsed_args)
        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            for key, value in config.to_dict().items():
                if key.endswith("token") and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        cwd = os.getcwd()
        missing = check_requirements(config, cwd)
        if missing:
            console.print("[red]Missing requirements:[/red]")
            for item in missing:
                console.print(f"[yellow]  • {item}[/yellow]")
            return 1

        solver = IssueSolver(cwd, config)
        solver.connect()
        try:
            return dispatch(solver, parsed_args)
        finally:
            solver.close()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
