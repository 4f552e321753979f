"""Manage the persisted settings."""

from typing import Optional

from rich.console import Console

from issue_solver.config import (
    AI_TOOLS,
    clear_config_file,
    get_config_path,
    load_config_file,
    save_config_file,
)
from issue_solver.services.github_service import token_login

console = Console()

BOT_TOKEN_HELP = """A bot token lets the AI post formal reviews (approve or request changes)
on your own PRs, which GitHub does not allow from the PR author's account.

1. Create a second GitHub account, e.g. yourname-bot
2. Add it as a collaborator on the repository
3. Signed in as the bot, create a token with the 'repo' scope at
   https://github.com/settings/tokens
"""


def _show() -> int:
    values = load_config_file()
    console.print(f"\n[bold]Configuration[/bold] [dim]({get_config_path()})[/dim]\n")

    bot_token = values.get("bot_token")
    if bot_token:
        login = token_login(bot_token)
        if login:
            console.print(f"  Bot token: [green]configured[/green] ({login})")
        else:
            console.print("  Bot token: [yellow]invalid or expired[/yellow]")
    else:
        console.print("  Bot token: [dim]not configured[/dim]")
    console.print(f"  AI tool:   {values.get('ai_tool', 'claude')}")

    console.print("\n[dim]  issue-solver config bot-token [TOKEN]   Set the review bot token[/dim]")
    console.print("[dim]  issue-solver config ai-tool NAME        Choose the assistant[/dim]")
    console.print("[dim]  issue-solver config --clear             Remove stored settings[/dim]\n")
    return 0


def _set_bot_token(value: Optional[str]) -> int:
    if not value:
        console.print(BOT_TOKEN_HELP)
        value = console.input("Bot token: ", password=True).strip()
        if not value:
            console.print("[dim]Cancelled.[/dim]")
            return 0

    with console.status("Validating token..."):
        login = token_login(value)
    if login is None:
        console.print("[red]GitHub rejected the token. Nothing was saved.[/red]")
        return 1

    save_config_file({"bot_token": value})
    console.print(f"[green]Bot token saved! Authenticated as: {login}[/green]")
    return 0


def config_command(action: Optional[str] = None, value: Optional[str] = None, clear: bool = False) -> int:
    if clear:
        if clear_config_file():
            console.print("[green]Configuration cleared.[/green]")
        else:
            console.print("[dim]No configuration stored.[/dim]")
        return 0

    if action is None:
        return _show()
    if action == "bot-token":
        return _set_bot_token(value)
    if action == "ai-tool":
        if value not in AI_TOOLS:
            console.print(f"[red]AI tool must be one of: {', '.join(AI_TOOLS)}[/red]")
            return 1
        save_config_file({"ai_tool": value})
        console.print(f"[green]AI tool set to {value}[/green]")
        return 0

    console.print(f"[red]Unknown config action '{action}'. Use bot-token or ai-tool.[/red]")
    return 1
