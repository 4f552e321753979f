"""Coding assistants that can work on an issue."""

import shutil
from dataclasses import dataclass
from typing import Callable, Dict, List


def _claude_args(prompt_file: str) -> List[str]:
    with open(prompt_file) as f:
        prompt = f.read()
    return ["claude", "--dangerously-skip-permissions", prompt]


def _droid_args(prompt_file: str) -> List[str]:
    return ["droid", "exec", "--skip-permissions-unsafe", "-f", prompt_file]


@dataclass(frozen=True)
class AITool:
    """A command-line coding assistant."""

    key: str
    name: str
    command: str
    install_hint: str
    _build_args: Callable[[str], List[str]]

    def build_args(self, prompt_file: str) -> List[str]:
        """Argument vector that runs the assistant on the prompt stored in prompt_file."""
        return self._build_args(prompt_file)

    def is_installed(self) -> bool:
        return shutil.which(self.command) is not None


TOOLS: Dict[str, AITool] = {
    "claude": AITool(
        key="claude",
        name="Claude Code",
        command="claude",
        install_hint="npm install -g @anthropic-ai/claude-code",
        _build_args=_claude_args,
    ),
    "droid": AITool(
        key="droid",
        name="Factory Droid",
        command="droid",
        install_hint="curl -fsSL https://app.factory.ai/cli | sh",
        _build_args=_droid_args,
    ),
}


def get_ai_tool(key: str) -> AITool:
    """Look up an assistant by its config key.

    Raises:
        ValueError: If key names no known assistant
    """
    try:
        return TOOLS[key]
    except KeyError:
        raise ValueError(f"Unknown AI tool '{key}'. Choose from: {', '.join(TOOLS)}") from None
