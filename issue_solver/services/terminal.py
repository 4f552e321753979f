"""Launching sessions in a new terminal window."""

import os
import shlex
import shutil
import subprocess
import sys
from typing import List, Optional

from rich.console import Console

from issue_solver.logging_config import get_logger

console = Console()
logger = get_logger(__name__)

RUNNER_FILE = ".issue-solver-runner.sh"
ITERM_APP = "/Applications/iTerm.app"
LINUX_TERMINALS = ("gnome-terminal", "konsole", "xterm")
WINDOW_TITLE_MAX = 50


def session_command(issue_number: int, *extra: str) -> List[str]:
    """Command line that runs the hidden ``session`` command for an issue."""
    executable = shutil.which("issue-solver")
    base = [executable] if executable else [sys.executable, "-m", "issue_solver"]
    return base + ["session", str(issue_number), *extra]


def build_runner_script(
    worktree_path: str,
    window_title: str,
    command: List[str],
    keep_open: bool = True,
    return_dir: Optional[str] = None,
) -> str:
    """Bash script that enters the worktree, titles the window and runs command."""
    title = window_title[:WINDOW_TITLE_MAX]
    lines = [
        "#!/bin/bash",
        f"cd {shlex.quote(worktree_path)}",
        f"printf '\\033]0;%s\\007' {shlex.quote(title)}",
        shlex.join(command),
        "status=$?",
    ]
    if keep_open:
        lines += [
            'echo ""',
            'echo "Session ended. Terminal staying open."',
            "exec bash --norc --noprofile",
        ]
    else:
        if return_dir:
            lines.append(f"cd {shlex.quote(return_dir)}")
        lines += [
            'echo ""',
            'echo "Terminal will close in 3 seconds..."',
            "sleep 3",
            'if [[ "$OSTYPE" == "darwin"* ]]; then',
            '  if [[ "$TERM_PROGRAM" == "iTerm.app" ]]; then',
            "    osascript -e 'tell application \"iTerm\" to close (current window)' &",
            "  else",
            "    osascript -e 'tell application \"Terminal\" to close (first window whose "
            "selected tab contains (frontmost tab))' &",
            "  fi",
            "fi",
            "exit $status",
        ]
    return "\n".join(lines) + "\n"


def write_runner_script(worktree_path: str, content: str, name: str = RUNNER_FILE) -> str:
    """Write an executable runner script into the worktree and return its path."""
    path = os.path.join(worktree_path, name)
    with open(path, "w") as f:
        f.write(content)
    os.chmod(path, 0o755)
    return path


def _osascript(script: str) -> bool:
    try:
        subprocess.run(["osascript", "-e", script], check=True, capture_output=True, timeout=10)
        return True
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug(f"osascript failed: {e}")
        return False


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _open_macos(script_path: str) -> bool:
    command = _escape(f"/bin/bash {shlex.quote(script_path)}")
    iterm_script = f"""
tell application "iTerm"
  activate
  set newWindow to (create window with default profile)
  tell current session of newWindow
    write text "{command}"
  end tell
end tell
"""
    terminal_script = f"""
tell application "Terminal"
  activate
  do script "{command}"
end tell
"""
    if os.path.exists(ITERM_APP) and _osascript(iterm_script):
        return True
    return _osascript(terminal_script)


def _open_linux(script_path: str) -> bool:
    for terminal in LINUX_TERMINALS:
        if shutil.which(terminal) is None:
            continue
        if terminal == "gnome-terminal":
            args = [terminal, "--", "bash", script_path]
        else:
            args = [terminal, "-e", "bash", script_path]
        try:
            subprocess.Popen(
                args,
                start_new_session=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            logger.debug(f"Opened {terminal} for {script_path}")
            return True
        except OSError as e:
            logger.debug(f"Could not start {terminal}: {e}")
    return False


def open_in_new_terminal(script_path: str, platform: Optional[str] = None) -> bool:
    """Run script_path in a new terminal window.

    Prints the command to run by hand when no terminal could be opened.
    """
    platform = platform or sys.platform
    if platform == "darwin":
        opened = _open_macos(script_path)
    elif platform.startswith("linux"):
        opened = _open_linux(script_path)
    else:
        opened = False

    if not opened:
        console.print("[yellow]Could not open a new terminal. Run manually:[/yellow]")
        console.print(f"  bash {shlex.quote(script_path)}")
    return opened
