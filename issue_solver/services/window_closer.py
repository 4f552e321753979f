"""Closing terminal and editor windows that still point at a worktree.

Window automation only exists on macOS (AppleScript). Other platforms get a
closer that does nothing, so teardown code never checks the platform itself.
"""

import os
import signal
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Optional

from issue_solver.logging_config import get_logger

logger = get_logger(__name__)

APPLESCRIPT_TIMEOUT = 5
EDITOR_SCRIPT_TIMEOUT = 10
SHELL_PROCESS_NAMES = ("bash", "zsh", "sh", "fish", "claude", "droid", "node")


@dataclass
class CloseResult:
    """Which applications reported closing something."""

    iterm: bool = False
    terminal: bool = False
    editor: bool = False
    processes: bool = False


def get_search_patterns(
    folder_path: str, issue_number: str, pr_number: Optional[str] = None
) -> List[str]:
    """Strings that identify windows belonging to a worktree."""
    patterns = []
    if folder_path:
        patterns.append(folder_path)
        folder_name = os.path.basename(folder_path.rstrip("/"))
        if folder_name:
            patterns.append(folder_name)
    # Titles end the number with a colon, so #4 never matches #42
    patterns.append(f"Issue #{issue_number}:")
    patterns.append(f"issue-{issue_number}-")
    if pr_number:
        patterns.append(f"PR #{pr_number}:")
        patterns.append(f"Review PR #{pr_number}:")
    return patterns


def _escape(pattern: str) -> str:
    return pattern.replace("\\", "\\\\").replace('"', '\\"')


def generate_iterm_close_script(patterns: List[str]) -> str:
    """AppleScript closing iTerm2 windows and sessions whose name or cwd matches.

    Matches are collected first and closed afterwards so closing does not
    disturb the iteration.
    """
    escaped = [_escape(p) for p in patterns]
    window_checks = "\n      ".join(
        f'if windowName contains "{p}" then set end of windowsToClose to windowId' for p in escaped
    )
    session_checks = "\n          ".join(
        f'if sessionName contains "{p}" or sessionPath contains "{p}" then '
        f"set end of sessionsToClose to {{windowId, sessionId}}"
        for p in escaped
    )
    return f"""
tell application "iTerm"
  set windowsToClose to {{}}
  set sessionsToClose to {{}}
  repeat with w in windows
    set windowId to id of w
    try
      set windowName to name of w
      {window_checks}
    end try
    repeat with t in tabs of w
      repeat with s in sessions of t
        try
          set sessionName to name of s
          set sessionPath to ""
          try
            set sessionPath to path of s
          end try
          set sessionId to unique id of s
          {session_checks}
        end try
      end repeat
    end repeat
  end repeat
  repeat with sessionInfo in sessionsToClose
    try
      if windowsToClose does not contain (item 1 of sessionInfo) then
        repeat with w in windows
          if id of w is (item 1 of sessionInfo) then
            repeat with t in tabs of w
              repeat with s in sessions of t
                if unique id of s is (item 2 of sessionInfo) then close s
              end repeat
            end repeat
          end if
        end repeat
      end if
    end try
  end repeat
  repeat with targetWindowId in windowsToClose
    try
      repeat with w in windows
        if id of w is targetWindowId then
          close w
          exit repeat
        end if
      end repeat
    end try
  end repeat
end tell
"""


def generate_terminal_close_script(patterns: List[str]) -> str:
    """AppleScript closing Terminal.app windows whose title matches."""
    conditions = " or ".join(f'windowName contains "{_escape(p)}"' for p in patterns)
    return f"""
tell application "Terminal"
  set windowsToClose to {{}}
  repeat with w in windows
    try
      set windowName to name of w
      if {conditions} then set end of windowsToClose to id of w
    end try
  end repeat
  repeat with targetId in windowsToClose
    try
      repeat with w in windows
        if id of w is targetId then
          close w
          exit repeat
        end if
      end repeat
    end try
  end repeat
end tell
"""


def generate_editor_close_script(patterns: List[str]) -> str:
    """AppleScript pressing the close button of matching VS Code windows."""
    conditions = " or ".join(f'windowName contains "{_escape(p)}"' for p in patterns)
    return f"""
tell application "System Events"
  if exists process "Code" then
    tell process "Code"
      set windowsToClose to {{}}
      repeat with w in windows
        try
          set windowName to name of w
          if {conditions} then set end of windowsToClose to w
        end try
      end repeat
      repeat with targetWindow in windowsToClose
        try
          perform action "AXPress" of (first button of targetWindow whose subrole is "AXCloseButton")
          delay 0.2
        end try
      end repeat
    end tell
  end if
end tell
"""


def run_applescript(script: str, timeout: int = APPLESCRIPT_TIMEOUT) -> bool:
    """Run an AppleScript. Any failure, including a timeout, counts as nothing closed."""
    try:
        subprocess.run(
            ["osascript", "-e", script],
            check=True,
            capture_output=True,
            timeout=timeout,
        )
        return True
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug(f"osascript failed: {e}")
        return False


def parse_lsof_pids(output: str) -> List[int]:
    """PIDs of shell-like processes in ``lsof`` output."""
    pids = []
    for line in output.splitlines()[1:]:  # Skip header
        parts = line.split()
        if len(parts) < 2 or not parts[1].isdigit():
            continue
        command = parts[0].lower()
        if any(name in command for name in SHELL_PROCESS_NAMES):
            pid = int(parts[1])
            if pid not in pids and pid != os.getpid():
                pids.append(pid)
    return pids


def terminate_processes_in(dir_path: str) -> bool:
    """SIGTERM shells and assistants that still hold files open under dir_path."""
    try:
        result = subprocess.run(
            ["lsof", "+D", dir_path],
            capture_output=True,
            text=True,
            timeout=APPLESCRIPT_TIMEOUT,
        )
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug(f"lsof failed for {dir_path}: {e}")
        return False

    pids = parse_lsof_pids(result.stdout)
    for pid in pids:
        try:
            os.kill(pid, signal.SIGTERM)
        except OSError:
            # Process may have already exited
            pass
    return bool(pids)


class WindowCloser:
    """Closes windows associated with a worktree. The base class does nothing."""

    def close_windows(
        self, folder_path: str, issue_number: str, pr_number: Optional[str] = None
    ) -> CloseResult:
        return CloseResult()


class MacWindowCloser(WindowCloser):
    """iTerm2, Terminal.app and VS Code via AppleScript, then lingering processes."""

    def close_windows(
        self, folder_path: str, issue_number: str, pr_number: Optional[str] = None
    ) -> CloseResult:
        patterns = get_search_patterns(folder_path, issue_number, pr_number)
        result = CloseResult(
            iterm=run_applescript(generate_iterm_close_script(patterns)),
            terminal=run_applescript(generate_terminal_close_script(patterns)),
            editor=run_applescript(generate_editor_close_script(patterns), EDITOR_SCRIPT_TIMEOUT),
        )
        if os.path.isdir(folder_path):
            result.processes = terminate_processes_in(folder_path)
        logger.debug(f"Closed windows for issue #{issue_number}: {result}")
        return result


def get_window_closer(platform: Optional[str] = None) -> WindowCloser:
    """Window closer for the running platform."""
    if (platform or sys.platform) == "darwin":
        return MacWindowCloser()
    return WindowCloser()
