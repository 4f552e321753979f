"""Tests for closing windows that point at a worktree"""
import os
import subprocess
from unittest.mock import patch

from issue_solver.services.window_closer import (
    CloseResult,
    MacWindowCloser,
    WindowCloser,
    generate_editor_close_script,
    generate_iterm_close_script,
    generate_terminal_close_script,
    get_search_patterns,
    get_window_closer,
    parse_lsof_pids,
    run_applescript,
)


class TestSearchPatterns:
    """Test which strings identify a worktree's windows."""

    def test_issue_patterns(self):
        patterns = get_search_patterns("/src/myproject-issue-42-fix-login", "42")
        assert patterns == [
            "/src/myproject-issue-42-fix-login",
            "myproject-issue-42-fix-login",
            "Issue #42:",
            "issue-42-",
        ]

    def test_review_patterns(self):
        patterns = get_search_patterns("/src/myproject-issue-42-fix-login/", "42", "7")
        assert "myproject-issue-42-fix-login" in patterns
        assert "PR #7:" in patterns
        assert "Review PR #7:" in patterns

    def test_shorter_number_does_not_match_longer(self):
        """Closing #4 leaves the windows of #42 and PR #42 alone."""
        patterns = get_search_patterns("/src/myproject-issue-4-fix-it", "4", "4")
        for title in (
            "Issue #42: Add dark mode",
            "Review PR #42: Add dark mode",
            "/src/myproject-issue-42-add-dark-mode",
        ):
            assert not [p for p in patterns if p in title]

    def test_runner_titles_match(self):
        patterns = get_search_patterns("/src/myproject-issue-4-fix-it", "4", "9")
        assert any(p in "Review PR #9: Fix it" for p in patterns)
        assert any(p in "Issue #4: Fix it" for p in patterns)


class TestScripts:
    """Test generated AppleScript."""

    def test_patterns_are_escaped(self):
        patterns = ['say "hi"']
        for script in (
            generate_iterm_close_script(patterns),
            generate_terminal_close_script(patterns),
            generate_editor_close_script(patterns),
        ):
            assert 'say \\"hi\\"' in script

    def test_iterm_matches_session_paths(self):
        script = generate_iterm_close_script(["/src/wt"])
        assert 'sessionPath contains "/src/wt"' in script
        assert 'tell application "iTerm"' in script

    def test_terminal_conditions_joined(self):
        script = generate_terminal_close_script(["a", "b"])
        assert 'windowName contains "a" or windowName contains "b"' in script

    def test_editor_targets_vscode(self):
        assert 'process "Code"' in generate_editor_close_script(["x"])


class TestLsofParsing:
    """Test picking processes out of lsof output."""

    def test_shells_and_assistants(self):
        output = (
            "COMMAND   PID USER   FD   TYPE DEVICE SIZE/OFF NODE NAME\n"
            "zsh      1234 me    cwd    DIR    1,4      640  100 /src/wt\n"
            "Code     2345 me    cwd    DIR    1,4      640  100 /src/wt\n"
            "claude   3456 me    cwd    DIR    1,4      640  100 /src/wt\n"
            "zsh      1234 me    txt    REG    1,4      640  101 /src/wt/x\n"
            "bogus\n"
        )
        assert parse_lsof_pids(output) == [1234, 3456]

    def test_own_process_excluded(self):
        output = f"COMMAND PID\nbash {os.getpid()}\n"
        assert parse_lsof_pids(output) == []

    def test_empty(self):
        assert parse_lsof_pids("") == []


class TestClosers:
    """Test closer selection and behaviour."""

    def test_platform_selection(self):
        assert isinstance(get_window_closer("darwin"), MacWindowCloser)
        closer = get_window_closer("linux")
        assert type(closer) is WindowCloser

    def test_base_closer_does_nothing(self):
        assert WindowCloser().close_windows("/src/wt", "42") == CloseResult()

    def test_run_applescript_without_osascript(self):
        with patch("issue_solver.services.window_closer.subprocess.run", side_effect=FileNotFoundError):
            assert run_applescript("return 1") is False

    def test_run_applescript_timeout(self):
        timeout = subprocess.TimeoutExpired(["osascript"], 5)
        with patch("issue_solver.services.window_closer.subprocess.run", side_effect=timeout):
            assert run_applescript("return 1") is False

    def test_mac_closer_runs_every_script(self, temp_dir):
        with patch("issue_solver.services.window_closer.run_applescript", return_value=True) as run, \
                patch("issue_solver.services.window_closer.terminate_processes_in", return_value=False) as kill:
            result = MacWindowCloser().close_windows(str(temp_dir), "42", "7")

        assert run.call_count == 3
        kill.assert_called_once_with(str(temp_dir))
        assert result == CloseResult(iterm=True, terminal=True, editor=True, processes=False)

    def test_mac_closer_skips_processes_for_missing_folder(self, temp_dir):
        with patch("issue_solver.services.window_closer.run_applescript", return_value=False), \
                patch("issue_solver.services.window_closer.terminate_processes_in") as kill:
            MacWindowCloser().close_windows(str(temp_dir / "gone"), "42")
        kill.assert_not_called()
