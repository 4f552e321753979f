"""Tests for launching sessions in a new terminal"""
import os
import stat
import sys
from unittest.mock import Mock

from issue_solver.services.terminal import (
    RUNNER_FILE,
    build_runner_script,
    open_in_new_terminal,
    session_command,
    write_runner_script,
)


class TestSessionCommand:
    """Test the command line run inside the new terminal."""

    def test_uses_installed_entry_point(self, monkeypatch):
        monkeypatch.setattr("issue_solver.services.terminal.shutil.which", lambda name: "/usr/local/bin/issue-solver")
        assert session_command(42, "--tool", "claude") == [
            "/usr/local/bin/issue-solver", "session", "42", "--tool", "claude"
        ]

    def test_falls_back_to_module(self, monkeypatch):
        monkeypatch.setattr("issue_solver.services.terminal.shutil.which", lambda name: None)
        assert session_command(42) == [sys.executable, "-m", "issue_solver", "session", "42"]


class TestRunnerScript:
    """Test the bash script that starts the session."""

    def test_keep_open(self):
        script = build_runner_script("/src/my project", "Issue #42: Fix login", ["issue-solver", "session", "42"])
        lines = script.splitlines()
        assert lines[0] == "#!/bin/bash"
        assert "cd '/src/my project'" in lines
        assert "issue-solver session 42" in lines
        assert lines[-1] == "exec bash --norc --noprofile"
        assert "sleep 3" not in script

    def test_auto_close(self):
        script = build_runner_script(
            "/src/wt", "Issue #42", ["issue-solver", "session", "42"], keep_open=False, return_dir="/src/myproject"
        )
        assert "cd /src/myproject" in script
        assert "sleep 3" in script
        assert "osascript" in script
        assert script.rstrip().endswith("exit $status")

    def test_window_title_is_truncated(self):
        script = build_runner_script("/src/wt", "x" * 80, ["true"])
        assert "x" * 50 in script
        assert "x" * 51 not in script

    def test_arguments_are_quoted(self):
        script = build_runner_script("/src/wt", "t", ["issue-solver", "session", "42", "--tool", "it's"])
        assert "'it'\"'\"'s'" in script

    def test_write_runner_script(self, temp_dir):
        path = write_runner_script(str(temp_dir), "#!/bin/bash\necho hi\n")
        assert path == os.path.join(str(temp_dir), RUNNER_FILE)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o755
        with open(path) as f:
            assert f.read() == "#!/bin/bash\necho hi\n"


class TestOpenInNewTerminal:
    """Test platform selection for the new window."""

    def test_unsupported_platform(self):
        assert open_in_new_terminal("/src/wt/run.sh", platform="win32") is False

    def test_linux_without_terminal(self, monkeypatch):
        monkeypatch.setattr("issue_solver.services.terminal.shutil.which", lambda name: None)
        assert open_in_new_terminal("/src/wt/run.sh", platform="linux") is False

    def test_linux_gnome_terminal(self, monkeypatch):
        popen = Mock()
        monkeypatch.setattr(
            "issue_solver.services.terminal.shutil.which",
            lambda name: "/usr/bin/gnome-terminal" if name == "gnome-terminal" else None,
        )
        monkeypatch.setattr("issue_solver.services.terminal.subprocess.Popen", popen)

        assert open_in_new_terminal("/src/wt/run.sh", platform="linux") is True
        assert popen.call_args.args[0] == ["gnome-terminal", "--", "bash", "/src/wt/run.sh"]
        assert popen.call_args.kwargs["start_new_session"] is True

    def test_linux_xterm(self, monkeypatch):
        popen = Mock()
        monkeypatch.setattr(
            "issue_solver.services.terminal.shutil.which",
            lambda name: "/usr/bin/xterm" if name == "xterm" else None,
        )
        monkeypatch.setattr("issue_solver.services.terminal.subprocess.Popen", popen)

        assert open_in_new_terminal("/src/wt/run.sh", platform="linux") is True
        assert popen.call_args.args[0] == ["xterm", "-e", "bash", "/src/wt/run.sh"]

    def test_macos_falls_back_to_terminal_app(self, monkeypatch):
        scripts = []
        monkeypatch.setattr("issue_solver.services.terminal.ITERM_APP", "/nonexistent/iTerm.app")
        monkeypatch.setattr(
            "issue_solver.services.terminal._osascript", lambda script: scripts.append(script) or True
        )

        assert open_in_new_terminal("/src/wt/run.sh", platform="darwin") is True
        assert len(scripts) == 1
        assert 'tell application "Terminal"' in scripts[0]
        assert "/bin/bash /src/wt/run.sh" in scripts[0]
