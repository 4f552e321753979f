"""Configuration handling for issue-solver"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from issue_solver.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_ENV_VAR = "ISSUE_SOLVER_CONFIG"
DEFAULT_CONFIG_DIR = Path.home() / ".issue-solver"

# Only these keys are ever written to disk
PERSISTED_KEYS = ("bot_token", "ai_tool")

AI_TOOLS = ["claude", "droid"]


@dataclass
class Config:
    """Configuration for issue-solver with validation."""

    # GitHub integration
    github_token: Optional[str] = None
    bot_token: Optional[str] = None  # Secondary account used to post formal reviews

    # Solving
    ai_tool: str = "claude"
    auto_close: bool = False
    issue_limit: int = 50
    link_dirs: List[str] = field(default_factory=lambda: ["node_modules", ".venv"])

    # Timing
    poll_interval: float = 2.0  # Commit watcher period in seconds
    window_close_delay: float = 0.5  # Pause after closing windows, before deleting folders

    # Concurrency
    max_concurrent_requests: int = 10  # Cap for parallel GitHub status lookups

    # Execution modes
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_ai_tool()
        self._validate_issue_limit()
        self._validate_poll_interval()
        self._validate_window_close_delay()
        self._validate_max_concurrent_requests()
        self._validate_link_dirs()

        if not self.github_token:
            self.github_token = os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")

    def _validate_ai_tool(self):
        """Validate ai_tool is a known assistant."""
        if self.ai_tool not in AI_TOOLS:
            raise ValueError(f"ai_tool must be one of {AI_TOOLS}, got '{self.ai_tool}'")

    def _validate_issue_limit(self):
        """Validate issue_limit is not negative (0 means no limit)."""
        if self.issue_limit < 0:
            raise ValueError(f"issue_limit must be zero or positive, got {self.issue_limit}")

    def _validate_poll_interval(self):
        """Validate poll_interval is positive."""
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")

    def _validate_window_close_delay(self):
        """Validate window_close_delay is not negative."""
        if self.window_close_delay < 0:
            raise ValueError(
                f"window_close_delay must be zero or positive, got {self.window_close_delay}"
            )

    def _validate_max_concurrent_requests(self):
        """Validate max_concurrent_requests is positive."""
        if self.max_concurrent_requests <= 0:
            raise ValueError(
                f"max_concurrent_requests must be positive, got {self.max_concurrent_requests}"
            )

    def _validate_link_dirs(self):
        """Validate link_dirs list."""
        if not isinstance(self.link_dirs, list):
            raise ValueError("link_dirs must be a list")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "github_token": self.github_token,
            "bot_token": self.bot_token,
            "ai_tool": self.ai_tool,
            "auto_close": self.auto_close,
            "issue_limit": self.issue_limit,
            "link_dirs": self.link_dirs,
            "poll_interval": self.poll_interval,
            "window_close_delay": self.window_close_delay,
            "max_concurrent_requests": self.max_concurrent_requests,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {
            "github_token",
            "bot_token",
            "ai_tool",
            "auto_close",
            "issue_limit",
            "link_dirs",
            "poll_interval",
            "window_close_delay",
            "max_concurrent_requests",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


def get_config_path() -> Path:
    """Location of the persisted settings file."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return DEFAULT_CONFIG_DIR / "config.json"


def load_config_file() -> dict:
    """Read persisted settings. A missing or unreadable file yields an empty dict."""
    path = get_config_path()
    try:
        if path.exists():
            data = json.loads(path.read_text())
            if isinstance(data, dict):
                return {k: v for k, v in data.items() if k in PERSISTED_KEYS}
            logger.warning(f"Ignoring malformed config file {path}")
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read config file {path}: {e}")
    return {}


def save_config_file(values: dict) -> Path:
    """Merge values into the persisted settings and write them back.

    A value of None removes the key.
    """
    path = get_config_path()
    data = load_config_file()
    for key, value in values.items():
        if key not in PERSISTED_KEYS:
            raise ValueError(f"'{key}' cannot be stored in the config file")
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(data, f, indent=2)
    logger.debug(f"Wrote config file {path}")
    return path


def clear_config_file() -> bool:
    """Delete the persisted settings. Returns False when there was nothing to delete."""
    path = get_config_path()
    if not path.exists():
        return False
    path.unlink()
    return True
