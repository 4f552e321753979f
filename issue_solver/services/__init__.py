"""Services used by the issue-solver commands."""
