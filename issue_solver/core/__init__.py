"""Core functionality for issue-solver."""

from .solver import IssueSolver

__all__ = ["IssueSolver"]
