"""Shared testing fixtures for the adaptive_quizzer test suite."""

from .banks import make_bank, record, tiered_bank  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "WorkspaceBuilder",
    "build_tree",
    "make_bank",
    "record",
    "tiered_bank",
]
