"""Persistent state for APKForge."""

from .tool_state import ToolStateStore

__all__ = ["ToolStateStore"]
