"""Core infrastructure components for APKForge."""

from .config import Config, get_config
from .context import ForgeContext
from .exceptions import (
    APKForgeError,
    BuildError,
    InstallError,
    NonZeroExitError,
    ProcessError,
    SpawnFailureError,
    ToolError,
    ToolUnavailableError,
    ValidationError,
)
from .logging import get_logger, setup_logging
from .types import Stage, UpdatePolicy

__all__ = [
    "Config",
    "get_config",
    "ForgeContext",
    "APKForgeError",
    "BuildError",
    "InstallError",
    "NonZeroExitError",
    "ProcessError",
    "SpawnFailureError",
    "ToolError",
    "ToolUnavailableError",
    "ValidationError",
    "get_logger",
    "setup_logging",
    "Stage",
    "UpdatePolicy",
]
