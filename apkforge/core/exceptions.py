"""
Custom exception hierarchy for APKForge.

All exceptions inherit from APKForgeError to enable consistent error handling
across the pipeline. Each exception type includes context for debugging and logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class APKForgeError(Exception):
    """Base exception for all APKForge errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ValidationError(APKForgeError):
    """Raised when input validation fails."""

    field_name: str | None = None

    def __str__(self) -> str:
        base = super().__str__()
        if self.field_name:
            return f"Validation failed for '{self.field_name}': {base}"
        return f"Validation failed: {base}"


@dataclass
class ToolError(APKForgeError):
    """Raised for external tool lifecycle problems."""

    tool_name: str = ""


@dataclass
class ToolUnavailableError(ToolError):
    """Raised when a required external tool is missing and cannot be made ready.

    Fatal to the whole requested operation.
    """

    install_hint: str = ""

    def __str__(self) -> str:
        hint = f" Install hint: {self.install_hint}" if self.install_hint else ""
        return f"Tool '{self.tool_name}' unavailable: {super().__str__()}.{hint}"


@dataclass
class ProcessError(APKForgeError):
    """Raised when an external process invocation fails."""

    command: list[str] = field(default_factory=list)
    stderr: str = ""


@dataclass
class NonZeroExitError(ProcessError):
    """Raised when a process exits with a non-zero status."""

    returncode: int = 0

    def __str__(self) -> str:
        tail = f" | stderr: {self.stderr[-500:]}" if self.stderr else ""
        return f"'{' '.join(self.command)}' exited with {self.returncode}{tail}"


@dataclass
class SpawnFailureError(ProcessError):
    """Raised when a process cannot be started at all."""

    def __str__(self) -> str:
        return f"Could not start '{' '.join(self.command)}': {super().__str__()}"


@dataclass
class BuildError(APKForgeError):
    """Raised when rebuilding a package fails."""

    member: str = ""

    def __str__(self) -> str:
        return f"[build: {self.member}] {super().__str__()}"


@dataclass
class InstallError(APKForgeError):
    """Raised when installing a package on the device fails."""

    member: str = ""

    def __str__(self) -> str:
        return f"[install: {self.member}] {super().__str__()}"
