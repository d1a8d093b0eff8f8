"""
Tool capability interfaces.

The orchestration core only talks to external tools through these interfaces,
enabling the concrete adapters to be swapped (or faked in tests).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path


class Decoder(ABC):
    """Decodes a package's resources and smali into a project directory."""

    @abstractmethod
    async def decode(self, apk_path: Path, project_dir: Path, args: Sequence[str] = ()) -> None:
        ...


class Decompiler(ABC):
    """Decompiles a package's bytecode to Java sources inside the project directory."""

    @abstractmethod
    async def decompile(self, apk_path: Path, project_dir: Path, args: Sequence[str] = ()) -> None:
        ...


class Analyzer(ABC):
    """Runs static analysis on a package and writes its report into the project directory."""

    @abstractmethod
    async def analyze(self, apk_path: Path, project_dir: Path) -> None:
        ...

    @abstractmethod
    def is_installed(self) -> bool:
        """Whether the analysis engine can be run at all."""
        ...


class VcsInitializer(ABC):
    """Turns a project directory into a version-controlled repository."""

    @abstractmethod
    async def init(self, project_dir: Path, message: str) -> None:
        ...


class Builder(ABC):
    """Rebuilds (and signs) a decoded project into a package."""

    @abstractmethod
    async def rebuild(self, manifest_path: Path, args: Sequence[str] = ()) -> Path:
        """Rebuild the project owning ``manifest_path`` and return the output package path."""
        ...

    @abstractmethod
    def output_path(self, project_dir: Path) -> Path:
        """Where a rebuild of ``project_dir`` places its package."""
        ...


class Installer(ABC):
    """Installs a package on the attached device."""

    @abstractmethod
    async def install(self, apk_path: Path) -> None:
        ...


class Patcher(ABC):
    """Patches a package so its HTTPS traffic can be inspected."""

    @abstractmethod
    async def apply_patches(self, apk_path: Path) -> Path:
        """Patch the package and return the patched package path."""
        ...


class WorkspaceOpener(ABC):
    """Opens a project directory for the user."""

    @abstractmethod
    async def open(self, project_dir: Path) -> None:
        ...
