"""
External tool models.

Describe the downloadable tools the pipeline depends on: where they come from,
which versions are acceptable and what is currently installed.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, Field


class ArtifactKind(str, Enum):
    """Shape of a downloaded tool release."""

    JAR = "jar"
    ZIP = "zip"


class ToolDescriptor(BaseModel):
    """A downloadable external tool and its installation state."""

    name: str = Field(description="Tool identifier (apktool, jadx, ...)")
    version: str = Field(description="Version installed when the tool is missing or outdated")
    expected_version_constraint: str = Field(description="PEP 440 specifier the installed version must meet")
    installed_version: str | None = Field(default=None, description="Version currently installed")
    download_source: str = Field(description="Download URL template, formatted with {version}")
    github_repo: str = Field(description="owner/name of the GitHub repository publishing releases")
    artifact_kind: ArtifactKind = Field(default=ArtifactKind.JAR)
    file_name: str = Field(description="Installed file or directory name, formatted with {version}")
    executable: str | None = Field(
        default=None, description="Executable inside an extracted archive, relative to the install dir"
    )

    def download_url(self, version: str | None = None) -> str:
        return self.download_source.format(version=version or self.version)

    def install_path(self, data_dir: Path, version: str | None = None) -> Path:
        """Location of the installed jar or extracted directory."""
        return data_dir / self.file_name.format(version=version or self.installed_version or self.version)

    def entry_point(self, data_dir: Path) -> Path:
        """File that is actually run: the jar itself, or the executable inside the archive."""
        path = self.install_path(data_dir)
        if self.executable:
            return path / self.executable
        return path

    def satisfies(self, version: str | None) -> bool:
        """Check a version string against the descriptor's constraint."""
        if not version:
            return False
        try:
            return Version(version) in SpecifierSet(self.expected_version_constraint)
        except (InvalidVersion, InvalidSpecifier):
            return False

    def is_newer(self, version: str) -> bool:
        if not self.installed_version:
            return True
        try:
            return Version(version) > Version(self.installed_version)
        except InvalidVersion:
            return False


class ToolUpdate(BaseModel):
    """Advisory notice that a newer release of a tool exists."""

    name: str
    installed_version: str | None
    latest_version: str
