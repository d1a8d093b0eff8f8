"""
Configuration management for APKForge.

Provides centralized, type-safe configuration with environment variable overrides
and sensible defaults for the tool lifecycle and the project pipeline.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .types import UpdatePolicy

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class ProjectConfig(BaseModel):
    """Project directory behaviour after a decode."""

    init_project_dir_as_git: bool = Field(
        default=False, description="Initialize the project directory as a git repository"
    )
    vcs_commit_message: str = Field(
        default="Initial APKForge project", description="Message of the initial commit"
    )
    open_workspace_after: bool = Field(
        default=True, description="Open the project directory once the pipeline completes"
    )
    editor_command: str | None = Field(
        default=None, description="Editor used to open projects (system handler when unset)"
    )


class ToolsConfig(BaseModel):
    """External tools configuration."""

    apktool_version: str = Field(default="2.9.3", description="Minimum apktool version")
    jadx_version: str = Field(default="1.5.0", description="Minimum jadx version")
    uber_apk_signer_version: str = Field(default="1.3.0", description="Minimum uber-apk-signer version")

    java_path: str = Field(default="java", description="Java executable used to run jar tools")
    adb_path: str = Field(default="adb", description="adb executable")
    git_path: str = Field(default="git", description="git executable")
    quark_path: str = Field(default="quark", description="quark-engine executable")
    apk_mitm_path: str = Field(default="apk-mitm", description="apk-mitm executable")

    update_policy: UpdatePolicy = Field(
        default=UpdatePolicy.ADVISORY,
        description="advisory: only report newer releases; strict: install them before running",
    )
    check_updates_on_start: bool = Field(default=True, description="Check for tool updates at startup")
    download_timeout_seconds: float = Field(default=300.0, ge=10.0, description="Tool download timeout")
    github_api_url: str = Field(default="https://api.github.com", description="GitHub API base URL")


class Config(BaseModel):
    """Root configuration for APKForge."""

    project_name: str = Field(default="APKForge", description="Project identifier")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    data_dir: Path = Field(
        default_factory=lambda: Path("~/.apkforge").expanduser(),
        description="Directory holding downloaded tools and their state",
    )
    non_interactive: bool = Field(
        default=False, description="Never open workspaces or other interactive surfaces"
    )
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_env(cls) -> Config:
        """Create configuration from environment variables."""
        defaults = ToolsConfig()
        project_defaults = ProjectConfig()
        return cls(
            log_level=os.environ.get("APKFORGE_LOG_LEVEL", "INFO"),  # type: ignore
            data_dir=Path(os.environ.get("APKFORGE_DATA_DIR", "~/.apkforge")).expanduser(),
            non_interactive=_env_flag("APKFORGE_NON_INTERACTIVE") or bool(os.environ.get("TEST")),
            project=ProjectConfig(
                init_project_dir_as_git=_env_flag("APKFORGE_INIT_GIT"),
                open_workspace_after=_env_flag("APKFORGE_OPEN_WORKSPACE", "true"),
                editor_command=os.environ.get("APKFORGE_EDITOR") or None,
                vcs_commit_message=os.environ.get(
                    "APKFORGE_COMMIT_MESSAGE", project_defaults.vcs_commit_message
                ),
            ),
            tools=ToolsConfig(
                apktool_version=os.environ.get("APKFORGE_APKTOOL_VERSION", defaults.apktool_version),
                jadx_version=os.environ.get("APKFORGE_JADX_VERSION", defaults.jadx_version),
                uber_apk_signer_version=os.environ.get(
                    "APKFORGE_SIGNER_VERSION", defaults.uber_apk_signer_version
                ),
                java_path=os.environ.get("APKFORGE_JAVA", defaults.java_path),
                adb_path=os.environ.get("APKFORGE_ADB", defaults.adb_path),
                git_path=os.environ.get("APKFORGE_GIT", defaults.git_path),
                quark_path=os.environ.get("APKFORGE_QUARK", defaults.quark_path),
                apk_mitm_path=os.environ.get("APKFORGE_APK_MITM", defaults.apk_mitm_path),
                update_policy=UpdatePolicy(os.environ.get("APKFORGE_UPDATE_POLICY", "advisory")),
                check_updates_on_start=_env_flag("APKFORGE_CHECK_UPDATES", "true"),
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()
