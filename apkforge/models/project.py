"""
Project-related data models.

These models describe what a pipeline run works on (a package target and the
normalized request built from the user's selection) and what it produces
(per-stage outcomes, per-member batch results and command summaries).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.exceptions import APKForgeError
from ..core.types import Stage

if TYPE_CHECKING:
    from ..core.context import ForgeContext


def resolve_project_dir(apk_path: Path, context: ForgeContext | None = None) -> Path:
    """Derive a free project directory for a package.

    The directory is ``<dir of apk>/<apk stem>``; while that path exists (or is
    reserved by an in-flight run) a ``1`` is appended. The result is reserved in
    the context so a second request before the first run creates it still moves on.

    Args:
        apk_path: Package file the project is derived from.
        context: Context holding reserved directories, if any.

    Returns:
        A project directory path that collides with nothing.
    """
    project_dir = apk_path.parent / apk_path.stem
    while project_dir.exists() or (context is not None and context.is_reserved(project_dir)):
        project_dir = project_dir.with_name(project_dir.name + "1")
    if context is not None:
        context.reserve(project_dir)
    return project_dir


class PackageTarget(BaseModel):
    """One Android package being processed and where its project lives."""

    model_config = ConfigDict(frozen=True)

    apk_path: Path = Field(description="Package file")
    project_dir: Path = Field(description="Project directory the package decodes into")

    @classmethod
    def for_apk(cls, apk_path: Path, context: ForgeContext | None = None) -> PackageTarget:
        """Create a target with a freshly resolved project directory."""
        return cls(apk_path=apk_path, project_dir=resolve_project_dir(apk_path, context))

    @property
    def name(self) -> str:
        return self.apk_path.name


class PipelineRequest(BaseModel):
    """Normalized request for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    target: PackageTarget
    decode_args: list[str] = Field(default_factory=list, description="Extra apktool decode arguments")
    decompile: bool = Field(default=False, description="Decompile to Java sources with jadx")
    decompile_args: list[str] = Field(default_factory=list, description="Extra jadx arguments")
    run_static_analysis: bool = Field(default=False, description="Run quark-engine analysis")
    open_workspace_after: bool = Field(default=False, description="Open the project when done")

    @model_validator(mode="before")
    @classmethod
    def _drop_unused_decompile_args(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("decompile"):
            data = {**data, "decompile_args": []}
        return data


class StageOutcome(BaseModel):
    """Outcome of one stage for one target."""

    stage: Stage
    success: bool
    error_detail: str | None = None

    @classmethod
    def ok(cls, stage: Stage) -> StageOutcome:
        return cls(stage=stage, success=True)

    @classmethod
    def failed(cls, stage: Stage, error: Exception | str) -> StageOutcome:
        return cls(stage=stage, success=False, error_detail=str(error))


class SplitPackageSet(BaseModel):
    """A base package and its split packages sharing one project directory."""

    model_config = ConfigDict(frozen=True)

    base_package: PackageTarget
    members: list[PackageTarget]
    shared_project_dir: Path

    @field_validator("members")
    @classmethod
    def _members_not_empty(cls, members: list[PackageTarget]) -> list[PackageTarget]:
        if not members:
            raise ValueError("a split package set needs at least one member")
        return members

    @model_validator(mode="after")
    def _members_share_project_dir(self) -> SplitPackageSet:
        for member in self.members:
            if member.project_dir.parent != self.shared_project_dir:
                raise ValueError(
                    f"member {member.name} decodes outside {self.shared_project_dir}"
                )
        return self

    @property
    def member_names(self) -> list[str]:
        return [member.name for member in self.members]


class SplitAnalysisResult(BaseModel):
    """Result of decoding and analyzing every member of a split set."""

    split_set: SplitPackageSet
    outcomes: dict[str, list[StageOutcome]] = Field(
        default_factory=dict, description="Stage outcomes keyed by member file name"
    )
    vcs_outcome: StageOutcome | None = None

    @property
    def failed_members(self) -> list[str]:
        return [
            name
            for name, outcomes in self.outcomes.items()
            if not outcomes or not outcomes[0].success
        ]


@dataclass
class MemberResult:
    """Result of rebuilding or installing one member of a batch."""

    member: str
    success: bool
    project_dir: Path | None = None
    output_path: Path | None = None
    error: APKForgeError | None = None

    @classmethod
    def ok(cls, member: str, project_dir: Path | None = None, output_path: Path | None = None) -> MemberResult:
        return cls(member=member, success=True, project_dir=project_dir, output_path=output_path)

    @classmethod
    def fail(cls, member: str, error: APKForgeError, project_dir: Path | None = None) -> MemberResult:
        return cls(member=member, success=False, project_dir=project_dir, error=error)


class CommandOutcome(BaseModel):
    """Summary of a user-triggered command reported to the presentation layer."""

    command: str
    success: bool = True
    errors: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, command: str, **details: Any) -> CommandOutcome:
        return cls(command=command, success=True, details=details)

    @classmethod
    def fail(cls, command: str, errors: list[str], **details: Any) -> CommandOutcome:
        return cls(command=command, success=False, errors=errors, details=details)
