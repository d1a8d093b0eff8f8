"""Data models for APKForge."""

from .project import (
    CommandOutcome,
    MemberResult,
    PackageTarget,
    PipelineRequest,
    SplitAnalysisResult,
    SplitPackageSet,
    StageOutcome,
    resolve_project_dir,
)
from .report import QuarkCrime, QuarkReport
from .tools import ArtifactKind, ToolDescriptor, ToolUpdate

__all__ = [
    "CommandOutcome",
    "MemberResult",
    "PackageTarget",
    "PipelineRequest",
    "SplitAnalysisResult",
    "SplitPackageSet",
    "StageOutcome",
    "resolve_project_dir",
    "QuarkCrime",
    "QuarkReport",
    "ArtifactKind",
    "ToolDescriptor",
    "ToolUpdate",
]
