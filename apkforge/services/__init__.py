"""Services package for APKForge."""

from .process import ProcessOutput, ProcessRunner
from .tool_lifecycle import ToolLifecycleManager
from .pipeline import PipelineExecutor
from .split import SplitPackageCoordinator, find_split_files

__all__ = [
    "ProcessOutput",
    "ProcessRunner",
    "ToolLifecycleManager",
    "PipelineExecutor",
    "SplitPackageCoordinator",
    "find_split_files",
]
