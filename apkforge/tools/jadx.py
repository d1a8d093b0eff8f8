"""jadx adapter: decompiles package bytecode to Java sources."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ..core.context import ForgeContext
from ..core.logging import get_logger
from ..models.tools import ToolDescriptor
from ..services.process import ProcessRunner
from .interfaces import Decompiler

logger = get_logger(__name__)

JAVA_SOURCES_DIR = "java_src"


class Jadx(Decompiler):
    """Runs the jadx launcher from the downloaded distribution."""

    def __init__(self, runner: ProcessRunner, context: ForgeContext, jadx: ToolDescriptor) -> None:
        self.runner = runner
        self.context = context
        self.jadx = jadx

    async def decompile(self, apk_path: Path, project_dir: Path, args: Sequence[str] = ()) -> None:
        output_dir = project_dir / JAVA_SOURCES_DIR
        logger.info("Decompiling package", apk=str(apk_path), output=str(output_dir))
        # resources are apktool's job, jadx only emits sources
        await self.runner.invoke(
            self.jadx.entry_point(self.context.data_dir),
            ["-r", "-q", "-v", "--output-dir", output_dir, *args, apk_path],
        )
