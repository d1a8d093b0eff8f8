"""
Pipeline Executor.

Runs the fixed stage sequence for one package: decode, then the optional
decompile, static analysis and version-control stages, then optionally opens the
project. Stages run strictly one after another because each one reads what the
previous ones wrote into the project directory.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable
from pathlib import Path

from ..core.context import ForgeContext
from ..core.exceptions import APKForgeError, ToolUnavailableError
from ..core.logging import get_logger, log_context
from ..core.types import Stage
from ..models.project import PipelineRequest, StageOutcome
from ..tools.interfaces import Analyzer, Decoder, Decompiler, VcsInitializer, WorkspaceOpener

logger = get_logger(__name__)


class PipelineExecutor:
    """Executes the per-package pipeline and reports one outcome per stage run.

    Decode is mandatory: when it fails nothing else runs. Decompile, Analyze and
    VcsInit failures are recorded and the remaining stages still run, since the
    decoded project is useful on its own. Opening the workspace is a final side
    effect that produces no outcome.
    """

    def __init__(
        self,
        context: ForgeContext,
        decoder: Decoder,
        decompiler: Decompiler,
        analyzer: Analyzer,
        vcs: VcsInitializer,
        opener: WorkspaceOpener,
    ) -> None:
        self.context = context
        self.decoder = decoder
        self.decompiler = decompiler
        self.analyzer = analyzer
        self.vcs = vcs
        self.opener = opener

    def accept(self, request: PipelineRequest) -> None:
        """Reject a request whose optional stages cannot run.

        Raises:
            ToolUnavailableError: If static analysis is requested but the engine is missing.
        """
        if request.run_static_analysis and not self.analyzer.is_installed():
            raise ToolUnavailableError(
                message="Static analysis requested but the analysis engine is not installed",
                tool_name="quark",
                install_hint=getattr(self.analyzer, "install_hint", ""),
            )

    @property
    def vcs_enabled(self) -> bool:
        return self.context.config.project.init_project_dir_as_git

    async def run(self, request: PipelineRequest, *, initialize_vcs: bool = True) -> list[StageOutcome]:
        """Run the pipeline for one target.

        Args:
            request: The normalized request
            initialize_vcs: Set to False to skip VcsInit even when configured, for
                callers that initialize a shared directory themselves

        Returns:
            Outcomes of the stages that ran, in execution order
        """
        self.accept(request)
        target = request.target
        start_time = time.perf_counter()
        outcomes: list[StageOutcome] = []

        with log_context(target=target.name):
            decode = await self._stage(
                Stage.DECODE,
                self.decoder.decode(target.apk_path, target.project_dir, request.decode_args),
            )
            outcomes.append(decode)
            if not decode.success:
                logger.error("Decode failed, aborting pipeline", error=decode.error_detail)
                return outcomes

            if request.decompile:
                outcomes.append(
                    await self._stage(
                        Stage.DECOMPILE,
                        self.decompiler.decompile(target.apk_path, target.project_dir, request.decompile_args),
                    )
                )

            if request.run_static_analysis:
                outcomes.append(
                    await self._stage(Stage.ANALYZE, self.analyzer.analyze(target.apk_path, target.project_dir))
                )

            if initialize_vcs and self.vcs_enabled:
                outcomes.append(await self.initialize_vcs(target.project_dir))

            if request.open_workspace_after:
                await self.open_workspace(target.project_dir)

            logger.info(
                "Pipeline completed",
                stages=[o.stage.value for o in outcomes],
                failed=[o.stage.value for o in outcomes if not o.success],
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )
            return outcomes

    async def initialize_vcs(self, project_dir: Path) -> StageOutcome:
        """Run the VcsInit stage on a project directory."""
        return await self._stage(
            Stage.VCS_INIT,
            self.vcs.init(project_dir, self.context.config.project.vcs_commit_message),
        )

    async def open_workspace(self, project_dir: Path) -> None:
        """Open the project once, unless running non-interactively. Never raises."""
        if not self.context.interactive:
            logger.debug("Non-interactive mode, not opening workspace", stage=Stage.OPEN.value)
            return
        try:
            await self.opener.open(project_dir)
        except APKForgeError as e:
            logger.warning("Could not open workspace", stage=Stage.OPEN.value, error=str(e))

    async def _stage(self, stage: Stage, action: Awaitable[None]) -> StageOutcome:
        logger.info("Stage started", stage=stage.value)
        try:
            await action
        except (APKForgeError, OSError) as e:
            logger.error("Stage failed", stage=stage.value, error=str(e))
            return StageOutcome.failed(stage, e)
        logger.info("Stage completed", stage=stage.value)
        return StageOutcome.ok(stage)
