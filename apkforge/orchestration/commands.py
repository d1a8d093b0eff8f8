"""
User-triggered commands.

Each command is one entry point the presentation layer can invoke. Commands that
need the downloaded tools are gated on the lifecycle manager and abort entirely
when the tools cannot be made ready; every command reports a CommandOutcome.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ..core.context import ForgeContext
from ..core.exceptions import APKForgeError, ToolUnavailableError, ValidationError
from ..core.logging import get_logger
from ..models.project import CommandOutcome, MemberResult, PackageTarget, PipelineRequest
from ..services.pipeline import PipelineExecutor
from ..services.process import ProcessRunner
from ..services.split import SplitPackageCoordinator
from ..services.tool_lifecycle import ToolLifecycleManager
from ..tools.apktool import APKTOOL_YML
from ..tools.toolchain import Toolchain, build_toolchain

logger = get_logger(__name__)

TOOLS_UNAVAILABLE = "Can't download/update dependencies!"


class CommandHandler:
    """Runs commands against one context and toolchain."""

    def __init__(
        self,
        context: ForgeContext,
        lifecycle: ToolLifecycleManager,
        toolchain: Toolchain,
    ) -> None:
        self.context = context
        self.lifecycle = lifecycle
        self.toolchain = toolchain
        self.executor = PipelineExecutor(
            context,
            decoder=toolchain.apktool,
            decompiler=toolchain.jadx,
            analyzer=toolchain.quark,
            vcs=toolchain.git,
            opener=toolchain.opener,
        )
        self.coordinator = SplitPackageCoordinator(
            self.executor, builder=toolchain.apktool, installer=toolchain.adb
        )

    @classmethod
    def create(cls, context: ForgeContext, runner: ProcessRunner | None = None) -> CommandHandler:
        """Wire the real lifecycle manager and tool adapters for a context."""
        lifecycle = ToolLifecycleManager(context)
        toolchain = build_toolchain(context, lifecycle.descriptors, runner)
        return cls(context, lifecycle, toolchain)

    async def _gate(self, command: str) -> CommandOutcome | None:
        """Make the tools ready, or return the failed outcome that aborts the command."""
        try:
            await self.lifecycle.ensure_tools_ready()
        except ToolUnavailableError as e:
            logger.error(TOOLS_UNAVAILABLE, command=command, error=str(e))
            return CommandOutcome.fail(command, [TOOLS_UNAVAILABLE, str(e)])
        return None

    async def decode(
        self,
        apk_path: Path,
        decode_args: Sequence[str] = (),
        decompile: bool = False,
        decompile_args: Sequence[str] = (),
        analyze: bool = False,
        split: bool | None = None,
        open_workspace_after: bool | None = None,
    ) -> CommandOutcome:
        """Decode a package, or every member of its split set.

        Args:
            apk_path: Package to decode (the base package for a split set)
            decode_args: Extra apktool arguments
            decompile: Also decompile to Java sources
            decompile_args: Extra jadx arguments
            analyze: Also run quark static analysis
            split: Treat as a split set; None detects it from the files present
            open_workspace_after: Open the project when done; None uses the config
        """
        command = "decode"
        if not apk_path.is_file():
            return CommandOutcome.fail(command, [f"No package file at {apk_path}"])
        if failed := await self._gate(command):
            return failed

        if open_workspace_after is None:
            open_workspace_after = self.context.config.project.open_workspace_after
        if split is None:
            split = self.coordinator.is_split_base(apk_path)

        target = PackageTarget.for_apk(apk_path, self.context)
        try:
            if split:
                result = await self.coordinator.analyze_all(
                    apk_path.parent,
                    apk_path,
                    target.project_dir,
                    decode_args,
                    decompile,
                    decompile_args,
                    analyze,
                    open_workspace_after=open_workspace_after,
                )
                errors = [
                    f"{name}: {o.stage.value} failed: {o.error_detail}"
                    for name, outcomes in result.outcomes.items()
                    for o in outcomes
                    if not o.success
                ]
                if result.vcs_outcome and not result.vcs_outcome.success:
                    errors.append(f"vcs_init failed: {result.vcs_outcome.error_detail}")
                return CommandOutcome(
                    command=command,
                    success=not result.failed_members,
                    errors=errors,
                    details={
                        "project_dir": str(target.project_dir),
                        "members": result.split_set.member_names,
                    },
                )

            request = PipelineRequest(
                target=target,
                decode_args=list(decode_args),
                decompile=decompile,
                decompile_args=list(decompile_args),
                run_static_analysis=analyze,
                open_workspace_after=open_workspace_after,
            )
            outcomes = await self.executor.run(request)
        except ToolUnavailableError as e:
            logger.error("Request rejected", error=str(e))
            return CommandOutcome.fail(command, [str(e)])

        errors = [f"{o.stage.value} failed: {o.error_detail}" for o in outcomes if not o.success]
        return CommandOutcome(
            command=command,
            success=outcomes[0].success,
            errors=errors,
            details={"project_dir": str(target.project_dir), "stages": [o.stage.value for o in outcomes]},
        )

    async def rebuild(self, apktool_yml: Path, args: Sequence[str] = ()) -> CommandOutcome:
        """Rebuild and sign one decoded project."""
        command = "rebuild"
        if failed := await self._gate(command):
            return failed
        try:
            output = await self.toolchain.apktool.rebuild(_manifest(apktool_yml), args)
        except APKForgeError as e:
            logger.error("Rebuild failed", error=str(e))
            return CommandOutcome.fail(command, [str(e)])
        return CommandOutcome.ok(command, output_path=str(output))

    async def install(self, apk_path: Path) -> CommandOutcome:
        """Install one package on the attached device."""
        command = "install"
        try:
            await self.toolchain.adb.install(apk_path)
        except APKForgeError as e:
            logger.error("Install failed", error=str(e))
            return CommandOutcome.fail(command, [str(e)])
        return CommandOutcome.ok(command, apk_path=str(apk_path))

    async def rebuild_and_install(self, apktool_yml: Path, args: Sequence[str] = ()) -> CommandOutcome:
        """Rebuild one project and install the result if the rebuild succeeded."""
        command = "rebuild_and_install"
        rebuilt = await self.rebuild(apktool_yml, args)
        if not rebuilt.success:
            return CommandOutcome.fail(command, rebuilt.errors)
        installed = await self.install(Path(rebuilt.details["output_path"]))
        if not installed.success:
            return CommandOutcome.fail(command, installed.errors, **rebuilt.details)
        return CommandOutcome.ok(command, **rebuilt.details)

    async def patch_https(self, apk_path: Path) -> CommandOutcome:
        """Patch a package so its HTTPS traffic can be intercepted."""
        command = "patch_https"
        try:
            patched = await self.toolchain.apk_mitm.apply_patches(apk_path)
        except APKForgeError as e:
            logger.error("Patching failed", error=str(e))
            return CommandOutcome.fail(command, [str(e)])
        return CommandOutcome.ok(command, output_path=str(patched))

    async def empty_framework_dir(self) -> CommandOutcome:
        """Clear apktool's installed framework resources."""
        command = "empty_framework_dir"
        if failed := await self._gate(command):
            return failed
        try:
            await self.toolchain.apktool.empty_framework_dir()
        except APKForgeError as e:
            logger.error("Emptying framework dir failed", error=str(e))
            return CommandOutcome.fail(command, [str(e)])
        return CommandOutcome.ok(command)

    async def rebuild_all(self, project_dir: Path, args: Sequence[str] = ()) -> CommandOutcome:
        """Rebuild every member of a split project."""
        command = "rebuild_all"
        if failed := await self._gate(command):
            return failed
        try:
            results = await self.coordinator.rebuild_all(project_dir, args)
        except ValidationError as e:
            return _rejected(command, e)
        return _batch_outcome(command, results)

    async def install_all(self, project_dir: Path) -> CommandOutcome:
        """Install every rebuilt member of a split project."""
        command = "install_all"
        try:
            results = await self.coordinator.install_all(project_dir)
        except ValidationError as e:
            return _rejected(command, e)
        return _batch_outcome(command, results)

    async def rebuild_and_install_all(self, project_dir: Path, args: Sequence[str] = ()) -> CommandOutcome:
        """Rebuild every member of a split project, then install the ones that rebuilt."""
        command = "rebuild_and_install_all"
        if failed := await self._gate(command):
            return failed
        try:
            rebuilt, installed = await self.coordinator.rebuild_and_install_all(project_dir, args)
        except ValidationError as e:
            return _rejected(command, e)
        outcome = _batch_outcome(command, [*rebuilt, *installed])
        outcome.details = {
            "rebuilt": [r.member for r in rebuilt if r.success],
            "installed": [r.member for r in installed if r.success],
        }
        return outcome


def _manifest(path: Path) -> Path:
    """Accept either a project directory or its apktool.yml."""
    return path / APKTOOL_YML if path.is_dir() else path


def _rejected(command: str, error: ValidationError) -> CommandOutcome:
    logger.error("Request rejected", error=str(error))
    return CommandOutcome.fail(command, [str(error)])


def _batch_outcome(command: str, results: list[MemberResult]) -> CommandOutcome:
    errors = [str(r.error) for r in results if r.error is not None]
    if not results:
        errors.append("No split members found")
    return CommandOutcome(
        command=command,
        success=not errors,
        errors=errors,
        details={"members": [r.member for r in results if r.success]},
    )
