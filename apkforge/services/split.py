"""
Split Package Coordinator.

Handles packages that ship as a base plus configuration splits: discovers the
split set, decodes every member into one shared project directory, and rebuilds
or installs all members as a best-effort batch.

Members are always processed one at a time in lexical file-name order; later
members may depend on what earlier ones placed in the shared directory.
"""

from __future__ import annotations

import glob
from collections.abc import Sequence
from pathlib import Path

from ..core.exceptions import APKForgeError, BuildError, InstallError, ValidationError
from ..core.logging import get_logger, log_context
from ..models.project import (
    MemberResult,
    PackageTarget,
    PipelineRequest,
    SplitAnalysisResult,
    SplitPackageSet,
)
from ..tools.apktool import APKTOOL_YML
from ..tools.interfaces import Builder, Installer
from .pipeline import PipelineExecutor

logger = get_logger(__name__)

# split naming conventions, relative to the base package's stem
SPLIT_PATTERNS = ("{stem}.config.*.apk", "{stem}.split.*.apk")
# bundletool / `adb pull` layout: base.apk next to split_config.*.apk
BASE_APK_STEM = "base"
BASE_SPLIT_PATTERN = "split_*.apk"


def find_split_files(base_apk: Path, base_dir: Path | None = None) -> list[Path]:
    """Find the split packages that belong to a base package.

    Args:
        base_apk: The base package
        base_dir: Directory to search, defaults to the base package's directory

    Returns:
        Split package paths sorted by file name, without the base itself
    """
    base_dir = base_dir or base_apk.parent
    stem = glob.escape(base_apk.stem)
    patterns = [p.format(stem=stem) for p in SPLIT_PATTERNS]
    if base_apk.stem == BASE_APK_STEM:
        patterns.append(BASE_SPLIT_PATTERN)

    found: dict[str, Path] = {}
    for pattern in patterns:
        for path in base_dir.glob(pattern):
            if path.is_file() and path.name != base_apk.name:
                found[path.name] = path
    return [found[name] for name in sorted(found)]


def is_split_layout(member_names: Sequence[str]) -> bool:
    """Whether decoded project names are one base plus splits of it.

    Members decode into directories named after their package stems, so the
    split naming conventions apply to the directory names.
    """
    names = set(member_names)
    for base in names:
        prefixes = [p.format(stem=base).split("*")[0] for p in SPLIT_PATTERNS]
        if base == BASE_APK_STEM:
            prefixes.append(BASE_SPLIT_PATTERN.split("*")[0])
        others = names - {base}
        if others and all(name.startswith(tuple(prefixes)) for name in others):
            return True
    return False


class SplitPackageCoordinator:
    """Fans the pipeline out over a split set and batches rebuild/install."""

    def __init__(self, executor: PipelineExecutor, builder: Builder, installer: Installer) -> None:
        self.executor = executor
        self.builder = builder
        self.installer = installer

    def is_split_base(self, base_apk: Path) -> bool:
        """Whether the package has split packages next to it."""
        return bool(find_split_files(base_apk))

    def discover(self, base_apk: Path, project_dir: Path, base_dir: Path | None = None) -> SplitPackageSet:
        """Build the split set for a base package.

        Every member decodes into ``<project_dir>/<member stem>``.
        """
        base_dir = base_dir or base_apk.parent
        base_apk = base_dir / base_apk.name
        apks = sorted([base_apk, *find_split_files(base_apk, base_dir)], key=lambda p: p.name)
        members = [PackageTarget(apk_path=apk, project_dir=project_dir / apk.stem) for apk in apks]
        base = next(m for m in members if m.apk_path == base_apk)
        logger.info("Discovered split package set", base=base_apk.name, members=[m.name for m in members])
        return SplitPackageSet(base_package=base, members=members, shared_project_dir=project_dir)

    async def analyze_all(
        self,
        base_dir: Path,
        base_apk: Path,
        project_dir: Path,
        decode_args: Sequence[str] = (),
        decompile: bool = False,
        decompile_args: Sequence[str] = (),
        analyze: bool = False,
        *,
        open_workspace_after: bool = False,
    ) -> SplitAnalysisResult:
        """Decode (and optionally decompile and analyze) every member of a split set.

        A member whose decode fails does not stop the remaining members. Version
        control is initialized once, on the shared directory, after all members.

        Returns:
            Per-member stage outcomes plus the shared VcsInit outcome, if any
        """
        split_set = self.discover(base_apk, project_dir, base_dir)
        requests = [
            PipelineRequest(
                target=member,
                decode_args=list(decode_args),
                decompile=decompile,
                decompile_args=list(decompile_args),
                run_static_analysis=analyze,
                open_workspace_after=False,
            )
            for member in split_set.members
        ]
        # members share one set of flags
        self.executor.accept(requests[0])

        split_set.shared_project_dir.mkdir(parents=True, exist_ok=True)
        result = SplitAnalysisResult(split_set=split_set)

        for index, request in enumerate(requests, start=1):
            name = request.target.name
            with log_context(member=name):
                logger.info("Processing split member", index=index, total=len(requests))
                result.outcomes[name] = await self.executor.run(request, initialize_vcs=False)

        if self.executor.vcs_enabled and len(result.failed_members) < len(requests):
            result.vcs_outcome = await self.executor.initialize_vcs(split_set.shared_project_dir)

        if result.failed_members:
            logger.warning("Some split members failed to decode", members=result.failed_members)

        if open_workspace_after:
            await self.executor.open_workspace(split_set.shared_project_dir)

        return result

    def member_dirs(self, project_dir: Path) -> list[Path]:
        """Decoded member directories under a shared project directory, in lexical order."""
        shared = self.shared_dir(project_dir)
        if not shared.is_dir():
            return []
        return sorted(
            (d for d in shared.iterdir() if d.is_dir() and (d / APKTOOL_YML).is_file()),
            key=lambda d: d.name,
        )

    @staticmethod
    def shared_dir(path: Path) -> Path:
        """Normalize a path inside a split project to the shared project directory.

        Accepts the shared directory itself, a member directory, or a member's
        ``apktool.yml``. A member path only climbs to its parent when the decoded
        projects there are a base and its splits.

        Raises:
            ValidationError: If the path is a decoded project outside any split project.
        """
        if path.is_file():
            path = path.parent
        if not (path / APKTOOL_YML).is_file():
            return path
        siblings = [d.name for d in path.parent.iterdir() if d.is_dir() and (d / APKTOOL_YML).is_file()]
        if not is_split_layout(siblings):
            raise ValidationError(
                message=f"{path} is a single decoded project, not part of a split project",
                field_name="project_dir",
            )
        return path.parent

    async def rebuild_all(self, project_dir: Path, args: Sequence[str] = ()) -> list[MemberResult]:
        """Rebuild every member, continuing past failures.

        Returns:
            One result per member, failures carrying a BuildError
        """
        members = self.member_dirs(project_dir)
        if not members:
            logger.warning("No decoded split members found", project_dir=str(project_dir))

        results: list[MemberResult] = []
        for member_dir in members:
            with log_context(member=member_dir.name):
                try:
                    output = await self.builder.rebuild(member_dir / APKTOOL_YML, args)
                    results.append(MemberResult.ok(member_dir.name, member_dir, output))
                except APKForgeError as e:
                    error = BuildError(message=str(e), member=member_dir.name, cause=e)
                    logger.error("Member rebuild failed", error=str(e))
                    results.append(MemberResult.fail(member_dir.name, error, member_dir))

        _log_batch("rebuild", results)
        return results

    async def install_all(self, project_dir: Path) -> list[MemberResult]:
        """Install every member that has a rebuilt package, continuing past failures."""
        rebuilt = [
            MemberResult(member=d.name, success=True, project_dir=d, output_path=self.builder.output_path(d))
            for d in self.member_dirs(project_dir)
        ]
        return await self._install(rebuilt)

    async def rebuild_and_install_all(
        self, project_dir: Path, args: Sequence[str] = ()
    ) -> tuple[list[MemberResult], list[MemberResult]]:
        """Rebuild every member, then install the ones that rebuilt, in rebuild order.

        Returns:
            The rebuild results and the install results
        """
        rebuilt = await self.rebuild_all(project_dir, args)
        installed = await self._install([r for r in rebuilt if r.success])
        return rebuilt, installed

    async def _install(self, rebuilt: list[MemberResult]) -> list[MemberResult]:
        results: list[MemberResult] = []
        for item in rebuilt:
            with log_context(member=item.member):
                try:
                    if item.output_path is None or not item.output_path.is_file():
                        raise InstallError(
                            message=f"No rebuilt package at {item.output_path}",
                            member=item.member,
                        )
                    await self.installer.install(item.output_path)
                    results.append(MemberResult.ok(item.member, item.project_dir, item.output_path))
                except InstallError as e:
                    logger.error("Member install failed", error=str(e))
                    results.append(MemberResult.fail(item.member, e, item.project_dir))
                except APKForgeError as e:
                    error = InstallError(message=str(e), member=item.member, cause=e)
                    logger.error("Member install failed", error=str(e))
                    results.append(MemberResult.fail(item.member, error, item.project_dir))

        _log_batch("install", results)
        return results


def _log_batch(operation: str, results: list[MemberResult]) -> None:
    failed = [r.member for r in results if not r.success]
    logger.info(
        f"Batch {operation} finished",
        succeeded=len(results) - len(failed),
        failed=failed,
    )
