"""
apktool adapter.

Decodes packages into project directories, rebuilds them and signs the rebuilt
package with uber-apk-signer so it can be installed right away.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

from ..core.context import ForgeContext
from ..core.exceptions import ValidationError
from ..core.logging import get_logger
from ..models.tools import ToolDescriptor
from ..services.process import ProcessRunner
from .interfaces import Builder, Decoder

logger = get_logger(__name__)

APKTOOL_YML = "apktool.yml"
_APK_FILE_NAME = re.compile(r"^apkFileName:\s*['\"]?(?P<name>[^'\"\r\n]+?)['\"]?\s*$", re.MULTILINE)


def apk_name_from_apktool_yml(apktool_yml: Path) -> str:
    """Read the original package file name recorded by apktool.

    Falls back to ``<project dir name>.apk`` when the field is missing.
    """
    match = _APK_FILE_NAME.search(apktool_yml.read_text(encoding="utf-8", errors="replace"))
    if match:
        return match.group("name")
    return f"{apktool_yml.parent.name}.apk"


class Apktool(Decoder, Builder):
    """Runs the downloaded apktool and uber-apk-signer jars."""

    def __init__(
        self,
        runner: ProcessRunner,
        context: ForgeContext,
        apktool: ToolDescriptor,
        signer: ToolDescriptor,
    ) -> None:
        self.runner = runner
        self.context = context
        self.apktool = apktool
        self.signer = signer

    @property
    def java(self) -> str:
        return self.context.config.tools.java_path

    async def _apktool(self, *args: str | Path) -> None:
        jar = self.apktool.entry_point(self.context.data_dir)
        await self.runner.invoke(self.java, ["-jar", jar, *args])

    async def decode(self, apk_path: Path, project_dir: Path, args: Sequence[str] = ()) -> None:
        logger.info("Decoding package", apk=str(apk_path), project_dir=str(project_dir))
        await self._apktool("d", apk_path, "-o", project_dir, *args)

    def output_path(self, project_dir: Path) -> Path:
        return project_dir / "dist" / apk_name_from_apktool_yml(project_dir / APKTOOL_YML)

    async def rebuild(self, manifest_path: Path, args: Sequence[str] = ()) -> Path:
        if not manifest_path.is_file():
            raise ValidationError(
                message=f"{APKTOOL_YML} not found: {manifest_path}",
                field_name="manifest_path",
            )
        project_dir = manifest_path.parent
        output_apk = self.output_path(project_dir)

        logger.info("Rebuilding package", project_dir=str(project_dir), output=str(output_apk))
        await self._apktool("b", project_dir, *args)
        await self.sign(output_apk)
        return output_apk

    async def sign(self, apk_path: Path) -> None:
        """Sign a package in place with the uber-apk-signer debug key."""
        jar = self.signer.entry_point(self.context.data_dir)
        logger.info("Signing package", apk=str(apk_path))
        await self.runner.invoke(
            self.java, ["-jar", jar, "-a", apk_path, "--allowResign", "--overwrite"]
        )

    async def empty_framework_dir(self) -> None:
        """Remove the framework resource packages apktool installed."""
        await self._apktool("empty-framework-dir", "--force")
