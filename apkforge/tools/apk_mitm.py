"""apk-mitm adapter: patches a package for HTTPS traffic inspection."""

from __future__ import annotations

from pathlib import Path

from ..core.exceptions import ValidationError
from ..core.logging import get_logger
from ..services.process import ProcessRunner
from .interfaces import Patcher

logger = get_logger(__name__)


def patched_path(apk_path: Path) -> Path:
    """apk-mitm writes ``<stem>-patched.apk`` next to its input."""
    return apk_path.with_name(f"{apk_path.stem}-patched{apk_path.suffix}")


class ApkMitm(Patcher):
    """Runs a user-installed ``apk-mitm``."""

    def __init__(self, runner: ProcessRunner, executable: str = "apk-mitm") -> None:
        self.runner = runner
        self.executable = executable

    async def apply_patches(self, apk_path: Path) -> Path:
        if not apk_path.is_file():
            raise ValidationError(message=f"Package not found: {apk_path}", field_name="apk_path")
        logger.info("Patching package for HTTPS inspection", apk=str(apk_path))
        await self.runner.invoke(self.executable, [apk_path], working_dir=apk_path.parent)
        return patched_path(apk_path)
