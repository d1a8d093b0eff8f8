"""adb adapter: installs packages on the attached device."""

from __future__ import annotations

from pathlib import Path

from ..core.logging import get_logger
from ..services.process import ProcessRunner
from .interfaces import Installer

logger = get_logger(__name__)


class Adb(Installer):
    """Runs a user-installed ``adb``."""

    def __init__(self, runner: ProcessRunner, executable: str = "adb") -> None:
        self.runner = runner
        self.executable = executable

    async def install(self, apk_path: Path) -> None:
        logger.info("Installing package", apk=str(apk_path))
        await self.runner.invoke(self.executable, ["install", "-r", apk_path])
        logger.info("Package installed", apk=str(apk_path))
