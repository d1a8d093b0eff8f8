"""quark-engine adapter: static analysis report for a package, and reading it back."""

from __future__ import annotations

import shutil
from pathlib import Path

import aiofiles
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError
from ..core.logging import get_logger
from ..models.report import QuarkReport
from ..services.process import ProcessRunner
from .interfaces import Analyzer

logger = get_logger(__name__)

QUARK_REPORT = "quarkReport.json"


class Quark(Analyzer):
    """Runs a user-installed ``quark`` executable."""

    install_hint = "pip install quark-engine (https://github.com/quark-engine/quark-engine)"

    def __init__(self, runner: ProcessRunner, executable: str = "quark") -> None:
        self.runner = runner
        self.executable = executable

    def is_installed(self) -> bool:
        found = shutil.which(self.executable)
        logger.debug("Checking for quark", found=bool(found), path=found)
        return found is not None

    async def analyze(self, apk_path: Path, project_dir: Path) -> None:
        report = project_dir / QUARK_REPORT
        logger.info("Running quark analysis", apk=str(apk_path), report=str(report))
        await self.runner.invoke(self.executable, ["-a", apk_path, "-s", "-o", report])


async def read_report(path: Path) -> QuarkReport:
    """Load a quark summary report.

    Args:
        path: The report file, or a project directory holding ``quarkReport.json``

    Raises:
        ValidationError: If there is no report or it cannot be parsed.
    """
    if path.is_dir():
        path = path / QUARK_REPORT
    if not path.is_file():
        raise ValidationError(message=f"No quark report at {path}", field_name="report")

    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        content = await f.read()
    try:
        return QuarkReport.model_validate_json(content)
    except PydanticValidationError as e:
        raise ValidationError(message=f"Malformed quark report {path}", field_name="report", cause=e) from e
