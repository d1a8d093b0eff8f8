"""git adapter: initializes a project directory as a repository."""

from __future__ import annotations

from pathlib import Path

import aiofiles

from ..core.exceptions import ToolError
from ..core.logging import get_logger
from ..services.process import ProcessRunner
from .interfaces import VcsInitializer

logger = get_logger(__name__)

GITIGNORE = "/build\n/dist\n"


class Git(VcsInitializer):
    """Runs a user-installed ``git``."""

    def __init__(self, runner: ProcessRunner, executable: str = "git") -> None:
        self.runner = runner
        self.executable = executable

    async def init(self, project_dir: Path, message: str) -> None:
        logger.info("Initializing git repository", project_dir=str(project_dir))
        try:
            async with aiofiles.open(project_dir / ".gitignore", "w", encoding="utf-8") as f:
                await f.write(GITIGNORE)
        except OSError as e:
            raise ToolError(message=f"Could not write .gitignore in {project_dir}", tool_name="git", cause=e) from e
        await self.runner.invoke(self.executable, ["init"], working_dir=project_dir)
        await self.runner.invoke(self.executable, ["add", "-A"], working_dir=project_dir)
        await self.runner.invoke(self.executable, ["commit", "-q", "-m", message], working_dir=project_dir)
