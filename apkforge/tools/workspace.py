"""Opens a project directory in an editor or the system file handler."""

from __future__ import annotations

import shlex
from pathlib import Path

import typer

from ..core.logging import get_logger
from ..services.process import ProcessRunner
from .interfaces import WorkspaceOpener

logger = get_logger(__name__)


class EditorOpener(WorkspaceOpener):
    """Opens projects with ``editor_command`` when configured, else via ``typer.launch``."""

    def __init__(self, runner: ProcessRunner, editor_command: str | None = None) -> None:
        self.runner = runner
        self.editor_command = editor_command

    async def open(self, project_dir: Path) -> None:
        if self.editor_command:
            editor, *args = shlex.split(self.editor_command)
            await self.runner.invoke(editor, [*args, project_dir])
        else:
            typer.launch(str(project_dir))
        logger.info("Opened project", project_dir=str(project_dir))
