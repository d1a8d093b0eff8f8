"""
Process-wide context for APKForge.

One ForgeContext is created when the host starts and closed when it exits. It is
passed explicitly into every orchestration entry point so the core never reaches
into module-level state for its data directory or settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import Config, get_config
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class ForgeContext:
    """Shared state for a running host."""

    config: Config
    reserved_dirs: set[Path] = field(default_factory=set)
    closed: bool = False

    @classmethod
    def create(cls, config: Config | None = None) -> ForgeContext:
        """Create the context and make sure the data directory exists."""
        config = config or get_config()
        config.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Context created", data_dir=str(config.data_dir))
        return cls(config=config)

    @property
    def data_dir(self) -> Path:
        return self.config.data_dir

    @property
    def interactive(self) -> bool:
        """Whether interactive side effects such as opening a workspace are allowed."""
        return not self.config.non_interactive

    def is_reserved(self, path: Path) -> bool:
        return path.resolve() in self.reserved_dirs

    def reserve(self, path: Path) -> None:
        """Claim a project directory for an in-flight run."""
        self.reserved_dirs.add(path.resolve())

    def close(self) -> None:
        """Tear the context down at process exit."""
        if self.closed:
            return
        self.reserved_dirs.clear()
        self.closed = True
        logger.debug("Context closed")
