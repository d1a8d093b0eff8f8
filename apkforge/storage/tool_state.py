"""
Installed tool state storage.

Persists which version of each downloadable tool is installed in the data
directory, so presence checks survive process restarts.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..core.logging import get_logger
from ..models.tools import ToolDescriptor

logger = get_logger(__name__)

STATE_FILE = "tools.json"


class ToolStateStore:
    """JSON file in the data directory mapping tool names to installed versions."""

    def __init__(self, data_dir: Path) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory holding the downloaded tools
        """
        self.data_dir = data_dir
        self.path = data_dir / STATE_FILE

    async def load(self) -> dict[str, dict[str, Any]]:
        """Load the raw state, an empty mapping when nothing was recorded yet."""
        if not await aiofiles.os.path.exists(self.path):
            return {}
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            content = await f.read()
        try:
            state = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Tool state file is corrupt, ignoring it", path=str(self.path))
            return {}
        return state if isinstance(state, dict) else {}

    async def apply(self, descriptors: list[ToolDescriptor]) -> None:
        """Fill ``installed_version`` on each descriptor from the stored state."""
        state = await self.load()
        for descriptor in descriptors:
            entry = state.get(descriptor.name) or {}
            descriptor.installed_version = entry.get("version")

    async def save(self, descriptors: list[ToolDescriptor]) -> None:
        """Record the installed version of every descriptor that has one."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        state = await self.load()
        for descriptor in descriptors:
            if descriptor.installed_version:
                state[descriptor.name] = {
                    "version": descriptor.installed_version,
                    "path": str(descriptor.install_path(self.data_dir)),
                    "installed_at": datetime.now(timezone.utc).isoformat(),
                }
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(state, indent=2, sort_keys=True))
