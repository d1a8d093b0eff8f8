"""
Tool Lifecycle Service.

Makes sure every downloadable tool is present at an acceptable version before a
pipeline runs, downloading or updating it when needed, and checks GitHub for newer
releases in an advisory way.
"""

from __future__ import annotations

import io
import os
import shutil
import stat
import sys
import zipfile
from pathlib import Path

import aiofiles
import httpx

from ..core.context import ForgeContext
from ..core.exceptions import ToolUnavailableError
from ..core.logging import get_logger
from ..core.types import UpdatePolicy
from ..models.tools import ArtifactKind, ToolDescriptor, ToolUpdate
from ..storage import ToolStateStore
from ..tools.registry import default_descriptors

logger = get_logger(__name__)

SUPPORTED_PLATFORMS = ("linux", "darwin", "win32")


class ToolLifecycleManager:
    """Presence checks, installs and update checks for the downloadable tools.

    This manager:
    1. Reads the installed tool state from the data directory
    2. Downloads any tool that is missing or below its version constraint
    3. Re-verifies every tool after installing
    4. Reports newer upstream releases without blocking anything
    """

    def __init__(
        self,
        context: ForgeContext,
        descriptors: list[ToolDescriptor] | None = None,
        store: ToolStateStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the lifecycle manager.

        Args:
            context: Process context holding config and the data directory
            descriptors: Tools to manage, defaults to the configured registry
            store: Installed state storage, defaults to the data directory's
            transport: Optional HTTP transport, used to fake downloads in tests
        """
        self.context = context
        self.config = context.config.tools
        self.descriptors = descriptors if descriptors is not None else default_descriptors(self.config)
        self.store = store or ToolStateStore(context.data_dir)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=self.config.download_timeout_seconds,
            follow_redirects=True,
        )

    def is_ready(self, descriptor: ToolDescriptor) -> bool:
        """A tool is ready when its recorded version satisfies the constraint and its files exist."""
        return descriptor.satisfies(descriptor.installed_version) and descriptor.entry_point(
            self.context.data_dir
        ).exists()

    async def refresh(self) -> None:
        """Reload installed versions from the state file."""
        await self.store.apply(self.descriptors)

    async def ensure_tools_ready(self) -> list[ToolDescriptor]:
        """Make every tool ready, installing what is missing or outdated.

        Returns:
            The ready descriptors

        Raises:
            ToolUnavailableError: If any tool cannot be made ready. Nothing is retried.
        """
        if not sys.platform.startswith(SUPPORTED_PLATFORMS):
            raise ToolUnavailableError(
                message=f"Unsupported platform: {sys.platform}",
                tool_name="*",
            )

        await self.refresh()
        missing = [d for d in self.descriptors if not self.is_ready(d)]

        if missing:
            logger.info("Installing tools", tools=[d.name for d in missing])
            try:
                async with self._client() as client:
                    for descriptor in missing:
                        await self._install(client, descriptor, descriptor.version)
            finally:
                # record whatever did install before a failure
                await self.store.save(self.descriptors)

        if self.config.update_policy == UpdatePolicy.STRICT:
            await self.apply_updates(await self.check_for_updates())

        for descriptor in self.descriptors:
            if not self.is_ready(descriptor):
                raise ToolUnavailableError(
                    message="Tool is still not usable after installation",
                    tool_name=descriptor.name,
                    install_hint=descriptor.download_url(),
                )

        logger.debug(
            "Tools ready",
            tools={d.name: d.installed_version for d in self.descriptors},
        )
        return self.descriptors

    async def apply_updates(self, updates: list[ToolUpdate]) -> None:
        """Install the releases named by update notices.

        Raises:
            ToolUnavailableError: If any release cannot be installed.
        """
        if not updates:
            return
        named = {d.name: d for d in self.descriptors}
        try:
            async with self._client() as client:
                for update in updates:
                    await self._install(client, named[update.name], update.latest_version)
        finally:
            await self.store.save(self.descriptors)

    async def _install(self, client: httpx.AsyncClient, descriptor: ToolDescriptor, version: str) -> None:
        """Download one tool release into the data directory.

        The release is written next to its final location first and moved into
        place only once complete.
        """
        url = descriptor.download_url(version)
        target = descriptor.install_path(self.context.data_dir, version)
        staging = target.with_name(target.name + ".part")
        logger.info("Downloading tool", tool=descriptor.name, version=version, url=url)

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Tool download failed", tool=descriptor.name, error=str(e))
            raise ToolUnavailableError(
                message=f"Download failed: {e}",
                tool_name=descriptor.name,
                install_hint=url,
                cause=e,
            ) from e

        try:
            self.context.data_dir.mkdir(parents=True, exist_ok=True)
            _remove(staging)
            if descriptor.artifact_kind == ArtifactKind.ZIP:
                with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
                    zf.extractall(staging)
            else:
                async with aiofiles.open(staging, "wb") as f:
                    await f.write(response.content)
            _remove(target)
            staging.rename(target)
            if descriptor.executable:
                _make_executable(target / descriptor.executable)
        except (OSError, zipfile.BadZipFile) as e:
            _remove(staging)
            logger.error("Tool install failed", tool=descriptor.name, error=str(e))
            raise ToolUnavailableError(
                message=f"Install failed: {e}",
                tool_name=descriptor.name,
                install_hint=url,
                cause=e,
            ) from e

        descriptor.installed_version = version
        logger.info("Tool installed", tool=descriptor.name, version=version, path=str(target))

    async def check_for_updates(self) -> list[ToolUpdate]:
        """Look up the latest release of every installed tool.

        Advisory only: failures are logged and never raised.

        Returns:
            A notice per tool with a newer upstream release
        """
        await self.refresh()
        updates: list[ToolUpdate] = []

        try:
            async with self._client() as client:
                for descriptor in self.descriptors:
                    if not descriptor.installed_version:
                        continue
                    latest = await self._latest_release(client, descriptor)
                    if latest and descriptor.is_newer(latest):
                        logger.info(
                            "Tool update available",
                            tool=descriptor.name,
                            installed=descriptor.installed_version,
                            latest=latest,
                        )
                        updates.append(
                            ToolUpdate(
                                name=descriptor.name,
                                installed_version=descriptor.installed_version,
                                latest_version=latest,
                            )
                        )
        except httpx.HTTPError as e:
            logger.warning("Update check failed", error=str(e))
            return []

        return updates

    async def _latest_release(self, client: httpx.AsyncClient, descriptor: ToolDescriptor) -> str | None:
        url = f"{self.config.github_api_url}/repos/{descriptor.github_repo}/releases/latest"
        response = await client.get(url, headers={"Accept": "application/vnd.github+json"})
        response.raise_for_status()
        try:
            tag = response.json()["tag_name"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Unexpected release payload", tool=descriptor.name)
            return None
        return str(tag).lstrip("v")


def _remove(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()


def _make_executable(path: Path) -> None:
    if os.name != "nt" and path.exists():
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
