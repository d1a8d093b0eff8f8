"""
Command flows for APKForge.

Wraps every command in a Prefect flow. Each flow owns the lifetime of its
ForgeContext: created when the flow starts, closed when it returns.
"""

from __future__ import annotations

from pathlib import Path

from prefect import flow

from ..core.config import get_config
from ..core.context import ForgeContext
from ..core.logging import get_logger
from ..models.project import CommandOutcome
from .commands import CommandHandler

logger = get_logger(__name__)


def _handler() -> CommandHandler:
    return CommandHandler.create(ForgeContext.create(get_config()))


@flow(name="apkforge-decode", description="Decode, decompile and analyze a package or split set", retries=0)
async def decode_flow(
    apk_path: Path,
    decode_args: list[str] | None = None,
    decompile: bool = False,
    decompile_args: list[str] | None = None,
    analyze: bool = False,
    split: bool | None = None,
    open_workspace_after: bool | None = None,
) -> CommandOutcome:
    handler = _handler()
    try:
        return await handler.decode(
            apk_path,
            decode_args or [],
            decompile,
            decompile_args or [],
            analyze,
            split=split,
            open_workspace_after=open_workspace_after,
        )
    finally:
        handler.context.close()


@flow(name="apkforge-rebuild", description="Rebuild and sign a decoded project", retries=0)
async def rebuild_flow(apktool_yml: Path, args: list[str] | None = None, install: bool = False) -> CommandOutcome:
    handler = _handler()
    try:
        if install:
            return await handler.rebuild_and_install(apktool_yml, args or [])
        return await handler.rebuild(apktool_yml, args or [])
    finally:
        handler.context.close()


@flow(name="apkforge-install", description="Install a package on the attached device", retries=0)
async def install_flow(apk_path: Path) -> CommandOutcome:
    handler = _handler()
    try:
        return await handler.install(apk_path)
    finally:
        handler.context.close()


@flow(name="apkforge-patch-https", description="Patch a package for HTTPS inspection", retries=0)
async def patch_https_flow(apk_path: Path) -> CommandOutcome:
    handler = _handler()
    try:
        return await handler.patch_https(apk_path)
    finally:
        handler.context.close()


@flow(name="apkforge-empty-framework", description="Empty apktool's framework directory", retries=0)
async def empty_framework_flow() -> CommandOutcome:
    handler = _handler()
    try:
        return await handler.empty_framework_dir()
    finally:
        handler.context.close()


@flow(name="apkforge-split-batch", description="Rebuild and/or install every split member", retries=0)
async def split_batch_flow(
    project_dir: Path,
    rebuild: bool = True,
    install: bool = False,
    args: list[str] | None = None,
) -> CommandOutcome:
    handler = _handler()
    try:
        if rebuild and install:
            return await handler.rebuild_and_install_all(project_dir, args or [])
        if rebuild:
            return await handler.rebuild_all(project_dir, args or [])
        return await handler.install_all(project_dir)
    finally:
        handler.context.close()
