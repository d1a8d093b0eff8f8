"""Wires concrete tool adapters for a context."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.context import ForgeContext
from ..models.tools import ToolDescriptor
from ..services.process import ProcessRunner
from .adb import Adb
from .apk_mitm import ApkMitm
from .apktool import Apktool
from .git import Git
from .jadx import Jadx
from .quark import Quark
from .registry import APKTOOL, JADX, UBER_APK_SIGNER, by_name
from .workspace import EditorOpener


@dataclass
class Toolchain:
    """Every capability the orchestration core needs."""

    apktool: Apktool
    jadx: Jadx
    quark: Quark
    git: Git
    adb: Adb
    apk_mitm: ApkMitm
    opener: EditorOpener


def build_toolchain(
    context: ForgeContext,
    descriptors: list[ToolDescriptor],
    runner: ProcessRunner | None = None,
) -> Toolchain:
    """Create adapters that share the given descriptors.

    The descriptors are the same objects the lifecycle manager updates, so a tool
    installed after the toolchain was built is picked up on the next invocation.
    """
    runner = runner or ProcessRunner()
    tools = context.config.tools
    named = by_name(descriptors)
    return Toolchain(
        apktool=Apktool(runner, context, named[APKTOOL], named[UBER_APK_SIGNER]),
        jadx=Jadx(runner, context, named[JADX]),
        quark=Quark(runner, tools.quark_path),
        git=Git(runner, tools.git_path),
        adb=Adb(runner, tools.adb_path),
        apk_mitm=ApkMitm(runner, tools.apk_mitm_path),
        opener=EditorOpener(runner, context.config.project.editor_command),
    )
