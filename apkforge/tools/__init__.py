"""External tool adapters for APKForge."""

from .adb import Adb
from .apk_mitm import ApkMitm
from .apktool import Apktool, apk_name_from_apktool_yml
from .git import Git
from .interfaces import (
    Analyzer,
    Builder,
    Decoder,
    Decompiler,
    Installer,
    Patcher,
    VcsInitializer,
    WorkspaceOpener,
)
from .jadx import Jadx
from .quark import Quark
from .registry import default_descriptors
from .toolchain import Toolchain, build_toolchain
from .workspace import EditorOpener

__all__ = [
    "Adb",
    "ApkMitm",
    "Apktool",
    "apk_name_from_apktool_yml",
    "Git",
    "Analyzer",
    "Builder",
    "Decoder",
    "Decompiler",
    "Installer",
    "Patcher",
    "VcsInitializer",
    "WorkspaceOpener",
    "Jadx",
    "Quark",
    "default_descriptors",
    "Toolchain",
    "build_toolchain",
    "EditorOpener",
]
