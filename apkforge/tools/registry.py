"""Descriptors of the tools APKForge downloads and manages itself."""

from __future__ import annotations

import os

from ..core.config import ToolsConfig
from ..models.tools import ArtifactKind, ToolDescriptor

APKTOOL = "apktool"
JADX = "jadx"
UBER_APK_SIGNER = "uber-apk-signer"


def default_descriptors(tools: ToolsConfig) -> list[ToolDescriptor]:
    """Build the descriptors of every downloadable tool from the configured versions."""
    jadx_executable = "bin/jadx.bat" if os.name == "nt" else "bin/jadx"
    return [
        ToolDescriptor(
            name=APKTOOL,
            version=tools.apktool_version,
            expected_version_constraint=f">={tools.apktool_version}",
            download_source="https://github.com/iBotPeaches/Apktool/releases/download/v{version}/apktool_{version}.jar",
            github_repo="iBotPeaches/Apktool",
            artifact_kind=ArtifactKind.JAR,
            file_name="apktool_{version}.jar",
        ),
        ToolDescriptor(
            name=JADX,
            version=tools.jadx_version,
            expected_version_constraint=f">={tools.jadx_version}",
            download_source="https://github.com/skylot/jadx/releases/download/v{version}/jadx-{version}.zip",
            github_repo="skylot/jadx",
            artifact_kind=ArtifactKind.ZIP,
            file_name="jadx-{version}",
            executable=jadx_executable,
        ),
        ToolDescriptor(
            name=UBER_APK_SIGNER,
            version=tools.uber_apk_signer_version,
            expected_version_constraint=f">={tools.uber_apk_signer_version}",
            download_source=(
                "https://github.com/patrickfav/uber-apk-signer/releases/download/"
                "v{version}/uber-apk-signer-{version}.jar"
            ),
            github_repo="patrickfav/uber-apk-signer",
            artifact_kind=ArtifactKind.JAR,
            file_name="uber-apk-signer-{version}.jar",
        ),
    ]


def by_name(descriptors: list[ToolDescriptor]) -> dict[str, ToolDescriptor]:
    return {descriptor.name: descriptor for descriptor in descriptors}
