"""Orchestration module for APKForge commands."""

from .commands import CommandHandler
from .flows import (
    decode_flow,
    empty_framework_flow,
    install_flow,
    patch_https_flow,
    rebuild_flow,
    split_batch_flow,
)

__all__ = [
    "CommandHandler",
    "decode_flow",
    "empty_framework_flow",
    "install_flow",
    "patch_https_flow",
    "rebuild_flow",
    "split_batch_flow",
]
