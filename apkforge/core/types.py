"""
Core type definitions for APKForge.

Provides the enums shared by the pipeline, the split-package
coordinator and the command layer.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """A discrete step of the per-package pipeline, in execution order."""

    DECODE = "decode"
    DECOMPILE = "decompile"
    ANALYZE = "analyze"
    VCS_INIT = "vcs_init"
    OPEN = "open"


class UpdatePolicy(str, Enum):
    """How newer tool releases are treated."""

    ADVISORY = "advisory"
    STRICT = "strict"
