"""
APKForge: orchestration of Android package reverse-engineering tools.

Drives apktool, jadx, quark-engine, git, adb and apk-mitm to decode,
decompile, analyze, rebuild and install Android packages, including
split packages that ship as a base plus configuration splits.
"""

__version__ = "1.0.0"
__author__ = "APKForge Team"
