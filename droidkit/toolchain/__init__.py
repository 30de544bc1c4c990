"""Toolchain discovery module.

This module handles:
- SDK/NDK resolution into an immutable ToolchainEnvironment
- rustc, cargo-ndk and Rust target checks
- Gradle project presence checks
"""

from droidkit.toolchain.environment import ToolchainEnvironment, resolve_toolchain
from droidkit.toolchain.prerequisites import PrerequisiteReport, check_prerequisites

__all__ = [
    "PrerequisiteReport",
    "ToolchainEnvironment",
    "check_prerequisites",
    "resolve_toolchain",
]
