"""Build orchestration module.

This module handles:
- Build configuration validation
- Cross-compiling the Rust crate with cargo-ndk
- Packaging with Gradle
- Release signing and 16 KiB alignment
- Publishing and cleaning artifacts
"""

from droidkit.builds.models import BuildConfig, BuildOutcome, SigningConfig

__all__ = ["BuildConfig", "BuildOutcome", "SigningConfig"]

# Submodules are imported lazily to keep CLI start-up fast
# Access via droidkit.builds.service, etc.
