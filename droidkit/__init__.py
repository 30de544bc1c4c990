"""droidkit - Build and device tooling for Rust Android apps.

This package orchestrates the external Android and Rust toolchains
(cargo-ndk, Gradle, apksigner, adb, emulator) to cross-compile, package,
sign, install, and debug a NativeActivity application.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
