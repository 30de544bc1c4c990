"""Shared type definitions for droidkit.

This module contains enums and small value types shared across
subpackages to avoid circular imports.
"""

from enum import Enum


class BuildType(str, Enum):
    """Gradle/Cargo build profile."""

    DEBUG = "debug"
    RELEASE = "release"


class OutputFormat(str, Enum):
    """Kind of installable package produced by Gradle."""

    APK = "apk"
    AAB = "aab"


class Architecture(str, Enum):
    """Android ABI targeted by the native library."""

    ARM64_V8A = "arm64-v8a"
    ARMEABI_V7A = "armeabi-v7a"
    X86_64 = "x86_64"
    X86 = "x86"

    @property
    def rust_target(self) -> str:
        """Rust target triple for this ABI."""
        return RUST_TARGETS[self]


RUST_TARGETS: dict[Architecture, str] = {
    Architecture.ARM64_V8A: "aarch64-linux-android",
    Architecture.ARMEABI_V7A: "armv7-linux-androideabi",
    Architecture.X86_64: "x86_64-linux-android",
    Architecture.X86: "i686-linux-android",
}

# Pre-built Skia binaries exist for these; the other two build Skia from source.
DEFAULT_ARCHITECTURES: tuple[Architecture, ...] = (
    Architecture.ARM64_V8A,
    Architecture.X86_64,
)
ALL_ARCHITECTURES: tuple[Architecture, ...] = (
    Architecture.ARM64_V8A,
    Architecture.ARMEABI_V7A,
    Architecture.X86_64,
    Architecture.X86,
)


class AlignmentOutcome(str, Enum):
    """What happened to the 16 KiB alignment step of APK signing."""

    ALIGNED = "aligned"
    SKIPPED = "skipped"
    NOT_APPLICABLE = "not-applicable"


class Command(str, Enum):
    """Device orchestrator sub-operations.

    Aliases (clean-device, debug, emu) resolve to their canonical member
    through ``Command.parse``.
    """

    BUILD = "build"
    INSTALL = "install"
    RUN = "run"
    LAUNCH = "launch"
    UNINSTALL = "uninstall"
    LOG = "log"
    LOGCAT = "logcat"
    DEVICES = "devices"
    EMULATOR = "emulator"
    CLEAN = "clean"
    HELP = "help"

    @classmethod
    def parse(cls, name: str) -> "Command":
        """Resolve a command name or alias.

        Raises:
            ValueError: If the name is not a known command.
        """
        return cls(COMMAND_ALIASES.get(name, name))


COMMAND_ALIASES: dict[str, str] = {
    "clean-device": "uninstall",
    "debug": "log",
    "emu": "emulator",
    "-h": "help",
    "--help": "help",
}


__all__ = [
    "ALL_ARCHITECTURES",
    "COMMAND_ALIASES",
    "DEFAULT_ARCHITECTURES",
    "RUST_TARGETS",
    "AlignmentOutcome",
    "Architecture",
    "BuildType",
    "Command",
    "OutputFormat",
]
