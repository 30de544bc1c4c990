"""Prerequisite checks for the build orchestrator.

This module handles:
- Verifying rustc is installed
- Installing cargo-ndk when missing
- Installing missing Rust Android targets (one attempt each)
- Verifying the Gradle project skeleton exists
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING

from droidkit.errors import (
    MissingAndroidProjectError,
    MissingRustTargetError,
    MissingToolchainError,
    ToolExecutionError,
)
from droidkit.process import run_tool
from droidkit.toolchain.environment import ToolchainEnvironment, resolve_toolchain

if TYPE_CHECKING:
    from droidkit.config import Settings
    from droidkit.layout import ProjectLayout
    from droidkit.types import Architecture

logger = logging.getLogger(__name__)

# Timeout for quick queries (rustc --version, rustup target list)
QUERY_TIMEOUT = 60


@dataclass
class PrerequisiteReport:
    """Outcome of the prerequisite checks.

    Attributes:
        toolchain: Resolved SDK/NDK environment.
        rust_version: Version reported by rustc.
        installed_targets: Rust targets that had to be installed.
        installed_cargo_ndk: Whether cargo-ndk had to be installed.
    """

    toolchain: ToolchainEnvironment
    rust_version: str
    installed_targets: list[str] = field(default_factory=list)
    installed_cargo_ndk: bool = False


def check_rust() -> str:
    """Return the installed rustc version.

    Raises:
        MissingToolchainError: rustc is not on PATH.
    """
    if shutil.which("rustc") is None:
        raise MissingToolchainError("rustc", hint="Install Rust from https://rustup.rs")

    result = run_tool(["rustc", "--version"], capture=True, timeout=QUERY_TIMEOUT)
    # "rustc 1.79.0 (129f3b996 2024-06-10)"
    parts = result.stdout.split()
    return parts[1] if len(parts) > 1 else result.stdout.strip()


def ensure_cargo_ndk(
    timeout: float | None = None,
    tool_stdout: IO[str] | None = None,
) -> bool:
    """Make sure cargo-ndk is available, installing it if needed.

    Returns:
        True if cargo-ndk was installed by this call.

    Raises:
        MissingToolchainError: cargo-ndk is missing and could not be installed.
    """
    if shutil.which("cargo-ndk") is not None:
        return False

    logger.warning("cargo-ndk not found, installing it with cargo")
    try:
        run_tool(
            ["cargo", "install", "cargo-ndk"], timeout=timeout, stdout=tool_stdout
        )
    except ToolExecutionError as e:
        raise MissingToolchainError(
            "cargo-ndk", hint="Install it with: cargo install cargo-ndk"
        ) from e
    return True


def installed_rust_targets() -> set[str]:
    """Return the Rust targets installed through rustup."""
    result = run_tool(
        ["rustup", "target", "list", "--installed"],
        capture=True,
        timeout=QUERY_TIMEOUT,
    )
    return {line.strip() for line in result.stdout.splitlines() if line.strip()}


def ensure_rust_targets(
    architectures: Iterable[Architecture],
    timeout: float | None = None,
    tool_stdout: IO[str] | None = None,
) -> list[str]:
    """Install any missing Rust target for the given architectures.

    A missing target is remediated once with ``rustup target add``; if that
    fails the target is reported as missing.

    Returns:
        Targets installed by this call.

    Raises:
        MissingRustTargetError: A target could not be installed.
    """
    installed = installed_rust_targets()
    added: list[str] = []

    for arch in architectures:
        target = arch.rust_target
        if target in installed:
            logger.info("Rust target: %s", target)
            continue

        logger.warning("Installing Rust target: %s", target)
        try:
            run_tool(
                ["rustup", "target", "add", target],
                timeout=timeout,
                stdout=tool_stdout,
            )
        except ToolExecutionError as e:
            raise MissingRustTargetError(target) from e
        installed.add(target)
        added.append(target)

    return added


def check_android_project(layout: ProjectLayout) -> None:
    """Verify the Gradle wrapper exists.

    Raises:
        MissingAndroidProjectError: android/gradlew is absent.
    """
    if not layout.gradlew.is_file():
        raise MissingAndroidProjectError(str(layout.android_dir))
    logger.info("Android project found: %s", layout.android_dir)


def check_prerequisites(
    architectures: Iterable[Architecture],
    settings: Settings,
    layout: ProjectLayout,
    tool_stdout: IO[str] | None = None,
) -> PrerequisiteReport:
    """Run every build prerequisite check in order.

    Args:
        architectures: Architectures the build targets.
        settings: Effective settings.
        layout: Project layout.
        tool_stdout: Destination for installer output (default: inherit).

    Returns:
        PrerequisiteReport including the resolved toolchain.

    Raises:
        MissingToolchainError: rustc, cargo-ndk, SDK or NDK is missing.
        MissingRustTargetError: A Rust target could not be installed.
        MissingAndroidProjectError: The Gradle project is absent.
    """
    rust_version = check_rust()
    logger.info("Rust %s", rust_version)

    installed_cargo_ndk = ensure_cargo_ndk(
        timeout=settings.build_timeout, tool_stdout=tool_stdout
    )
    logger.info("cargo-ndk installed")

    toolchain = resolve_toolchain(settings)

    installed_targets = ensure_rust_targets(
        architectures, timeout=settings.build_timeout, tool_stdout=tool_stdout
    )

    check_android_project(layout)

    return PrerequisiteReport(
        toolchain=toolchain,
        rust_version=rust_version,
        installed_targets=installed_targets,
        installed_cargo_ndk=installed_cargo_ndk,
    )


__all__ = [
    "PrerequisiteReport",
    "check_android_project",
    "check_prerequisites",
    "check_rust",
    "ensure_cargo_ndk",
    "ensure_rust_targets",
    "installed_rust_targets",
]
