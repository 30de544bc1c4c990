"""Build runner for cargo-ndk and Gradle.

This module handles:
- Composing the cargo-ndk command for the configured architectures
- Cross-compiling the Rust crate into android/app/src/main/jniLibs
- Running the Gradle task selected by output format and build type
- Checking that Gradle produced the expected artifact
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING

from droidkit.errors import PackagingFailedError, ToolExecutionError, ToolTimeoutError
from droidkit.process import run_tool
from droidkit.types import BuildType

if TYPE_CHECKING:
    from droidkit.builds.models import BuildConfig
    from droidkit.config import Settings
    from droidkit.layout import ProjectLayout
    from droidkit.toolchain.environment import ToolchainEnvironment

logger = logging.getLogger(__name__)


def compose_cargo_ndk_command(
    config: BuildConfig,
    output_dir: Path,
    crate: str,
) -> list[str]:
    """Compose the cargo-ndk build command.

    Args:
        config: Build configuration.
        output_dir: jniLibs directory receiving per-ABI libraries.
        crate: Cargo package to build.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = ["cargo", "ndk"]
    for arch in config.architectures:
        cmd.extend(["-t", arch.value])
    cmd.extend(["-o", str(output_dir), "build", "-p", crate])
    if config.build_type is BuildType.RELEASE:
        cmd.append("--release")
    return cmd


def list_native_libraries(jni_libs_dir: Path) -> list[Path]:
    """Return the shared libraries under a jniLibs tree, sorted."""
    if not jni_libs_dir.is_dir():
        return []
    return sorted(jni_libs_dir.rglob("*.so"))


def cross_compile(
    config: BuildConfig,
    layout: ProjectLayout,
    toolchain: ToolchainEnvironment,
    settings: Settings,
    tool_stdout: IO[str] | None = None,
) -> list[Path]:
    """Build the Rust crate for every configured architecture.

    Re-running overwrites the libraries of the same architectures and
    leaves others untouched.

    Returns:
        Native libraries present after the build.

    Raises:
        ToolExecutionError: cargo-ndk failed.
    """
    cmd = compose_cargo_ndk_command(config, layout.jni_libs_dir, settings.rust_crate)
    logger.info(
        "Building Rust library for %s",
        ", ".join(a.value for a in config.architectures),
    )

    run_tool(
        cmd,
        cwd=layout.root,
        env_override=toolchain.subprocess_env(),
        timeout=settings.build_timeout,
        stdout=tool_stdout,
    )

    libraries = list_native_libraries(layout.jni_libs_dir)
    for lib in libraries:
        logger.info(
            "Built %s (%d bytes)",
            lib.relative_to(layout.jni_libs_dir),
            lib.stat().st_size,
        )
    return libraries


def compose_gradle_command(layout: ProjectLayout, task: str) -> list[str]:
    """Compose the Gradle wrapper invocation for a task."""
    return [str(layout.gradlew), task]


def package(
    config: BuildConfig,
    layout: ProjectLayout,
    toolchain: ToolchainEnvironment,
    settings: Settings,
    tool_stdout: IO[str] | None = None,
) -> Path:
    """Run the Gradle task for the configured format and build type.

    Returns:
        Path to the artifact in the Gradle build tree.

    Raises:
        PackagingFailedError: Gradle failed or the artifact is missing.
        ToolTimeoutError: Gradle exceeded the build timeout.
    """
    task = config.gradle_task
    expected = layout.gradle_output(config.output_format, config.build_type)
    logger.info("Building %s with gradle %s", config.output_format.value.upper(), task)

    try:
        run_tool(
            compose_gradle_command(layout, task),
            cwd=layout.android_dir,
            env_override=toolchain.subprocess_env(),
            timeout=settings.build_timeout,
            stdout=tool_stdout,
        )
    except ToolTimeoutError:
        raise
    except ToolExecutionError as e:
        raise PackagingFailedError(str(expected), task) from e

    if not expected.is_file():
        logger.error("%s not found at expected location: %s", task, expected)
        raise PackagingFailedError(str(expected), task)

    logger.info("%s built: %s", config.output_format.value.upper(), expected)
    return expected


__all__ = [
    "compose_cargo_ndk_command",
    "compose_gradle_command",
    "cross_compile",
    "list_native_libraries",
    "package",
]
