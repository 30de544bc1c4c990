"""Artifact publishing and cleanup.

This module handles:
- Copying the Gradle output to the top-level artifact location
- Removing intermediate build directories before a clean build
- Removing every artifact and intermediate for the ``clean`` command

Cleanup is idempotent: removing paths that do not exist is a no-op.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from droidkit.types import ALL_ARCHITECTURES, BuildType, OutputFormat

if TYPE_CHECKING:
    from droidkit.layout import ProjectLayout
    from droidkit.types import Architecture

logger = logging.getLogger(__name__)


def publish_artifact(source: Path, destination: Path) -> Path:
    """Copy a Gradle output to its top-level location.

    Args:
        source: Artifact inside the Gradle build tree.
        destination: Top-level artifact path.

    Returns:
        The destination path.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    logger.info("Copied to: %s", destination)
    return destination


def remove_paths(paths: Iterable[Path]) -> list[Path]:
    """Remove files and directory trees.

    Returns:
        Paths that existed and were removed.
    """
    removed: list[Path] = []
    for path in paths:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            continue
        logger.debug("Removed %s", path)
        removed.append(path)
    return removed


def top_level_artifacts(layout: ProjectLayout, app_name: str) -> list[Path]:
    """Every raw and signed artifact path the build can produce."""
    return [
        layout.artifact_path(app_name, build_type, output_format, signed=signed)
        for build_type in BuildType
        for output_format in OutputFormat
        for signed in (False, True)
    ]


def clean_build_outputs(
    layout: ProjectLayout,
    architectures: Iterable[Architecture],
) -> list[Path]:
    """Remove intermediates ahead of a clean build.

    Removes the Cargo caches of the given architectures plus the Gradle
    build tree, jniLibs and the project Gradle cache.

    Returns:
        Paths that were removed.
    """
    logger.info("Cleaning previous build")
    targets = [layout.rust_target_dir(arch) for arch in architectures]
    removed = remove_paths([*targets, *layout.intermediate_dirs()])
    logger.info("Clean complete")
    return removed


def clean_all(layout: ProjectLayout, app_name: str) -> list[Path]:
    """Remove all artifacts and intermediates.

    Covers debug and release APK/AAB in raw and signed variants, the Gradle
    build tree, jniLibs, the Gradle cache and the Cargo caches of every
    Android architecture.

    Returns:
        Paths that were removed.
    """
    paths = [
        *top_level_artifacts(layout, app_name),
        *layout.intermediate_dirs(),
        *(layout.rust_target_dir(arch) for arch in ALL_ARCHITECTURES),
    ]
    return remove_paths(paths)


__all__ = [
    "clean_all",
    "clean_build_outputs",
    "publish_artifact",
    "remove_paths",
    "top_level_artifacts",
]
