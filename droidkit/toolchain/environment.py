"""Android SDK/NDK environment resolution.

This module handles:
- Locating the SDK root (ANDROID_HOME or ~/Android/Sdk)
- Locating the NDK root (ANDROID_NDK_HOME or newest <sdk>/ndk/<version>)
- Picking the newest platform and build-tools directories
- Rendering the environment variables cargo-ndk and Gradle expect

The result is an immutable ToolchainEnvironment resolved once per
invocation and passed explicitly to every step that needs it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from droidkit.errors import MissingToolchainError

if TYPE_CHECKING:
    from droidkit.config import Settings

logger = logging.getLogger(__name__)

_VERSION_CHUNK = re.compile(r"(\d+)")


def version_sort_key(name: str) -> tuple[object, ...]:
    """Natural sort key so that ``26.10.0`` sorts after ``26.9.0``.

    Args:
        name: Directory name such as ``26.1.10909125`` or ``android-34``.

    Returns:
        Tuple comparable across names.
    """
    return tuple(
        (0, int(chunk)) if chunk.isdigit() else (1, chunk)
        for chunk in _VERSION_CHUNK.split(name)
        if chunk
    )


def newest_subdir(parent: Path, pattern: str = "*") -> Path | None:
    """Return the highest-versioned directory in parent matching pattern.

    Args:
        parent: Directory to search (need not exist).
        pattern: Glob pattern for candidate names.

    Returns:
        Path of the newest directory, or None when there is none.
    """
    if not parent.is_dir():
        return None
    candidates = [p for p in parent.glob(pattern) if p.is_dir()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: version_sort_key(p.name))


@dataclass(frozen=True)
class ToolchainEnvironment:
    """Resolved Android toolchain locations.

    Attributes:
        sdk_root: Android SDK root.
        ndk_root: Android NDK root.
        platform_dir: Newest platforms/android-* directory, if any.
        build_tools_dir: Newest build-tools/<version> directory, if any.
    """

    sdk_root: Path
    ndk_root: Path
    platform_dir: Path | None = None
    build_tools_dir: Path | None = None

    @property
    def android_jar(self) -> Path | None:
        if self.platform_dir is None:
            return None
        return self.platform_dir / "android.jar"

    def build_tool(self, name: str) -> Path | None:
        """Return an executable from build-tools if present."""
        if self.build_tools_dir is None:
            return None
        candidate = self.build_tools_dir / name
        return candidate if candidate.is_file() else None

    def subprocess_env(self) -> dict[str, str]:
        """Environment overrides for cargo-ndk and Gradle invocations."""
        env = {
            "ANDROID_HOME": str(self.sdk_root),
            "ANDROID_SDK_ROOT": str(self.sdk_root),
            "ANDROID_NDK_HOME": str(self.ndk_root),
            "ANDROID_NDK": str(self.ndk_root),
        }
        if self.platform_dir is not None:
            env["ANDROID_PLATFORM"] = str(self.platform_dir)
            env["ANDROID_JAR"] = str(self.android_jar)
        return env


def resolve_sdk_root(settings: Settings, home: Path | None = None) -> Path:
    """Locate the Android SDK.

    Raises:
        MissingToolchainError: Neither ANDROID_HOME nor ~/Android/Sdk exist.
    """
    if settings.android_home is not None:
        return settings.android_home

    fallback = (home or Path.home()) / "Android" / "Sdk"
    if fallback.is_dir():
        return fallback

    raise MissingToolchainError(
        "Android SDK", hint="Set ANDROID_HOME or install the SDK to ~/Android/Sdk"
    )


def resolve_ndk_root(settings: Settings, sdk_root: Path) -> Path:
    """Locate the Android NDK.

    Raises:
        MissingToolchainError: ANDROID_NDK_HOME is unset and no NDK is
            installed under the SDK.
    """
    if settings.android_ndk_home is not None:
        return settings.android_ndk_home

    ndk_dir = newest_subdir(sdk_root / "ndk")
    if ndk_dir is not None:
        return ndk_dir

    raise MissingToolchainError(
        "Android NDK",
        hint="Set ANDROID_NDK_HOME or install an NDK with the SDK manager",
    )


def resolve_toolchain(
    settings: Settings, home: Path | None = None
) -> ToolchainEnvironment:
    """Resolve the toolchain environment once for an invocation.

    Args:
        settings: Effective settings.
        home: Home directory override (for the ~/Android/Sdk fallback).

    Returns:
        Immutable ToolchainEnvironment.

    Raises:
        MissingToolchainError: SDK or NDK cannot be located.
    """
    sdk_root = resolve_sdk_root(settings, home=home)
    logger.info("Android SDK: %s", sdk_root)

    ndk_root = resolve_ndk_root(settings, sdk_root)
    logger.info("Android NDK: %s", ndk_root)

    platform_dir = newest_subdir(sdk_root / "platforms", "android-*")
    if platform_dir is not None:
        logger.info("Using Android platform: %s", platform_dir)

    build_tools_dir = newest_subdir(sdk_root / "build-tools")
    if build_tools_dir is not None:
        logger.debug("Using build-tools: %s", build_tools_dir)

    return ToolchainEnvironment(
        sdk_root=sdk_root,
        ndk_root=ndk_root,
        platform_dir=platform_dir,
        build_tools_dir=build_tools_dir,
    )


__all__ = [
    "ToolchainEnvironment",
    "newest_subdir",
    "resolve_ndk_root",
    "resolve_sdk_root",
    "resolve_toolchain",
    "version_sort_key",
]
