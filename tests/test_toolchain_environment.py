"""Tests for toolchain/environment.py - SDK/NDK resolution."""

from pathlib import Path

import pytest

from droidkit.config import Settings
from droidkit.errors import MissingToolchainError
from droidkit.toolchain.environment import (
    ToolchainEnvironment,
    newest_subdir,
    resolve_toolchain,
    version_sort_key,
)


def _sdk(root: Path, ndks=("25.2.9519653", "26.1.10909125"), platforms=(33, 34)):
    for version in ndks:
        (root / "ndk" / version).mkdir(parents=True)
    for level in platforms:
        (root / "platforms" / f"android-{level}").mkdir(parents=True)
    (root / "build-tools" / "34.0.0").mkdir(parents=True)
    return root


class TestVersionSorting:
    """Tests for version_sort_key and newest_subdir."""

    def test_numeric_ordering(self):
        """Numeric chunks should compare as integers."""
        assert version_sort_key("26.10.0") > version_sort_key("26.9.0")
        assert version_sort_key("android-34") > version_sort_key("android-9")

    def test_newest_subdir(self, tmp_path):
        for name in ("android-9", "android-34", "android-28"):
            (tmp_path / name).mkdir()
        assert newest_subdir(tmp_path, "android-*") == tmp_path / "android-34"

    def test_missing_parent(self, tmp_path):
        assert newest_subdir(tmp_path / "absent") is None


class TestResolveToolchain:
    """Tests for resolve_toolchain function."""

    def test_from_android_home(self, tmp_path):
        """The newest NDK, platform and build-tools should be picked."""
        sdk = _sdk(tmp_path / "sdk")
        env = resolve_toolchain(Settings(android_home=sdk))

        assert env.sdk_root == sdk
        assert env.ndk_root == sdk / "ndk" / "26.1.10909125"
        assert env.platform_dir == sdk / "platforms" / "android-34"
        assert env.build_tools_dir == sdk / "build-tools" / "34.0.0"

    def test_explicit_ndk_wins(self, tmp_path):
        sdk = _sdk(tmp_path / "sdk")
        env = resolve_toolchain(
            Settings(android_home=sdk, android_ndk_home=tmp_path / "ndk-custom")
        )
        assert env.ndk_root == tmp_path / "ndk-custom"

    def test_home_fallback(self, tmp_path):
        """Without ANDROID_HOME the SDK under ~/Android/Sdk should be used."""
        sdk = _sdk(tmp_path / "home" / "Android" / "Sdk")
        env = resolve_toolchain(Settings(), home=tmp_path / "home")
        assert env.sdk_root == sdk

    def test_missing_sdk(self, tmp_path):
        with pytest.raises(MissingToolchainError, match="Android SDK"):
            resolve_toolchain(Settings(), home=tmp_path / "nohome")

    def test_missing_ndk(self, tmp_path):
        sdk = _sdk(tmp_path / "sdk", ndks=())
        with pytest.raises(MissingToolchainError, match="Android NDK") as exc_info:
            resolve_toolchain(Settings(android_home=sdk))
        assert "ANDROID_NDK_HOME" in exc_info.value.hint

    def test_no_platform_is_tolerated(self, tmp_path):
        """A missing platform directory should not fail resolution."""
        sdk = _sdk(tmp_path / "sdk", platforms=())
        env = resolve_toolchain(Settings(android_home=sdk))
        assert env.platform_dir is None
        assert "ANDROID_JAR" not in env.subprocess_env()


class TestSubprocessEnv:
    """Tests for ToolchainEnvironment.subprocess_env."""

    def test_variables(self):
        env = ToolchainEnvironment(
            sdk_root=Path("/sdk"),
            ndk_root=Path("/sdk/ndk/26"),
            platform_dir=Path("/sdk/platforms/android-34"),
        ).subprocess_env()

        assert env["ANDROID_HOME"] == "/sdk"
        assert env["ANDROID_NDK_HOME"] == "/sdk/ndk/26"
        assert env["ANDROID_NDK"] == "/sdk/ndk/26"
        assert env["ANDROID_PLATFORM"] == "/sdk/platforms/android-34"
        assert env["ANDROID_JAR"] == "/sdk/platforms/android-34/android.jar"

    def test_build_tool(self, tmp_path):
        tools = tmp_path / "build-tools" / "34.0.0"
        tools.mkdir(parents=True)
        (tools / "zipalign").write_text("")
        env = ToolchainEnvironment(
            sdk_root=tmp_path, ndk_root=tmp_path, build_tools_dir=tools
        )
        assert env.build_tool("zipalign") == tools / "zipalign"
        assert env.build_tool("apksigner") is None
