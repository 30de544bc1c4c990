"""Tests for toolchain/prerequisites.py.

Tool invocations are mocked; no Rust or Android toolchain is required.
"""

from unittest.mock import patch

import pytest

from droidkit.errors import (
    MissingAndroidProjectError,
    MissingRustTargetError,
    MissingToolchainError,
    ToolExecutionError,
)
from droidkit.layout import ProjectLayout
from droidkit.process import ToolResult
from droidkit.toolchain.prerequisites import (
    check_android_project,
    check_prerequisites,
    check_rust,
    ensure_cargo_ndk,
    ensure_rust_targets,
)
from droidkit.types import Architecture

MODULE = "droidkit.toolchain.prerequisites"


def _result(stdout: str = "") -> ToolResult:
    return ToolResult(command="", exit_code=0, stdout=stdout, stderr="", duration=0.0)


class TestCheckRust:
    """Tests for check_rust function."""

    def test_missing_rustc(self):
        with patch(f"{MODULE}.shutil.which", return_value=None):
            with pytest.raises(MissingToolchainError) as exc_info:
                check_rust()
        assert "rustup.rs" in exc_info.value.hint

    def test_version(self):
        with (
            patch(f"{MODULE}.shutil.which", return_value="/usr/bin/rustc"),
            patch(
                f"{MODULE}.run_tool",
                return_value=_result("rustc 1.79.0 (129f3b996 2024-06-10)\n"),
            ),
        ):
            assert check_rust() == "1.79.0"


class TestEnsureCargoNdk:
    """Tests for ensure_cargo_ndk function."""

    def test_already_installed(self):
        with (
            patch(f"{MODULE}.shutil.which", return_value="/bin/cargo-ndk"),
            patch(f"{MODULE}.run_tool") as run,
        ):
            assert ensure_cargo_ndk() is False
        run.assert_not_called()

    def test_installs_when_missing(self):
        with (
            patch(f"{MODULE}.shutil.which", return_value=None),
            patch(f"{MODULE}.run_tool", return_value=_result()) as run,
        ):
            assert ensure_cargo_ndk(timeout=30) is True
        assert run.call_args.args[0] == ["cargo", "install", "cargo-ndk"]

    def test_install_failure(self):
        with (
            patch(f"{MODULE}.shutil.which", return_value=None),
            patch(
                f"{MODULE}.run_tool",
                side_effect=ToolExecutionError("failed", command="cargo install"),
            ),
        ):
            with pytest.raises(MissingToolchainError, match="cargo-ndk"):
                ensure_cargo_ndk()


class TestEnsureRustTargets:
    """Tests for ensure_rust_targets function."""

    def test_all_installed(self):
        installed = "aarch64-linux-android\nx86_64-linux-android\n"
        with patch(f"{MODULE}.run_tool", return_value=_result(installed)) as run:
            added = ensure_rust_targets([Architecture.ARM64_V8A, Architecture.X86_64])

        assert added == []
        assert run.call_count == 1

    def test_installs_missing_target_once(self):
        """A missing target should get exactly one rustup target add."""
        with patch(
            f"{MODULE}.run_tool",
            side_effect=[_result("aarch64-linux-android\n"), _result()],
        ) as run:
            added = ensure_rust_targets([Architecture.ARM64_V8A, Architecture.X86])

        assert added == ["i686-linux-android"]
        assert run.call_args_list[1].args[0] == [
            "rustup",
            "target",
            "add",
            "i686-linux-android",
        ]

    def test_install_failure(self):
        with patch(
            f"{MODULE}.run_tool",
            side_effect=[
                _result(""),
                ToolExecutionError("failed", command="rustup target add"),
            ],
        ):
            with pytest.raises(MissingRustTargetError) as exc_info:
                ensure_rust_targets([Architecture.ARMEABI_V7A])
        assert exc_info.value.target == "armv7-linux-androideabi"


class TestCheckAndroidProject:
    """Tests for check_android_project function."""

    def test_present(self, layout):
        check_android_project(layout)

    def test_missing(self, tmp_path):
        with pytest.raises(MissingAndroidProjectError):
            check_android_project(ProjectLayout(tmp_path / "empty"))


class TestCheckPrerequisites:
    """Tests for check_prerequisites ordering."""

    def test_stops_at_first_failure(self, settings, layout):
        """A missing rustc should abort before anything else runs."""
        with (
            patch(f"{MODULE}.check_rust", side_effect=MissingToolchainError("rustc")),
            patch(f"{MODULE}.ensure_cargo_ndk") as cargo_ndk,
            patch(f"{MODULE}.resolve_toolchain") as resolve,
        ):
            with pytest.raises(MissingToolchainError):
                check_prerequisites([Architecture.X86_64], settings, layout)

        cargo_ndk.assert_not_called()
        resolve.assert_not_called()

    def test_report(self, settings, layout):
        with (
            patch(f"{MODULE}.check_rust", return_value="1.80.0"),
            patch(f"{MODULE}.ensure_cargo_ndk", return_value=True),
            patch(f"{MODULE}.resolve_toolchain") as resolve,
            patch(
                f"{MODULE}.ensure_rust_targets",
                return_value=["x86_64-linux-android"],
            ),
        ):
            report = check_prerequisites([Architecture.X86_64], settings, layout)

        assert report.toolchain is resolve.return_value
        assert report.rust_version == "1.80.0"
        assert report.installed_cargo_ndk is True
        assert report.installed_targets == ["x86_64-linux-android"]
