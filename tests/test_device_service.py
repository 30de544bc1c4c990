"""Tests for device/service.py - the device orchestrator.

adb is replaced with a mock; artifact checks use real files.
"""

from unittest.mock import MagicMock, call, patch

import pytest

from droidkit.builds.models import BuildConfig, BuildOutcome
from droidkit.device.emulator import BootResult
from droidkit.device.service import USAGE, DeviceOrchestrator, make_log_filter
from droidkit.errors import (
    ArtifactNotFoundError,
    DeviceCommandFailedError,
    NoDeviceConnectedError,
)
from droidkit.types import BuildType, Command, OutputFormat

MODULE = "droidkit.device.service"


@pytest.fixture
def adb():
    adb = MagicMock()
    adb.require_device.return_value = [MagicMock(serial="emulator-5554")]
    return adb


@pytest.fixture
def disconnected_adb():
    adb = MagicMock()
    adb.require_device.side_effect = NoDeviceConnectedError()
    return adb


def _outcome(layout, release=False):
    build_type = BuildType.RELEASE if release else BuildType.DEBUG
    path = layout.artifact_path("slint_app", build_type, OutputFormat.APK)
    path.write_bytes(b"apk")
    return BuildOutcome(
        config=BuildConfig(build_type=build_type),
        gradle_task="assembleDebug",
        gradle_output=path,
        artifact_path=path,
        signed=False,
    )


class TestMakeLogFilter:
    def test_keeps_rust_and_app_lines(self):
        keep = make_log_filter("slint")
        assert keep("I RustStdoutStderr: hello")
        assert keep("D NativeActivity: onCreate")
        assert keep("I slint: frame")
        assert not keep("W ActivityManager: unrelated")


class TestNoDeviceConnected:
    """Device operations fail before doing anything without a device."""

    @pytest.mark.parametrize(
        ("command", "kwargs"),
        [
            (Command.INSTALL, {}),
            (Command.LAUNCH, {}),
            (Command.UNINSTALL, {}),
            (Command.LOG, {"sink": print}),
            (Command.LOGCAT, {"sink": print}),
        ],
    )
    def test_fails_before_operation(
        self, settings, layout, disconnected_adb, command, kwargs
    ):
        orchestrator = DeviceOrchestrator(settings, layout, adb=disconnected_adb)

        with pytest.raises(NoDeviceConnectedError):
            orchestrator.dispatch(command, **kwargs)

        assert disconnected_adb.method_calls == [call.require_device()]


class TestInstall:
    """Tests for DeviceOrchestrator.install."""

    def test_not_built(self, settings, layout, adb):
        """Installing before building reports the missing artifact."""
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)

        with pytest.raises(ArtifactNotFoundError) as exc_info:
            orchestrator.install()

        assert "droidkit build" in exc_info.value.hint
        adb.require_device.assert_called_once()
        adb.install.assert_not_called()

    def test_debug(self, settings, layout, adb):
        _outcome(layout)
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)

        path = orchestrator.install()

        assert path.name == "slint_app-debug.apk"
        adb.install.assert_called_once_with(path, replace=True, serial="emulator-5554")

    def test_release_prefers_signed(self, settings, layout, adb):
        unsigned = layout.artifact_path(
            "slint_app", BuildType.RELEASE, OutputFormat.APK
        )
        signed = layout.artifact_path(
            "slint_app", BuildType.RELEASE, OutputFormat.APK, signed=True
        )
        unsigned.write_bytes(b"unsigned")
        signed.write_bytes(b"signed")
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)

        assert orchestrator.install(release=True) == signed

    def test_release_falls_back_to_unsigned(self, settings, layout, adb):
        unsigned = layout.artifact_path(
            "slint_app", BuildType.RELEASE, OutputFormat.APK
        )
        unsigned.write_bytes(b"unsigned")
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)

        assert orchestrator.install(release=True) == unsigned


class TestRun:
    """Tests for DeviceOrchestrator.run."""

    def test_build_install_launch(self, settings, layout, adb):
        builder = MagicMock(side_effect=lambda config, s, lay: _outcome(layout))
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb, builder=builder)

        orchestrator.run()

        builder.assert_called_once()
        adb.install.assert_called_once()
        adb.start_activity.assert_called_once_with(
            "com.slint_app.app", "android.app.NativeActivity", serial="emulator-5554"
        )

    def test_release_config(self, settings, layout, adb):
        builder = MagicMock(side_effect=lambda config, s, lay: _outcome(layout, True))
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb, builder=builder)

        orchestrator.run(release=True)

        config = builder.call_args.args[0]
        assert config.build_type is BuildType.RELEASE

    def test_install_failure_skips_launch(self, settings, layout, adb):
        adb.install.side_effect = DeviceCommandFailedError("install", "Failure")
        builder = MagicMock(side_effect=lambda config, s, lay: _outcome(layout))
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb, builder=builder)

        with pytest.raises(DeviceCommandFailedError):
            orchestrator.run()
        adb.start_activity.assert_not_called()


class TestTargetDevice:
    """With several devices online every command targets the first one."""

    @pytest.fixture
    def two_devices(self):
        adb = MagicMock()
        adb.require_device.return_value = [
            MagicMock(serial="emulator-5554"),
            MagicMock(serial="R58M123ABC"),
        ]
        return adb

    def test_install_and_launch_share_serial(self, settings, layout, two_devices):
        _outcome(layout)
        orchestrator = DeviceOrchestrator(settings, layout, adb=two_devices)

        orchestrator.install()
        orchestrator.launch()

        assert two_devices.install.call_args.kwargs["serial"] == "emulator-5554"
        assert two_devices.start_activity.call_args.kwargs["serial"] == (
            "emulator-5554"
        )

    def test_uninstall_and_logcat(self, settings, layout, two_devices):
        orchestrator = DeviceOrchestrator(settings, layout, adb=two_devices)

        orchestrator.uninstall()
        orchestrator.logcat(print)

        assert two_devices.uninstall.call_args.kwargs["serial"] == "emulator-5554"
        assert two_devices.stream_logcat.call_args.kwargs["serial"] == (
            "emulator-5554"
        )


class TestOtherOperations:
    def test_launch(self, settings, layout, adb):
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)
        assert orchestrator.launch() == "com.slint_app.app/android.app.NativeActivity"

    def test_uninstall_custom_package(self, layout, adb, settings):
        settings = settings.model_copy(update={"package_name": "org.demo"})
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)

        assert orchestrator.dispatch(Command.UNINSTALL) == "org.demo"
        adb.uninstall.assert_called_once_with("org.demo", serial="emulator-5554")

    def test_log_clears_then_filters(self, settings, layout, adb):
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb)

        orchestrator.log(print)

        adb.clear_logcat.assert_called_once_with(serial="emulator-5554")
        assert adb.stream_logcat.call_args.kwargs["serial"] == "emulator-5554"
        line_filter = adb.stream_logcat.call_args.kwargs["line_filter"]
        assert line_filter("I RustStdoutStderr: hi")

    def test_logcat_unfiltered(self, settings, layout, adb):
        DeviceOrchestrator(settings, layout, adb=adb).logcat(print)
        adb.clear_logcat.assert_not_called()
        assert adb.stream_logcat.call_args.args == (print,)
        assert adb.stream_logcat.call_args.kwargs == {"serial": "emulator-5554"}

    def test_devices(self, settings, layout, adb):
        DeviceOrchestrator(settings, layout, adb=adb).devices()
        adb.list_devices.assert_called_once_with(verbose=True)

    def test_emulator_lists(self, settings, layout, adb):
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb, emulator="emu")
        with patch(f"{MODULE}.list_avds", return_value=["Pixel_7"]) as avds:
            assert orchestrator.emulator() == ["Pixel_7"]
        avds.assert_called_once_with("emu")

    def test_emulator_starts(self, settings, layout, adb):
        adb.list_devices.return_value = [MagicMock(serial="R58M")]
        boot = BootResult("Pixel_7", "emulator-5554", 1, 3.0, 3)
        orchestrator = DeviceOrchestrator(settings, layout, adb=adb, emulator="emu")
        with (
            patch(f"{MODULE}.start_emulator") as start,
            patch(f"{MODULE}.wait_for_boot", return_value=boot) as wait,
        ):
            assert orchestrator.dispatch(Command.EMULATOR, name="Pixel_7") is boot

        start.assert_called_once_with("emu", "Pixel_7")
        assert wait.call_args.kwargs["known_serials"] == {"R58M"}
        assert wait.call_args.kwargs["timeout"] == settings.emulator_boot_timeout

    def test_clean_without_device(self, settings, layout, disconnected_adb):
        """clean works on the filesystem only."""
        artifact = layout.artifact_path("slint_app", BuildType.DEBUG, OutputFormat.APK)
        artifact.write_bytes(b"apk")
        orchestrator = DeviceOrchestrator(settings, layout, adb=disconnected_adb)

        removed = orchestrator.dispatch(Command.CLEAN)

        assert artifact in removed
        assert disconnected_adb.method_calls == []

    def test_help(self, settings, layout):
        assert DeviceOrchestrator(settings, layout).dispatch(Command.HELP) == USAGE

    def test_every_command_dispatches(self, settings, layout):
        """Every command has a handler method."""
        orchestrator = DeviceOrchestrator(settings, layout)
        for command in Command:
            assert callable(getattr(orchestrator, command.value))
