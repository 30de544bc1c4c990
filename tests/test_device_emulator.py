"""Tests for device/emulator.py - AVD listing and boot waiting."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from droidkit.device.adb import Device
from droidkit.device.emulator import list_avds, start_emulator, wait_for_boot
from droidkit.errors import (
    EmulatorBootTimeoutError,
    EmulatorExitedError,
    MissingToolchainError,
    OperationCancelledError,
)
from droidkit.process import ToolResult


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def _process(poll_results=None):
    process = MagicMock()
    process.pid = 4242
    process.poll.side_effect = poll_results or (lambda: None)
    return process


def _adb(devices, boot_states):
    adb = MagicMock()
    adb.list_devices.return_value = devices
    adb.boot_completed.side_effect = boot_states
    return adb


EMULATOR = Device(serial="emulator-5556", state="device")
PHONE = Device(serial="R58M123ABC", state="device")


class TestListAvds:
    def test_filters_log_lines(self):
        output = "INFO    | Storing crashdata\nPixel_7_API_34\nsmall_phone\n"
        result = ToolResult(
            command="emulator", exit_code=0, stdout=output, stderr="", duration=0.0
        )
        with patch("droidkit.device.emulator.run_tool", return_value=result):
            assert list_avds("emulator") == ["Pixel_7_API_34", "small_phone"]


class TestStartEmulator:
    def test_detached(self):
        with patch("droidkit.device.emulator.subprocess.Popen") as popen:
            start_emulator("emulator", "Pixel_7")

        assert popen.call_args.args[0] == ["emulator", "-avd", "Pixel_7"]
        assert popen.call_args.kwargs["start_new_session"] is True

    def test_missing_executable(self):
        with patch(
            "droidkit.device.emulator.subprocess.Popen",
            side_effect=FileNotFoundError("emulator"),
        ):
            with pytest.raises(MissingToolchainError):
                start_emulator("/sdk/emulator/emulator", "Pixel_7")


class TestWaitForBoot:
    """Tests for wait_for_boot function."""

    def test_boots(self):
        """The new emulator serial is polled until boot completes."""
        clock = FakeClock()
        adb = _adb([PHONE, EMULATOR], [False, False, True])

        result = wait_for_boot(
            adb,
            _process(),
            "Pixel_7",
            timeout=60,
            known_serials={"R58M123ABC"},
            clock=clock,
            sleep=clock.sleep,
        )

        assert result.serial == "emulator-5556"
        assert result.polls == 3
        assert result.pid == 4242
        assert result.elapsed == pytest.approx(2.0)
        for call in adb.boot_completed.call_args_list:
            assert call.kwargs["serial"] == "emulator-5556"

    def test_timeout(self):
        """Waiting is bounded by the timeout."""
        clock = FakeClock()
        adb = _adb([EMULATOR], lambda serial=None: False)

        with pytest.raises(EmulatorBootTimeoutError) as exc_info:
            wait_for_boot(
                adb,
                _process(),
                "Pixel_7",
                timeout=5,
                poll_interval=1.0,
                clock=clock,
                sleep=clock.sleep,
            )

        assert exc_info.value.timeout == 5
        assert clock.now == pytest.approx(5.0)

    def test_never_appears(self):
        """An emulator that never shows up in adb also times out."""
        clock = FakeClock()
        adb = _adb([], [])

        with pytest.raises(EmulatorBootTimeoutError):
            wait_for_boot(
                adb, _process(), "Pixel_7", timeout=3, clock=clock, sleep=clock.sleep
            )
        adb.boot_completed.assert_not_called()

    def test_emulator_exits(self):
        """A crashed emulator is reported instead of waiting for the timeout."""
        clock = FakeClock()
        adb = _adb([], [])

        with pytest.raises(EmulatorExitedError) as exc_info:
            wait_for_boot(
                adb,
                _process([None, None, 1]),
                "Broken_AVD",
                timeout=300,
                clock=clock,
                sleep=clock.sleep,
            )

        assert exc_info.value.exit_code == 1
        assert clock.now == pytest.approx(2.0)

    def test_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        adb = _adb([EMULATOR], lambda serial=None: False)

        with pytest.raises(OperationCancelledError):
            wait_for_boot(adb, _process(), "Pixel_7", timeout=300, cancel=cancel)
        adb.list_devices.assert_not_called()
