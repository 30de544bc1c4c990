"""adb wrapper for device operations.

This module handles:
- Resolving adb (Windows-side adb.exe under WSL, PATH, or the SDK)
- Parsing ``adb devices [-l]`` output
- Install, uninstall, activity start, logcat and property queries

Device handles are plain serials discovered from adb; nothing here owns
or caches device state.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from droidkit.errors import (
    DeviceCommandFailedError,
    MissingToolchainError,
    NoDeviceConnectedError,
    ToolTimeoutError,
)
from droidkit.process import ToolResult, run_tool, stream_tool

if TYPE_CHECKING:
    from droidkit.config import Settings

logger = logging.getLogger(__name__)

ONLINE_STATE = "device"


@dataclass
class Device:
    """A device or emulator reported by adb.

    Attributes:
        serial: adb serial (e.g. 'emulator-5554').
        state: Connection state ('device', 'offline', 'unauthorized', ...).
        properties: key:value metadata from ``adb devices -l``.
    """

    serial: str
    state: str
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_online(self) -> bool:
        return self.state == ONLINE_STATE

    @property
    def is_emulator(self) -> bool:
        return self.serial.startswith("emulator-")

    def to_dict(self) -> dict[str, object]:
        return {"serial": self.serial, "state": self.state, **self.properties}


def parse_devices_output(output: str) -> list[Device]:
    """Parse ``adb devices`` or ``adb devices -l`` output.

    Skips the header, blank lines and daemon start-up messages.

    Args:
        output: Raw adb stdout.

    Returns:
        Devices in the order adb listed them.
    """
    devices: list[Device] = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("List of devices", "*")):
            continue
        parts = stripped.split()
        if len(parts) < 2:
            continue
        properties: dict[str, str] = {}
        for token in parts[2:]:
            key, sep, value = token.partition(":")
            if sep:
                properties[key] = value
        devices.append(Device(serial=parts[0], state=parts[1], properties=properties))
    return devices


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def resolve_sdk_tool(
    settings: Settings,
    name: str,
    subdir: str,
    hint: str,
) -> str:
    """Resolve adb or emulator.

    Prefers the Windows-side ``<WIN_ANDROID_SDK>/<subdir>/<name>.exe`` (WSL),
    then PATH, then ``<ANDROID_HOME>/<subdir>/<name>``.

    Raises:
        MissingToolchainError: The tool cannot be found.
    """
    if settings.win_android_sdk is not None:
        windows_tool = settings.win_android_sdk / subdir / f"{name}.exe"
        if _is_executable(windows_tool):
            return str(windows_tool)

    on_path = shutil.which(name)
    if on_path is not None:
        return on_path

    if settings.android_home is not None:
        sdk_tool = settings.android_home / subdir / name
        if _is_executable(sdk_tool):
            return str(sdk_tool)

    raise MissingToolchainError(name, hint=hint)


def resolve_adb(settings: Settings) -> str:
    return resolve_sdk_tool(
        settings,
        "adb",
        "platform-tools",
        hint="Install Android SDK platform-tools.",
    )


class Adb:
    """Thin wrapper around the adb executable.

    Args:
        executable: Path or name of adb.
        timeout: Timeout for non-streaming commands in seconds.
    """

    def __init__(self, executable: str, timeout: float | None = None) -> None:
        self.executable = executable
        self.timeout = timeout

    def _command(self, args: list[str], serial: str | None) -> list[str]:
        cmd = [self.executable]
        if serial is not None:
            cmd.extend(["-s", serial])
        cmd.extend(args)
        return cmd

    def run(
        self,
        *args: str,
        serial: str | None = None,
        capture: bool = True,
        check: bool = True,
        timeout: float | None = None,
    ) -> ToolResult:
        """Run an adb sub-command."""
        return run_tool(
            self._command(list(args), serial),
            capture=capture,
            check=check,
            timeout=timeout if timeout is not None else self.timeout,
        )

    def list_devices(self, verbose: bool = False) -> list[Device]:
        """List every device adb knows about, whatever its state."""
        args = ["devices", "-l"] if verbose else ["devices"]
        return parse_devices_output(self.run(*args).stdout)

    def require_device(self) -> list[Device]:
        """Return online devices, failing when there are none.

        Raises:
            NoDeviceConnectedError: No device is in the 'device' state.
        """
        online = [d for d in self.list_devices() if d.is_online]
        if not online:
            logger.error("No Android device connected")
            raise NoDeviceConnectedError()
        logger.debug("Connected devices: %s", ", ".join(d.serial for d in online))
        return online

    def _checked(
        self, operation: str, *args: str, serial: str | None = None
    ) -> ToolResult:
        # adb can exit 0 while printing "Failure [...]"
        result = self.run(*args, serial=serial, check=False)
        output = f"{result.stdout}\n{result.stderr}".strip()
        if not result.success or "Failure" in output or "Error:" in output:
            raise DeviceCommandFailedError(operation, output)
        return result

    def install(
        self, apk_path: Path, replace: bool = True, serial: str | None = None
    ) -> ToolResult:
        """Install an APK, replacing the existing app when replace is set."""
        args = ["install"]
        if replace:
            args.append("-r")
        args.append(str(apk_path))
        return self._checked("install", *args, serial=serial)

    def uninstall(self, package: str, serial: str | None = None) -> ToolResult:
        return self._checked("uninstall", "uninstall", package, serial=serial)

    def start_activity(
        self, package: str, activity: str, serial: str | None = None
    ) -> ToolResult:
        """Start an activity; does not wait for the app to come up."""
        return self._checked(
            "shell am start",
            "shell",
            "am",
            "start",
            "-n",
            f"{package}/{activity}",
            serial=serial,
        )

    def clear_logcat(self, serial: str | None = None) -> None:
        self.run("logcat", "-c", serial=serial)

    def stream_logcat(
        self,
        sink: Callable[[str], None],
        line_filter: Callable[[str], bool] | None = None,
        serial: str | None = None,
    ) -> int:
        """Stream logcat until adb exits or the user interrupts."""
        return stream_tool(
            self._command(["logcat"], serial), sink=sink, line_filter=line_filter
        )

    def getprop(self, name: str, serial: str | None = None) -> str:
        """Read a system property; returns "" when the device is unreachable."""
        try:
            result = self.run("shell", "getprop", name, serial=serial, check=False)
        except ToolTimeoutError:
            return ""
        if not result.success:
            return ""
        return result.stdout.strip()

    def boot_completed(self, serial: str | None = None) -> bool:
        return self.getprop("sys.boot_completed", serial=serial) == "1"


__all__ = [
    "Adb",
    "Device",
    "parse_devices_output",
    "resolve_adb",
    "resolve_sdk_tool",
]
