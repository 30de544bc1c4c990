"""Android emulator control.

This module handles:
- Resolving the emulator executable
- Listing AVD profiles
- Starting an AVD as a detached background process
- Waiting for boot completion with a deadline, exit detection and
  cancellation
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from droidkit.device.adb import resolve_sdk_tool
from droidkit.errors import (
    EmulatorBootTimeoutError,
    EmulatorExitedError,
    MissingToolchainError,
    OperationCancelledError,
)
from droidkit.process import run_tool

if TYPE_CHECKING:
    from droidkit.config import Settings
    from droidkit.device.adb import Adb

logger = logging.getLogger(__name__)

LIST_TIMEOUT = 60


@dataclass
class BootResult:
    """Result of waiting for an emulator to boot.

    Attributes:
        avd_name: AVD profile that was started.
        serial: adb serial of the emulator, if it could be identified.
        pid: Emulator process id.
        elapsed: Seconds spent waiting.
        polls: Number of boot-completion polls.
    """

    avd_name: str
    serial: str | None
    pid: int
    elapsed: float
    polls: int


def resolve_emulator(settings: Settings) -> str:
    return resolve_sdk_tool(
        settings,
        "emulator",
        "emulator",
        hint="Install Android SDK emulator.",
    )


def list_avds(emulator: str) -> list[str]:
    """Return the names of the available AVD profiles."""
    result = run_tool([emulator, "-list-avds"], capture=True, timeout=LIST_TIMEOUT)
    # The emulator may print INFO/WARNING lines before the names
    return [
        line.strip()
        for line in result.stdout.splitlines()
        if line.strip() and not line.startswith(("INFO", "WARNING", "ERROR"))
    ]


def start_emulator(emulator: str, avd_name: str) -> subprocess.Popen[bytes]:
    """Start an AVD detached from this process, output discarded.

    Raises:
        MissingToolchainError: The emulator executable does not exist.
    """
    logger.info("Starting emulator: %s", avd_name)
    try:
        return subprocess.Popen(
            [emulator, "-avd", avd_name],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except FileNotFoundError as e:
        raise MissingToolchainError(emulator) from e


def _new_emulator_serial(adb: Adb, known: set[str]) -> str | None:
    for device in adb.list_devices():
        if device.is_emulator and device.serial not in known:
            return device.serial
    return None


def wait_for_boot(
    adb: Adb,
    process: subprocess.Popen[bytes],
    avd_name: str,
    *,
    timeout: float,
    poll_interval: float = 1.0,
    known_serials: set[str] | None = None,
    cancel: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> BootResult:
    """Poll sys.boot_completed until the emulator reports it is ready.

    Args:
        adb: adb wrapper.
        process: The emulator process started by start_emulator.
        avd_name: AVD name (for messages).
        timeout: Maximum seconds to wait.
        poll_interval: Seconds between polls.
        known_serials: Serials present before the emulator was started; the
            first new emulator serial is the one polled.
        cancel: Event that aborts the wait when set.
        clock: Monotonic clock.
        sleep: Sleep function used when no cancel event is given.

    Returns:
        BootResult once boot completed.

    Raises:
        EmulatorExitedError: The emulator process exited before booting.
        EmulatorBootTimeoutError: Boot did not complete within timeout.
        OperationCancelledError: cancel was set.
    """
    known = known_serials if known_serials is not None else set()
    started = clock()
    deadline = started + timeout
    serial: str | None = None
    polls = 0

    logger.info("Waiting for device to boot")
    while True:
        exit_code = process.poll()
        if exit_code is not None:
            logger.error("Emulator %s exited with code %d", avd_name, exit_code)
            raise EmulatorExitedError(avd_name, exit_code)

        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(f"Waiting for emulator {avd_name}")

        if serial is None:
            serial = _new_emulator_serial(adb, known)
            if serial is not None:
                logger.debug("Emulator serial: %s", serial)

        if serial is not None:
            polls += 1
            if adb.boot_completed(serial=serial):
                elapsed = clock() - started
                logger.info("Emulator ready after %.1fs", elapsed)
                return BootResult(
                    avd_name=avd_name,
                    serial=serial,
                    pid=process.pid,
                    elapsed=elapsed,
                    polls=polls,
                )

        if clock() >= deadline:
            logger.error("Emulator %s did not boot within %ss", avd_name, timeout)
            raise EmulatorBootTimeoutError(avd_name, timeout)

        if cancel is not None:
            cancel.wait(poll_interval)
        else:
            sleep(poll_interval)


__all__ = [
    "BootResult",
    "list_avds",
    "resolve_emulator",
    "start_emulator",
    "wait_for_boot",
]
