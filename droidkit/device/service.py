"""Device orchestrator.

This module provides the sub-operations of the ``droidkit`` command:
build, install, run, launch, uninstall, log, logcat, devices, emulator,
clean and help. Every operation that needs a device checks connectivity
itself before touching artifacts or packages.

``DeviceOrchestrator.dispatch`` maps each Command member to its handler;
the mapping is verified to be exhaustive at import time.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from droidkit.builds.artifacts import clean_all
from droidkit.builds.service import build as run_build
from droidkit.builds.service import default_build_config
from droidkit.device.adb import Adb, Device, resolve_adb
from droidkit.device.emulator import (
    BootResult,
    list_avds,
    resolve_emulator,
    start_emulator,
    wait_for_boot,
)
from droidkit.errors import ArtifactNotFoundError
from droidkit.layout import ProjectLayout
from droidkit.types import BuildType, Command, OutputFormat

if TYPE_CHECKING:
    from droidkit.builds.models import BuildConfig, BuildOutcome
    from droidkit.config import Settings

logger = logging.getLogger(__name__)

# Tags kept by the filtered log view, plus the app-specific marker
LOG_TAGS = ("RustStdoutStderr", "NativeActivity")

USAGE = """\
Usage: droidkit <command> [options]

Commands:
  build [--release]   Build the Android APK (default: debug)
  install [--release] Install the APK on connected device
  run [--release]     Build, install, and launch app on device
  launch              Launch already installed app
  uninstall           Uninstall app from device (alias: clean-device)
  log                 Show filtered logcat for Rust/app output (alias: debug)
  logcat              Show full logcat (unfiltered)
  devices             List connected devices/emulators
  emulator [name]     Start an emulator, lists available if no name (alias: emu)
  clean               Clean build artifacts
  help                Show this help message
"""


def make_log_filter(marker: str) -> Callable[[str], bool]:
    """Return a predicate keeping Rust stdout/stderr and app log lines."""
    tags = (*LOG_TAGS, marker) if marker else LOG_TAGS

    def _keep(line: str) -> bool:
        return any(tag in line for tag in tags)

    return _keep


class DeviceOrchestrator:
    """Sequences build and adb operations for one invocation.

    Args:
        settings: Effective settings.
        layout: Project layout; derived from settings.project_root if omitted.
        adb: adb wrapper; resolved lazily when first needed.
        emulator: emulator executable; resolved lazily when first needed.
        builder: Build function (defaults to droidkit.builds.service.build).
    """

    def __init__(
        self,
        settings: Settings,
        layout: ProjectLayout | None = None,
        adb: Adb | None = None,
        emulator: str | None = None,
        builder: Callable[..., BuildOutcome] = run_build,
    ) -> None:
        self.settings = settings
        self.layout = layout or ProjectLayout(settings.project_root)
        self._adb = adb
        self._emulator = emulator
        self._builder = builder

    @property
    def adb(self) -> Adb:
        if self._adb is None:
            self._adb = Adb(
                resolve_adb(self.settings), timeout=self.settings.device_timeout
            )
        return self._adb

    @property
    def emulator_executable(self) -> str:
        if self._emulator is None:
            self._emulator = resolve_emulator(self.settings)
        return self._emulator

    @property
    def package_name(self) -> str:
        return self.settings.effective_package_name

    def install_artifact_path(self, release: bool = False) -> Path:
        """APK installed by ``install``: the signed release APK when present."""
        app_name = self.settings.app_name
        if not release:
            return self.layout.artifact_path(
                app_name, BuildType.DEBUG, OutputFormat.APK
            )
        signed = self.layout.artifact_path(
            app_name, BuildType.RELEASE, OutputFormat.APK, signed=True
        )
        if signed.is_file():
            return signed
        return self.layout.artifact_path(app_name, BuildType.RELEASE, OutputFormat.APK)

    def _target_serial(self) -> str:
        """Serial of the device that install, launch and log commands target."""
        online = self.adb.require_device()
        if len(online) > 1:
            logger.info(
                "%d devices connected, using %s", len(online), online[0].serial
            )
        return online[0].serial

    def build(
        self, release: bool = False, config: BuildConfig | None = None
    ) -> BuildOutcome:
        """Delegate to the build orchestrator."""
        if config is None:
            config = default_build_config(self.settings, release=release)
        return self._builder(config, self.settings, self.layout)

    def install(self, release: bool = False) -> Path:
        """Install the previously built APK with replace semantics.

        Raises:
            NoDeviceConnectedError: No device is connected.
            ArtifactNotFoundError: The APK has not been built.
            DeviceCommandFailedError: adb install failed.
        """
        serial = self._target_serial()

        apk_path = self.install_artifact_path(release)
        if not apk_path.is_file():
            logger.error("APK not found at %s", apk_path)
            raise ArtifactNotFoundError(str(apk_path))

        logger.info("Installing APK: %s", apk_path)
        self.adb.install(apk_path, replace=True, serial=serial)
        logger.info("Installed successfully")
        return apk_path

    def launch(self) -> str:
        """Start the app's entry-point activity (fire-and-forget).

        Returns:
            The component that was started.
        """
        serial = self._target_serial()

        component = f"{self.package_name}/{self.settings.activity_name}"
        logger.info("Launching %s", component)
        self.adb.start_activity(
            self.package_name, self.settings.activity_name, serial=serial
        )
        return component

    def run(self, release: bool = False) -> BuildOutcome:
        """Build, install and launch, stopping at the first failure."""
        outcome = self.build(release=release)
        self.install(release=release)
        self.launch()
        return outcome

    def uninstall(self) -> str:
        """Remove the app from the device."""
        serial = self._target_serial()

        logger.info("Uninstalling %s", self.package_name)
        self.adb.uninstall(self.package_name, serial=serial)
        return self.package_name

    def log(self, sink: Callable[[str], None]) -> int:
        """Clear the log buffer, then stream Rust/app lines until interrupted."""
        serial = self._target_serial()

        self.adb.clear_logcat(serial=serial)
        return self.adb.stream_logcat(
            sink,
            line_filter=make_log_filter(self.settings.log_marker),
            serial=serial,
        )

    def logcat(self, sink: Callable[[str], None]) -> int:
        """Stream the full, unfiltered logcat until interrupted."""
        serial = self._target_serial()

        return self.adb.stream_logcat(sink, serial=serial)

    def devices(self) -> list[Device]:
        """List every device/emulator with adb's verbose metadata."""
        return self.adb.list_devices(verbose=True)

    def emulator(
        self,
        name: str | None = None,
        cancel: threading.Event | None = None,
    ) -> list[str] | BootResult:
        """List AVDs, or start one and wait until it has booted.

        Returns:
            AVD names when name is None, otherwise the BootResult.
        """
        emulator = self.emulator_executable
        if not name:
            return list_avds(emulator)

        known = {d.serial for d in self.adb.list_devices()}
        process = start_emulator(emulator, name)
        return wait_for_boot(
            self.adb,
            process,
            name,
            timeout=self.settings.emulator_boot_timeout,
            poll_interval=self.settings.poll_interval,
            known_serials=known,
            cancel=cancel,
        )

    def clean(self) -> list[Path]:
        """Remove every artifact and intermediate build directory."""
        logger.info("Cleaning build artifacts")
        removed = clean_all(self.layout, self.settings.app_name)
        logger.info("Clean complete (%d paths removed)", len(removed))
        return removed

    def help(self) -> str:
        return USAGE

    def dispatch(self, command: Command, **kwargs: Any) -> Any:
        """Run a sub-operation by Command."""
        return getattr(self, _HANDLERS[command])(**kwargs)


_HANDLERS: dict[Command, str] = {
    Command.BUILD: "build",
    Command.INSTALL: "install",
    Command.RUN: "run",
    Command.LAUNCH: "launch",
    Command.UNINSTALL: "uninstall",
    Command.LOG: "log",
    Command.LOGCAT: "logcat",
    Command.DEVICES: "devices",
    Command.EMULATOR: "emulator",
    Command.CLEAN: "clean",
    Command.HELP: "help",
}

_unhandled = set(Command) - set(_HANDLERS)
if _unhandled:
    missing = sorted(c.value for c in _unhandled)
    raise RuntimeError(f"Commands without a handler: {missing}")


__all__ = ["LOG_TAGS", "USAGE", "DeviceOrchestrator", "make_log_filter"]
