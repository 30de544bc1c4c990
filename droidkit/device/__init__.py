"""Device orchestration module.

This module handles:
- adb resolution and device discovery
- Install, launch, uninstall and log streaming
- Emulator listing, start-up and bounded boot wait
- Full artifact cleanup
"""

from droidkit.device.adb import Adb, Device, parse_devices_output
from droidkit.device.emulator import BootResult
from droidkit.device.service import DeviceOrchestrator

__all__ = [
    "Adb",
    "BootResult",
    "Device",
    "DeviceOrchestrator",
    "parse_devices_output",
]
