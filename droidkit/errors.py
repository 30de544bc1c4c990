"""Error definitions for droidkit.

Every fatal condition raised by the build and device orchestrators is a
DroidkitError subclass with a stable snake-case code, a human-readable
message, and an optional corrective hint. The CLI renders the message and
hint; ``--json`` output uses ``to_dict()``.
"""

from typing import Any

# Error code constants
MISSING_TOOLCHAIN = "missing_toolchain"
MISSING_RUST_TARGET = "missing_rust_target"
MISSING_ANDROID_PROJECT = "missing_android_project"
UNKNOWN_ARCHITECTURE = "unknown_architecture"
PACKAGING_FAILED = "packaging_failed"
INCOMPLETE_SIGNING_CONFIG = "incomplete_signing_config"
KEYSTORE_NOT_FOUND = "keystore_not_found"
SIGNING_TOOL_MISSING = "signing_tool_missing"
NO_DEVICE_CONNECTED = "no_device_connected"
ARTIFACT_NOT_FOUND = "artifact_not_found"
DEVICE_COMMAND_FAILED = "device_command_failed"
TOOL_FAILED = "tool_failed"
TOOL_TIMEOUT = "tool_timeout"
EMULATOR_BOOT_TIMEOUT = "emulator_boot_timeout"
EMULATOR_EXITED = "emulator_exited"
OPERATION_CANCELLED = "operation_cancelled"
INVALID_CONFIGURATION = "invalid_configuration"


class DroidkitError(Exception):
    """Base exception for droidkit errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.hint = hint
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.hint is not None:
            result["hint"] = self.hint
        if self.details:
            result["details"] = self.details
        return result


class InvalidConfigurationError(DroidkitError):
    """A setting from the environment, project file or a flag is invalid."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__(
            f"Invalid configuration: {'; '.join(problems)}",
            error_code=INVALID_CONFIGURATION,
            hint="Check the DROIDKIT_* variables and droidkit.yaml",
            details={"problems": problems},
        )
        self.problems = problems


class MissingToolchainError(DroidkitError):
    """A required executable or SDK/NDK directory could not be located."""

    def __init__(self, tool: str, hint: str | None = None) -> None:
        super().__init__(
            f"{tool} not found",
            error_code=MISSING_TOOLCHAIN,
            hint=hint,
            details={"tool": tool},
        )
        self.tool = tool


class MissingRustTargetError(DroidkitError):
    """A Rust compilation target is not installed.

    Raised only when installing the target with rustup also failed.
    """

    def __init__(self, target: str) -> None:
        super().__init__(
            f"Rust target not installed: {target}",
            error_code=MISSING_RUST_TARGET,
            hint=f"Install it with: rustup target add {target}",
            details={"target": target},
        )
        self.target = target


class MissingAndroidProjectError(DroidkitError):
    """The Gradle project skeleton is absent."""

    def __init__(self, android_dir: str) -> None:
        super().__init__(
            f"Android project not found at {android_dir}",
            error_code=MISSING_ANDROID_PROJECT,
            hint="Run from the project root or ensure the android/ directory exists",
            details={"android_dir": android_dir},
        )
        self.android_dir = android_dir


class UnknownArchitectureError(DroidkitError):
    """An architecture name is not one of the supported ABIs."""

    def __init__(self, name: str, supported: list[str]) -> None:
        super().__init__(
            f"Unknown architecture: {name}",
            error_code=UNKNOWN_ARCHITECTURE,
            hint=f"Options: {', '.join(supported)}",
            details={"architecture": name},
        )
        self.name = name


class PackagingFailedError(DroidkitError):
    """Gradle did not produce the expected artifact."""

    def __init__(self, expected_path: str, task: str) -> None:
        super().__init__(
            f"{task} did not produce an artifact at {expected_path}",
            error_code=PACKAGING_FAILED,
            details={"expected_path": expected_path, "task": task},
        )
        self.expected_path = expected_path
        self.task = task


class IncompleteSigningConfigError(DroidkitError):
    """Signing was requested without all four credential fields."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"Signing requires all keystore options (missing: {', '.join(missing)})",
            error_code=INCOMPLETE_SIGNING_CONFIG,
            hint=(
                "Pass --keystore, --keystore-pass, --key-alias, --key-pass or set "
                "KEYSTORE_PATH, KEYSTORE_PASSWORD, KEY_ALIAS, KEY_PASSWORD"
            ),
            details={"missing": missing},
        )
        self.missing = missing


class KeystoreNotFoundError(DroidkitError):
    """The keystore file does not exist."""

    def __init__(self, keystore_path: str) -> None:
        super().__init__(
            f"Keystore not found at {keystore_path}",
            error_code=KEYSTORE_NOT_FOUND,
            details={"keystore_path": keystore_path},
        )
        self.keystore_path = keystore_path


class SigningToolMissingError(DroidkitError):
    """Neither the PATH nor the SDK build-tools provide the signing tool."""

    def __init__(self, tool: str) -> None:
        super().__init__(
            f"{tool} not found",
            error_code=SIGNING_TOOL_MISSING,
            hint="Install the Android SDK build-tools or a JDK",
            details={"tool": tool},
        )
        self.tool = tool


class NoDeviceConnectedError(DroidkitError):
    """No device or emulator is attached."""

    def __init__(self) -> None:
        super().__init__(
            "No Android device connected",
            error_code=NO_DEVICE_CONNECTED,
            hint=(
                "Connect a device via USB or start an emulator: droidkit emulator"
            ),
        )


class ArtifactNotFoundError(DroidkitError):
    """The build artifact to install does not exist."""

    def __init__(self, artifact_path: str) -> None:
        super().__init__(
            f"APK not found at {artifact_path}",
            error_code=ARTIFACT_NOT_FOUND,
            hint="Run 'droidkit build' first",
            details={"artifact_path": artifact_path},
        )
        self.artifact_path = artifact_path


class ToolExecutionError(DroidkitError):
    """An external tool exited with a non-zero status or failed to start."""

    def __init__(
        self,
        message: str,
        command: str,
        exit_code: int | None = None,
        error_code: str = TOOL_FAILED,
    ) -> None:
        super().__init__(
            message,
            error_code=error_code,
            details={"command": command, "exit_code": exit_code},
        )
        self.command = command
        self.exit_code = exit_code


class ToolTimeoutError(ToolExecutionError):
    """An external tool did not finish within its timeout."""

    def __init__(self, command: str, timeout: float) -> None:
        super().__init__(
            f"Command timed out after {timeout:g} seconds: {command}",
            command=command,
            exit_code=None,
            error_code=TOOL_TIMEOUT,
        )
        self.timeout = timeout


class DeviceCommandFailedError(DroidkitError):
    """adb reported a failure for a device operation."""

    def __init__(self, operation: str, output: str = "") -> None:
        message = f"adb {operation} failed"
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(
            message,
            error_code=DEVICE_COMMAND_FAILED,
            details={"operation": operation},
        )
        self.operation = operation


class EmulatorBootTimeoutError(DroidkitError):
    """The emulator did not report boot completion in time."""

    def __init__(self, avd_name: str, timeout: float) -> None:
        super().__init__(
            f"Emulator {avd_name} did not finish booting within {timeout:g} seconds",
            error_code=EMULATOR_BOOT_TIMEOUT,
            details={"avd": avd_name, "timeout": timeout},
        )
        self.avd_name = avd_name
        self.timeout = timeout


class EmulatorExitedError(DroidkitError):
    """The emulator process exited before boot completed."""

    def __init__(self, avd_name: str, exit_code: int) -> None:
        super().__init__(
            f"Emulator {avd_name} exited with code {exit_code} before booting",
            error_code=EMULATOR_EXITED,
            hint="List available profiles with: droidkit emulator",
            details={"avd": avd_name, "exit_code": exit_code},
        )
        self.avd_name = avd_name
        self.exit_code = exit_code


class OperationCancelledError(DroidkitError):
    """A wait loop was cancelled by the caller."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"{operation} cancelled",
            error_code=OPERATION_CANCELLED,
            details={"operation": operation},
        )


__all__ = [
    "ARTIFACT_NOT_FOUND",
    "DEVICE_COMMAND_FAILED",
    "EMULATOR_BOOT_TIMEOUT",
    "EMULATOR_EXITED",
    "INCOMPLETE_SIGNING_CONFIG",
    "INVALID_CONFIGURATION",
    "KEYSTORE_NOT_FOUND",
    "MISSING_ANDROID_PROJECT",
    "MISSING_RUST_TARGET",
    "MISSING_TOOLCHAIN",
    "NO_DEVICE_CONNECTED",
    "OPERATION_CANCELLED",
    "PACKAGING_FAILED",
    "SIGNING_TOOL_MISSING",
    "TOOL_FAILED",
    "TOOL_TIMEOUT",
    "UNKNOWN_ARCHITECTURE",
    "ArtifactNotFoundError",
    "DeviceCommandFailedError",
    "DroidkitError",
    "EmulatorBootTimeoutError",
    "EmulatorExitedError",
    "IncompleteSigningConfigError",
    "InvalidConfigurationError",
    "KeystoreNotFoundError",
    "MissingAndroidProjectError",
    "MissingRustTargetError",
    "MissingToolchainError",
    "NoDeviceConnectedError",
    "OperationCancelledError",
    "PackagingFailedError",
    "SigningToolMissingError",
    "ToolExecutionError",
    "ToolTimeoutError",
    "UnknownArchitectureError",
]
