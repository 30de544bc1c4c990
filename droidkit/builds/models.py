"""Pydantic models for build configuration.

This module defines the validated BuildConfig passed to the build
orchestrator, the SigningConfig it carries, and the BuildOutcome it
returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from droidkit.errors import UnknownArchitectureError
from droidkit.types import (
    ALL_ARCHITECTURES,
    DEFAULT_ARCHITECTURES,
    AlignmentOutcome,
    Architecture,
    BuildType,
    OutputFormat,
)

if TYPE_CHECKING:
    from droidkit.config import Settings

# Gradle task for each (format, build type) pair
GRADLE_TASKS: dict[tuple[OutputFormat, BuildType], str] = {
    (OutputFormat.APK, BuildType.DEBUG): "assembleDebug",
    (OutputFormat.APK, BuildType.RELEASE): "assembleRelease",
    (OutputFormat.AAB, BuildType.DEBUG): "bundleDebug",
    (OutputFormat.AAB, BuildType.RELEASE): "bundleRelease",
}


def gradle_task(output_format: OutputFormat, build_type: BuildType) -> str:
    """Return the Gradle task producing the given artifact kind."""
    return GRADLE_TASKS[(output_format, build_type)]


def parse_architectures(value: str) -> list[Architecture]:
    """Parse a comma-separated architecture list.

    Args:
        value: e.g. ``"arm64-v8a,x86_64"``.

    Returns:
        Architectures in the given order.

    Raises:
        UnknownArchitectureError: A name is not a supported ABI.
    """
    supported = [a.value for a in ALL_ARCHITECTURES]
    result: list[Architecture] = []
    for name in value.split(","):
        name = name.strip()
        if not name:
            continue
        try:
            result.append(Architecture(name))
        except ValueError:
            raise UnknownArchitectureError(name, supported) from None
    return result


class SigningConfig(BaseModel):
    """Keystore credentials for release signing.

    Attributes:
        keystore_path: Path to the keystore file.
        keystore_password: Keystore password.
        key_alias: Alias of the signing key.
        key_password: Key password.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    keystore_path: Path | None = None
    keystore_password: SecretStr | None = None
    key_alias: str | None = None
    key_password: SecretStr | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        keystore_path: Path | None = None,
        keystore_password: str | None = None,
        key_alias: str | None = None,
        key_password: str | None = None,
    ) -> SigningConfig:
        """Merge CLI values over the environment-provided ones."""
        return cls(
            keystore_path=keystore_path or settings.keystore_path,
            keystore_password=(
                SecretStr(keystore_password)
                if keystore_password
                else settings.keystore_password
            ),
            key_alias=key_alias or settings.key_alias,
            key_password=(
                SecretStr(key_password) if key_password else settings.key_password
            ),
        )

    def missing_fields(self) -> list[str]:
        """Names of credential fields that are unset or empty."""
        values: dict[str, str] = {
            "keystore_path": str(self.keystore_path) if self.keystore_path else "",
            "keystore_password": (
                self.keystore_password.get_secret_value()
                if self.keystore_password
                else ""
            ),
            "key_alias": self.key_alias or "",
            "key_password": (
                self.key_password.get_secret_value() if self.key_password else ""
            ),
        }
        return [name for name, value in values.items() if not value]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()


class BuildConfig(BaseModel):
    """Validated build configuration.

    Attributes:
        app_name: Base name of the top-level artifact.
        build_type: debug or release.
        output_format: apk or aab.
        architectures: Ordered, de-duplicated ABIs to compile for.
        clean: Remove previous build outputs first.
        sign: Signing requested (applies to release builds only).
        signing: Credentials used when signing.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    app_name: str = Field(default="slint_app", min_length=1)
    build_type: BuildType = BuildType.DEBUG
    output_format: OutputFormat = OutputFormat.APK
    architectures: list[Architecture] = Field(
        default_factory=lambda: list(DEFAULT_ARCHITECTURES)
    )
    clean: bool = False
    sign: bool = False
    signing: SigningConfig = Field(default_factory=SigningConfig)

    @field_validator("architectures")
    @classmethod
    def validate_architectures(cls, v: list[Architecture]) -> list[Architecture]:
        """Drop duplicates while keeping order; require at least one."""
        unique = list(dict.fromkeys(v))
        if not unique:
            raise ValueError("at least one architecture is required")
        return unique

    @property
    def should_sign(self) -> bool:
        """Signing applies only when requested for a release build."""
        return self.sign and self.build_type is BuildType.RELEASE

    @property
    def gradle_task(self) -> str:
        return gradle_task(self.output_format, self.build_type)


@dataclass
class BuildOutcome:
    """Result of a completed build.

    Attributes:
        config: Configuration the build ran with.
        gradle_task: Gradle task that produced the artifact.
        gradle_output: Artifact path inside the Gradle build tree.
        artifact_path: Final top-level artifact (raw copy or signed).
        signed: Whether the artifact was signed.
        alignment: Outcome of the zipalign step.
        libraries: Native libraries produced by cargo-ndk.
        warnings: Degradations that did not abort the build.
        duration: Wall-clock duration in seconds.
    """

    config: BuildConfig
    gradle_task: str
    gradle_output: Path
    artifact_path: Path
    signed: bool
    alignment: AlignmentOutcome = AlignmentOutcome.NOT_APPLICABLE
    libraries: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "app_name": self.config.app_name,
            "build_type": self.config.build_type.value,
            "output_format": self.config.output_format.value,
            "architectures": [a.value for a in self.config.architectures],
            "gradle_task": self.gradle_task,
            "gradle_output": str(self.gradle_output),
            "artifact_path": str(self.artifact_path),
            "signed": self.signed,
            "alignment": self.alignment.value,
            "libraries": [str(p) for p in self.libraries],
            "warnings": self.warnings,
            "duration": round(self.duration, 3),
        }


__all__ = [
    "GRADLE_TASKS",
    "BuildConfig",
    "BuildOutcome",
    "SigningConfig",
    "gradle_task",
    "parse_architectures",
]
