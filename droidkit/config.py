"""Configuration settings for droidkit.

Uses pydantic-settings for config parsing from environment variables,
an optional ``droidkit.yaml`` project file, and defaults. Configuration
precedence: CLI flags > env vars > project file > defaults.

The conventional Android variables (ANDROID_HOME, ANDROID_NDK_HOME,
WIN_ANDROID_SDK, KEYSTORE_PATH, ...) are honoured under their usual names
in addition to the DROIDKIT_ prefixed ones.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from droidkit.errors import InvalidConfigurationError

PROJECT_FILE = "droidkit.yaml"


def _default_project_root() -> Path:
    """Return the default project root (current working directory)."""
    return Path.cwd()


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the DROIDKIT_ prefix
    (or the conventional Android names for SDK, NDK and signing values).
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="DROIDKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file=PROJECT_FILE,
        extra="ignore",
        populate_by_name=True,
    )

    # Project identity
    project_root: Path = Field(
        default_factory=_default_project_root,
        description="Root of the project (contains android/ and target/)",
    )
    app_name: str = Field(
        default="slint_app",
        min_length=1,
        description="Base name for output APK/AAB files",
    )
    package_name: str | None = Field(
        default=None,
        description="Android application id (default: com.<app_name>.app)",
    )
    activity_name: str = Field(
        default="android.app.NativeActivity",
        description="Entry-point activity class",
    )
    rust_crate: str = Field(
        default="slint-android",
        description="Cargo package built into the native library",
    )
    log_marker: str = Field(
        default="slint",
        description="App-specific marker kept by the filtered log view",
    )

    # Toolchain locations
    android_home: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "DROIDKIT_ANDROID_HOME", "ANDROID_HOME", "ANDROID_SDK_ROOT"
        ),
        description="Android SDK root",
    )
    android_ndk_home: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("DROIDKIT_ANDROID_NDK_HOME", "ANDROID_NDK_HOME"),
        description="Android NDK root",
    )
    win_android_sdk: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("DROIDKIT_WIN_ANDROID_SDK", "WIN_ANDROID_SDK"),
        description="Windows-side SDK used for adb.exe/emulator.exe under WSL",
    )

    # Signing credentials (fallback when not given as flags)
    keystore_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("DROIDKIT_KEYSTORE_PATH", "KEYSTORE_PATH"),
    )
    keystore_password: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "DROIDKIT_KEYSTORE_PASSWORD", "KEYSTORE_PASSWORD"
        ),
    )
    key_alias: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DROIDKIT_KEY_ALIAS", "KEY_ALIAS"),
    )
    key_password: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("DROIDKIT_KEY_PASSWORD", "KEY_PASSWORD"),
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Alignment
    page_alignment: int = Field(
        default=16384,
        ge=4,
        description="zipalign page alignment in bytes (16 KiB for Android 15+)",
    )

    # Timeouts (in seconds)
    build_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for cargo and Gradle invocations",
    )
    sign_timeout: int = Field(
        default=600,
        ge=10,
        description="Timeout for zipalign/apksigner/jarsigner",
    )
    device_timeout: int = Field(
        default=300,
        ge=5,
        description="Timeout for adb commands (install, uninstall, start)",
    )
    emulator_boot_timeout: int = Field(
        default=300,
        ge=1,
        description="Maximum time to wait for an emulator to finish booting",
    )
    poll_interval: float = Field(
        default=1.0,
        gt=0,
        description="Interval between boot-completion polls",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def effective_package_name(self) -> str:
        """Application id used by adb, derived from app_name when unset."""
        return self.package_name or f"com.{self.app_name}.app"


def get_settings(**overrides: object) -> Settings:
    """Get the application settings.

    Args:
        overrides: Field values that take precedence over every other source.

    Returns:
        Settings instance loaded from environment.

    Raises:
        InvalidConfigurationError: A value fails validation.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            field_name = ".".join(str(part) for part in err["loc"]) or "settings"
            problems.append(f"{field_name}: {err['msg']}")
        raise InvalidConfigurationError(problems) from e


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Secret values are masked.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["PROJECT_FILE", "Settings", "get_settings", "print_settings_json"]
