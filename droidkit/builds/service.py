"""Build service module.

This module provides the high-level build API:
- build(): clean (optional) -> prerequisites -> cross-compile -> package ->
  sign or publish
- default_build_config(): configuration used by the device orchestrator

Any fatal error aborts the build immediately. Intermediate files from a
partial build are left in place; a re-run overwrites them.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import IO, TYPE_CHECKING

from droidkit.builds.artifacts import clean_build_outputs, publish_artifact
from droidkit.builds.models import BuildConfig, BuildOutcome, SigningConfig
from droidkit.builds.runner import cross_compile, package
from droidkit.builds.signing import sign_artifact
from droidkit.layout import ProjectLayout
from droidkit.toolchain.prerequisites import check_prerequisites
from droidkit.types import AlignmentOutcome, BuildType

if TYPE_CHECKING:
    from droidkit.config import Settings

logger = logging.getLogger(__name__)


def default_build_config(settings: Settings, *, release: bool = False) -> BuildConfig:
    """Return the configuration used by ``droidkit build/run``.

    Args:
        settings: Effective settings.
        release: Build the release variant.

    Returns:
        BuildConfig with default architectures and APK output.
    """
    return BuildConfig(
        app_name=settings.app_name,
        build_type=BuildType.RELEASE if release else BuildType.DEBUG,
        signing=SigningConfig.from_settings(settings),
    )


def build(
    config: BuildConfig,
    settings: Settings,
    layout: ProjectLayout | None = None,
    tool_stdout: IO[str] | None = None,
) -> BuildOutcome:
    """Build, and optionally sign, an Android artifact.

    Args:
        config: Validated build configuration.
        settings: Effective settings (timeouts, crate, alignment).
        layout: Project layout; derived from settings.project_root if omitted.
        tool_stdout: Destination for external tool output; defaults to this
            process's stdout. Pass sys.stderr to keep stdout machine-readable.

    Returns:
        BuildOutcome describing the final artifact.

    Raises:
        MissingToolchainError: rustc, cargo-ndk, SDK or NDK is missing.
        MissingRustTargetError: A Rust target could not be installed.
        MissingAndroidProjectError: android/gradlew is absent.
        PackagingFailedError: Gradle did not produce the artifact.
        IncompleteSigningConfigError: Signing credentials are incomplete.
        KeystoreNotFoundError: The keystore file does not exist.
        SigningToolMissingError: jarsigner/apksigner is unavailable.
        ToolExecutionError: An external tool failed.
    """
    if layout is None:
        layout = ProjectLayout(settings.project_root)

    started = time.monotonic()
    warnings: list[str] = []

    logger.info(
        "Android build: type=%s format=%s architectures=%s signing=%s",
        config.build_type.value,
        config.output_format.value,
        ",".join(a.value for a in config.architectures),
        "enabled" if config.should_sign else "disabled",
    )
    if config.sign and not config.should_sign:
        message = "Signing applies to release builds only; debug build left unsigned"
        logger.warning(message)
        warnings.append(message)

    if config.clean:
        clean_build_outputs(layout, config.architectures)

    report = check_prerequisites(
        config.architectures, settings, layout, tool_stdout=tool_stdout
    )
    toolchain = report.toolchain

    libraries = cross_compile(
        config, layout, toolchain, settings, tool_stdout=tool_stdout
    )
    gradle_output = package(
        config, layout, toolchain, settings, tool_stdout=tool_stdout
    )

    alignment = AlignmentOutcome.NOT_APPLICABLE
    if config.should_sign:
        result = sign_artifact(
            config.output_format,
            gradle_output,
            signed_path=layout.artifact_path(
                config.app_name, config.build_type, config.output_format, signed=True
            ),
            aligned_path=layout.aligned_apk_path(config.app_name, config.build_type),
            signing=config.signing,
            toolchain=toolchain,
            page_alignment=settings.page_alignment,
            timeout=settings.sign_timeout,
            tool_stdout=tool_stdout,
        )
        artifact_path: Path = result.signed_path
        alignment = result.alignment
        warnings.extend(result.warnings)
    else:
        artifact_path = publish_artifact(
            gradle_output,
            layout.artifact_path(
                config.app_name, config.build_type, config.output_format
            ),
        )

    duration = time.monotonic() - started
    logger.info("Build complete in %.1fs: %s", duration, artifact_path)

    return BuildOutcome(
        config=config,
        gradle_task=config.gradle_task,
        gradle_output=gradle_output,
        artifact_path=artifact_path,
        signed=config.should_sign,
        alignment=alignment,
        libraries=libraries,
        warnings=warnings,
        duration=duration,
    )


__all__ = ["build", "default_build_config"]
