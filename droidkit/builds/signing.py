"""Release signing for APK and AAB artifacts.

This module handles:
- Validating signing credentials and the keystore file
- Signing AABs with jarsigner
- Aligning APKs to 16 KiB pages with zipalign (optional) and signing
  them with apksigner

A missing zipalign is a capability degradation: the APK is signed
unaligned and the outcome is reported as AlignmentOutcome.SKIPPED.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING

from droidkit.errors import (
    IncompleteSigningConfigError,
    KeystoreNotFoundError,
    SigningToolMissingError,
)
from droidkit.process import run_tool
from droidkit.types import AlignmentOutcome, OutputFormat

if TYPE_CHECKING:
    from pydantic import SecretStr

    from droidkit.builds.models import SigningConfig
    from droidkit.toolchain.environment import ToolchainEnvironment

logger = logging.getLogger(__name__)

DEFAULT_PAGE_ALIGNMENT = 16384


@dataclass
class SigningResult:
    """Result of signing an artifact.

    Attributes:
        signed_path: Path of the signed artifact.
        alignment: Outcome of the zipalign step.
        warnings: Degradations encountered while signing.
    """

    signed_path: Path
    alignment: AlignmentOutcome
    warnings: list[str]


def _secret(value: SecretStr | None) -> str:
    return value.get_secret_value() if value is not None else ""


def validate_signing(signing: SigningConfig) -> None:
    """Check that all credentials are present and the keystore exists.

    Raises:
        IncompleteSigningConfigError: A credential field is missing.
        KeystoreNotFoundError: The keystore file does not exist.
    """
    missing = signing.missing_fields()
    if missing:
        raise IncompleteSigningConfigError(missing)

    if signing.keystore_path is None or not signing.keystore_path.is_file():
        raise KeystoreNotFoundError(str(signing.keystore_path))


def find_signing_tool(name: str, toolchain: ToolchainEnvironment | None) -> str | None:
    """Locate a tool on PATH, falling back to the SDK build-tools."""
    on_path = shutil.which(name)
    if on_path is not None:
        return on_path
    if toolchain is not None:
        bundled = toolchain.build_tool(name)
        if bundled is not None:
            return str(bundled)
    return None


def find_zipalign(toolchain: ToolchainEnvironment | None) -> str | None:
    """Locate zipalign in the SDK build-tools, falling back to PATH."""
    if toolchain is not None:
        bundled = toolchain.build_tool("zipalign")
        if bundled is not None:
            return str(bundled)
    return shutil.which("zipalign")


def compose_jarsigner_command(
    jarsigner: str,
    signing: SigningConfig,
    input_path: Path,
    output_path: Path,
) -> list[str]:
    """Compose the jarsigner command for an AAB."""
    return [
        jarsigner,
        "-verbose",
        "-sigalg",
        "SHA256withRSA",
        "-digestalg",
        "SHA-256",
        "-keystore",
        str(signing.keystore_path),
        "-storepass",
        _secret(signing.keystore_password),
        "-keypass",
        _secret(signing.key_password),
        "-signedjar",
        str(output_path),
        str(input_path),
        str(signing.key_alias),
    ]


def compose_apksigner_command(
    apksigner: str,
    signing: SigningConfig,
    input_path: Path,
    output_path: Path,
) -> list[str]:
    """Compose the apksigner command for an APK."""
    return [
        apksigner,
        "sign",
        "--ks",
        str(signing.keystore_path),
        "--ks-pass",
        f"pass:{_secret(signing.keystore_password)}",
        "--ks-key-alias",
        str(signing.key_alias),
        "--key-pass",
        f"pass:{_secret(signing.key_password)}",
        "--out",
        str(output_path),
        str(input_path),
    ]


def sign_aab(
    input_path: Path,
    output_path: Path,
    signing: SigningConfig,
    toolchain: ToolchainEnvironment | None = None,
    timeout: float | None = None,
    tool_stdout: IO[str] | None = None,
) -> SigningResult:
    """Sign an AAB with jarsigner.

    Raises:
        SigningToolMissingError: jarsigner is not available.
        ToolExecutionError: jarsigner failed.
    """
    jarsigner = find_signing_tool("jarsigner", toolchain)
    if jarsigner is None:
        raise SigningToolMissingError("jarsigner")

    run_tool(
        compose_jarsigner_command(jarsigner, signing, input_path, output_path),
        timeout=timeout,
        stdout=tool_stdout,
    )
    logger.info("Signed AAB: %s", output_path)
    return SigningResult(
        signed_path=output_path,
        alignment=AlignmentOutcome.NOT_APPLICABLE,
        warnings=[],
    )


def align_apk(
    input_path: Path,
    aligned_path: Path,
    toolchain: ToolchainEnvironment | None = None,
    page_alignment: int = DEFAULT_PAGE_ALIGNMENT,
    timeout: float | None = None,
) -> AlignmentOutcome:
    """Align an APK for 16 KiB page devices, or copy it when zipalign is absent.

    Returns:
        ALIGNED when zipalign ran, SKIPPED when the APK was copied as-is.
    """
    zipalign = find_zipalign(toolchain)
    if zipalign is None:
        logger.warning("zipalign not found, skipping %d-byte alignment", page_alignment)
        shutil.copyfile(input_path, aligned_path)
        return AlignmentOutcome.SKIPPED

    # zipalign refuses to overwrite an existing output
    aligned_path.unlink(missing_ok=True)
    run_tool(
        [zipalign, "-v", "-p", str(page_alignment), str(input_path), str(aligned_path)],
        capture=True,
        timeout=timeout,
    )
    return AlignmentOutcome.ALIGNED


def sign_apk(
    input_path: Path,
    aligned_path: Path,
    output_path: Path,
    signing: SigningConfig,
    toolchain: ToolchainEnvironment | None = None,
    page_alignment: int = DEFAULT_PAGE_ALIGNMENT,
    timeout: float | None = None,
    tool_stdout: IO[str] | None = None,
) -> SigningResult:
    """Align then sign an APK with apksigner.

    The intermediate aligned APK is removed once signing succeeds.

    Raises:
        SigningToolMissingError: apksigner is not available.
        ToolExecutionError: zipalign or apksigner failed.
    """
    apksigner = find_signing_tool("apksigner", toolchain)
    if apksigner is None:
        raise SigningToolMissingError("apksigner")

    warnings: list[str] = []
    alignment = align_apk(
        input_path,
        aligned_path,
        toolchain=toolchain,
        page_alignment=page_alignment,
        timeout=timeout,
    )
    if alignment is AlignmentOutcome.SKIPPED:
        warnings.append("zipalign not found; APK signed without 16 KB alignment")

    run_tool(
        compose_apksigner_command(apksigner, signing, aligned_path, output_path),
        timeout=timeout,
        stdout=tool_stdout,
    )
    aligned_path.unlink(missing_ok=True)

    logger.info("Signed APK: %s", output_path)
    return SigningResult(
        signed_path=output_path, alignment=alignment, warnings=warnings
    )


def sign_artifact(
    output_format: OutputFormat,
    input_path: Path,
    signed_path: Path,
    aligned_path: Path,
    signing: SigningConfig,
    toolchain: ToolchainEnvironment | None = None,
    page_alignment: int = DEFAULT_PAGE_ALIGNMENT,
    timeout: float | None = None,
    tool_stdout: IO[str] | None = None,
) -> SigningResult:
    """Validate credentials and sign an APK or AAB.

    Args:
        output_format: apk or aab.
        input_path: Unsigned artifact from Gradle.
        signed_path: Destination of the signed artifact.
        aligned_path: Intermediate aligned APK (unused for AAB).
        signing: Credentials.
        toolchain: Resolved toolchain for build-tools lookup.
        page_alignment: zipalign page size.
        timeout: Per-tool timeout in seconds.
        tool_stdout: Destination for signing tool output (default: inherit).

    Returns:
        SigningResult.

    Raises:
        IncompleteSigningConfigError: A credential field is missing.
        KeystoreNotFoundError: The keystore file does not exist.
        SigningToolMissingError: The signing tool is not available.
    """
    logger.info("Signing build")
    validate_signing(signing)

    if output_format is OutputFormat.AAB:
        return sign_aab(
            input_path,
            signed_path,
            signing,
            toolchain=toolchain,
            timeout=timeout,
            tool_stdout=tool_stdout,
        )
    return sign_apk(
        input_path,
        aligned_path,
        signed_path,
        signing,
        toolchain=toolchain,
        page_alignment=page_alignment,
        timeout=timeout,
        tool_stdout=tool_stdout,
    )


__all__ = [
    "DEFAULT_PAGE_ALIGNMENT",
    "SigningResult",
    "align_apk",
    "compose_apksigner_command",
    "compose_jarsigner_command",
    "find_signing_tool",
    "find_zipalign",
    "sign_aab",
    "sign_apk",
    "sign_artifact",
    "validate_signing",
]
