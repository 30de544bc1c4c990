"""Project filesystem layout and artifact naming.

Every path the orchestrators read or write is derived here from the
project root, so the build, device and clean operations agree on where
artifacts live.
"""

from dataclasses import dataclass
from pathlib import Path

from droidkit.types import Architecture, BuildType, OutputFormat

# Gradle output locations relative to android/app/build/outputs
_GRADLE_OUTPUTS: dict[tuple[OutputFormat, BuildType], str] = {
    (OutputFormat.APK, BuildType.DEBUG): "apk/debug/app-debug.apk",
    (OutputFormat.APK, BuildType.RELEASE): "apk/release/app-release-unsigned.apk",
    (OutputFormat.AAB, BuildType.DEBUG): "bundle/debug/app-debug.aab",
    (OutputFormat.AAB, BuildType.RELEASE): "bundle/release/app-release.aab",
}


def artifact_name(
    app_name: str,
    build_type: BuildType,
    output_format: OutputFormat,
    *,
    suffix: str = "",
) -> str:
    """Return the top-level artifact filename.

    Args:
        app_name: Application base name.
        build_type: debug or release.
        output_format: apk or aab.
        suffix: Optional variant marker ("signed", "aligned").

    Returns:
        Filename such as ``slint_app-release-signed.apk``.
    """
    stem = f"{app_name}-{build_type.value}"
    if suffix:
        stem = f"{stem}-{suffix}"
    return f"{stem}.{output_format.value}"


@dataclass(frozen=True)
class ProjectLayout:
    """Paths of a Rust + Gradle Android project.

    Attributes:
        root: Project root (contains android/ and the Cargo target/ dir).
    """

    root: Path

    @property
    def android_dir(self) -> Path:
        return self.root / "android"

    @property
    def gradlew(self) -> Path:
        return self.android_dir / "gradlew"

    @property
    def jni_libs_dir(self) -> Path:
        return self.android_dir / "app" / "src" / "main" / "jniLibs"

    @property
    def app_build_dir(self) -> Path:
        return self.android_dir / "app" / "build"

    @property
    def gradle_cache_dir(self) -> Path:
        return self.android_dir / ".gradle"

    @property
    def cargo_target_dir(self) -> Path:
        return self.root / "target"

    def rust_target_dir(self, arch: Architecture) -> Path:
        """Per-architecture Cargo compilation cache."""
        return self.cargo_target_dir / arch.rust_target

    def gradle_output(self, output_format: OutputFormat, build_type: BuildType) -> Path:
        """Where Gradle writes the artifact for a format/build type."""
        return (
            self.app_build_dir
            / "outputs"
            / _GRADLE_OUTPUTS[(output_format, build_type)]
        )

    def artifact_path(
        self,
        app_name: str,
        build_type: BuildType,
        output_format: OutputFormat,
        *,
        signed: bool = False,
    ) -> Path:
        """Top-level artifact path (raw or signed)."""
        return self.root / artifact_name(
            app_name, build_type, output_format, suffix="signed" if signed else ""
        )

    def aligned_apk_path(self, app_name: str, build_type: BuildType) -> Path:
        """Intermediate zipaligned APK, removed after signing."""
        return self.root / artifact_name(
            app_name, build_type, OutputFormat.APK, suffix="aligned"
        )

    def intermediate_dirs(self) -> list[Path]:
        """Gradle and jniLibs directories recreated by every build."""
        return [self.app_build_dir, self.jni_libs_dir, self.gradle_cache_dir]


__all__ = ["ProjectLayout", "artifact_name"]
