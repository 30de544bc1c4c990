"""Shared fixtures for droidkit tests."""

from pathlib import Path

import pytest

from droidkit.config import Settings
from droidkit.layout import ProjectLayout

_ENV_VARS = (
    "ANDROID_HOME",
    "ANDROID_SDK_ROOT",
    "ANDROID_NDK_HOME",
    "WIN_ANDROID_SDK",
    "KEYSTORE_PATH",
    "KEYSTORE_PASSWORD",
    "KEY_ALIAS",
    "KEY_PASSWORD",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test without host Android/signing variables or project files."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(f"DROIDKIT_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def project(tmp_path) -> Path:
    """A project root with a Gradle wrapper."""
    root = tmp_path / "project"
    android = root / "android"
    android.mkdir(parents=True)
    (android / "gradlew").write_text("#!/bin/sh\n")
    return root


@pytest.fixture
def layout(project) -> ProjectLayout:
    return ProjectLayout(project)


@pytest.fixture
def settings(project) -> Settings:
    return Settings(project_root=project, android_home=project / "sdk")
