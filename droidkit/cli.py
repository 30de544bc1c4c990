"""Thin CLI wrapper for droidkit.

This module provides the command-line interfaces using Typer:
- ``droidkit``: build, install, run, launch, uninstall, log, logcat,
  devices, emulator, clean, help and config
- ``droidkit-build``: the build orchestrator with every build flag

All business logic is delegated to the builds and device modules.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any, NoReturn

import click
import typer
from typer.core import TyperCommand, TyperGroup
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from droidkit import __version__
from droidkit.builds.models import (
    BuildConfig,
    BuildOutcome,
    SigningConfig,
    parse_architectures,
)
from droidkit.config import Settings, get_settings, print_settings_json
from droidkit.device.emulator import BootResult
from droidkit.device.service import USAGE, DeviceOrchestrator
from droidkit.errors import DroidkitError
from droidkit.types import (
    ALL_ARCHITECTURES,
    DEFAULT_ARCHITECTURES,
    AlignmentOutcome,
    BuildType,
    Command,
    OutputFormat,
)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
INTERRUPTED_EXIT_CODE = 130


class _UsageErrorExitMixin:
    """Report Click usage errors (unknown command or option) with exit 1."""

    def make_context(self, *args: Any, **kwargs: Any) -> click.Context:
        try:
            return super().make_context(*args, **kwargs)  # type: ignore[misc]
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)  # type: ignore[misc]
        except click.UsageError as e:
            e.exit_code = 1
            raise


class DroidkitGroup(_UsageErrorExitMixin, TyperGroup):
    pass


class DroidkitCommand(_UsageErrorExitMixin, TyperCommand):
    pass


app = typer.Typer(
    name="droidkit",
    help="droidkit - build, install, run, and debug Rust Android apps",
    cls=DroidkitGroup,
    context_settings=CONTEXT_SETTINGS,
)
build_app = typer.Typer(
    name="droidkit-build",
    help="Android Build Script - builds the APK/AAB from the Rust library",
    add_completion=False,
    context_settings=CONTEXT_SETTINGS,
)
console = Console()


def configure_logging(level: str) -> None:
    """Install a rich log handler on the root logger once."""
    root = logging.getLogger()
    if any(isinstance(h, RichHandler) for h in root.handlers):
        return
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


def _fail(error: DroidkitError, json_output: bool = False) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    if json_output:
        _echo_json({"success": False, "error": error.to_dict()})
    else:
        console.print(f"[red]Error: {escape(error.message)}[/red]")
        if error.hint:
            console.print(escape(error.hint))
    raise typer.Exit(code=1)


def _load_settings(json_output: bool = False, **overrides: Any) -> Settings:
    try:
        return get_settings(**overrides)
    except DroidkitError as e:
        _fail(e, json_output)


def _orchestrator(json_output: bool = False) -> DeviceOrchestrator:
    settings = _load_settings(json_output)
    configure_logging(settings.log_level)
    return DeviceOrchestrator(settings)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"droidkit version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """droidkit - build, install, run, and debug Rust Android apps."""
    if verbose:
        configure_logging("DEBUG")
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _print_outcome(outcome: BuildOutcome) -> None:
    kind = outcome.config.output_format.value.upper()
    console.print(f"\n[green]✓ {kind} built successfully![/green]")
    console.print(f"  {escape(str(outcome.gradle_output))}")
    if outcome.signed:
        signed_path = escape(str(outcome.artifact_path))
        console.print(f"[green]✓ Signed {kind}: {signed_path}[/green]")
        if outcome.alignment is AlignmentOutcome.ALIGNED:
            console.print("  16 KB page alignment applied")
    else:
        console.print(f"\nCopied to: {escape(str(outcome.artifact_path))}")
    for warning in outcome.warnings:
        console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")
    console.print("\n[green]=== Build Complete ===[/green]")


def build_command(
    release: Annotated[
        bool,
        typer.Option("--release", "-r", help="Build release (default: debug)"),
    ] = False,
    bundle: Annotated[
        bool,
        typer.Option("--bundle", "-b", help="Build AAB instead of APK (Play Store)"),
    ] = False,
    arch: Annotated[
        str | None,
        typer.Option(
            "--arch",
            "-a",
            help="Target architecture(s), comma-separated: "
            "arm64-v8a, armeabi-v7a, x86_64, x86 (default: arm64-v8a,x86_64)",
        ),
    ] = None,
    all_arch: Annotated[
        bool,
        typer.Option("--all-arch", help="Build for ALL architectures (slow)"),
    ] = False,
    clean: Annotated[
        bool,
        typer.Option("--clean", "-c", help="Clean build (removes previous artifacts)"),
    ] = False,
    sign: Annotated[
        bool,
        typer.Option("--sign", "-s", help="Sign the build (release only)"),
    ] = False,
    keystore: Annotated[
        Path | None,
        typer.Option("--keystore", help="Path to keystore file"),
    ] = None,
    keystore_pass: Annotated[
        str | None,
        typer.Option("--keystore-pass", help="Keystore password"),
    ] = None,
    key_alias: Annotated[
        str | None,
        typer.Option("--key-alias", help="Key alias in keystore"),
    ] = None,
    key_pass: Annotated[
        str | None,
        typer.Option("--key-pass", help="Key password"),
    ] = None,
    app_name: Annotated[
        str | None,
        typer.Option("--app-name", help="Base name for the output APK/AAB"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build the Android APK or AAB from the Rust library.

    Signing credentials fall back to KEYSTORE_PATH, KEYSTORE_PASSWORD,
    KEY_ALIAS and KEY_PASSWORD.
    """
    from droidkit.builds.service import build

    overrides: dict[str, Any] = {}
    if app_name is not None:
        overrides["app_name"] = app_name
    settings = _load_settings(json_output, **overrides)
    configure_logging(settings.log_level)

    try:
        if all_arch:
            architectures = list(ALL_ARCHITECTURES)
        elif arch:
            architectures = parse_architectures(arch)
        else:
            architectures = list(DEFAULT_ARCHITECTURES)

        config = BuildConfig(
            app_name=settings.app_name,
            build_type=BuildType.RELEASE if release else BuildType.DEBUG,
            output_format=OutputFormat.AAB if bundle else OutputFormat.APK,
            architectures=architectures or list(DEFAULT_ARCHITECTURES),
            clean=clean,
            sign=sign,
            signing=SigningConfig.from_settings(
                settings,
                keystore_path=keystore,
                keystore_password=keystore_pass,
                key_alias=key_alias,
                key_password=key_pass,
            ),
        )

        if not json_output:
            console.print("[green]=== Android Build ===[/green]")
            console.print(f"Build type: {config.build_type.value}")
            console.print(f"Build format: {config.output_format.value}")
            console.print(
                f"Architectures: {' '.join(a.value for a in config.architectures)}"
            )
            if config.sign:
                console.print("Signing: enabled")

        # Tool output goes to stderr so stdout stays a single JSON document
        tool_stdout = sys.stderr if json_output else None
        outcome = build(config, settings, tool_stdout=tool_stdout)
    except DroidkitError as e:
        _fail(e, json_output)

    if json_output:
        _echo_json({"success": True, **outcome.to_dict()})
    else:
        _print_outcome(outcome)


app.command("build")(build_command)
build_app.command(cls=DroidkitCommand)(build_command)


@app.command()
def install(
    release: Annotated[
        bool,
        typer.Option("--release", "-r", help="Install the release APK"),
    ] = False,
) -> None:
    """Install the APK on the connected device."""
    orchestrator = _orchestrator()
    try:
        apk_path = orchestrator.dispatch(Command.INSTALL, release=release)
    except DroidkitError as e:
        _fail(e)
    console.print(f"[green]✓ Installed successfully: {escape(str(apk_path))}[/green]")


@app.command("run")
def run_command(
    release: Annotated[
        bool,
        typer.Option("--release", "-r", help="Build and install the release APK"),
    ] = False,
) -> None:
    """Build, install, and launch the app on the device."""
    orchestrator = _orchestrator()
    console.print(
        f"[green]=== Building Android APK "
        f"({'release' if release else 'debug'}) ===[/green]"
    )
    try:
        outcome = orchestrator.dispatch(Command.RUN, release=release)
    except DroidkitError as e:
        _fail(e)
    console.print(f"[green]✓ Built {escape(str(outcome.artifact_path))}[/green]")
    console.print("[green]✓ Installed and launched[/green]")


@app.command()
def launch() -> None:
    """Launch the already installed app."""
    orchestrator = _orchestrator()
    try:
        component = orchestrator.dispatch(Command.LAUNCH)
    except DroidkitError as e:
        _fail(e)
    console.print(f"[green]✓ App launched: {escape(component)}[/green]")


def uninstall() -> None:
    """Uninstall the app from the device."""
    orchestrator = _orchestrator()
    try:
        package = orchestrator.dispatch(Command.UNINSTALL)
    except DroidkitError as e:
        _fail(e)
    console.print(f"[green]✓ App uninstalled: {escape(package)}[/green]")


app.command("uninstall")(uninstall)
app.command("clean-device", hidden=True)(uninstall)


def _stream(command: Command, banner: str) -> None:
    orchestrator = _orchestrator()
    console.print(f"[green]=== {banner} (Ctrl+C to stop) ===[/green]")
    try:
        exit_code = orchestrator.dispatch(command, sink=typer.echo)
    except DroidkitError as e:
        _fail(e)
    except KeyboardInterrupt:
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE) from None
    if exit_code:
        raise typer.Exit(code=exit_code)


def log() -> None:
    """Show filtered logcat for Rust/app output."""
    _stream(Command.LOG, "Showing Rust/App logs")


app.command("log")(log)
app.command("debug", hidden=True)(log)


@app.command()
def logcat() -> None:
    """Show the full, unfiltered logcat."""
    _stream(Command.LOGCAT, "Full logcat")


@app.command()
def devices(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List connected devices and emulators."""
    orchestrator = _orchestrator(json_output)
    try:
        found = orchestrator.dispatch(Command.DEVICES)
    except DroidkitError as e:
        _fail(e, json_output)

    if json_output:
        _echo_json([d.to_dict() for d in found])
        return

    console.print("[green]=== Connected Devices ===[/green]")
    if not found:
        console.print("[yellow]No devices found[/yellow]")
        return
    for device in found:
        details = " ".join(f"{k}:{v}" for k, v in device.properties.items())
        console.print(f"  {escape(device.serial)}  {device.state}  {escape(details)}")


def emulator(
    name: Annotated[
        str | None,
        typer.Argument(help="AVD to start (lists available AVDs when omitted)"),
    ] = None,
) -> None:
    """Start an emulator, or list the available ones."""
    orchestrator = _orchestrator()
    if name:
        console.print(f"[yellow]Starting emulator: {escape(name)}[/yellow]")
        console.print("Waiting for device to boot...")
    try:
        result = orchestrator.dispatch(Command.EMULATOR, name=name)
    except DroidkitError as e:
        _fail(e)
    except KeyboardInterrupt:
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE) from None

    if isinstance(result, BootResult):
        ready = result.serial or result.avd_name
        console.print(f"[green]✓ Emulator ready ({ready})[/green]")
        return

    console.print("[green]=== Available Emulators ===[/green]")
    for avd in result:
        console.print(f"  {escape(avd)}")
    console.print("\nStart an emulator with: droidkit emulator <name>")


app.command("emulator")(emulator)
app.command("emu", hidden=True)(emulator)


@app.command()
def clean() -> None:
    """Clean build artifacts."""
    orchestrator = _orchestrator()
    console.print("[yellow]Cleaning build artifacts...[/yellow]")
    try:
        removed = orchestrator.dispatch(Command.CLEAN)
    except DroidkitError as e:
        _fail(e)
    console.print(f"[green]✓ Clean complete ({len(removed)} removed)[/green]")


@app.command("help")
def help_command() -> None:
    """Show the command overview."""
    typer.echo(USAGE)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _load_settings(json_output)
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    def show(value: object) -> str:
        return escape(str(value)) if value is not None else "(not set)"

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Project:[/bold]")
    console.print(f"  Project root:        {show(settings.project_root)}")
    console.print(f"  App name:            {show(settings.app_name)}")
    console.print(f"  Package name:        {show(settings.effective_package_name)}")
    console.print(f"  Activity:            {show(settings.activity_name)}")
    console.print(f"  Rust crate:          {show(settings.rust_crate)}")
    console.print()
    console.print("[bold]Toolchain:[/bold]")
    console.print(f"  Android SDK:         {show(settings.android_home)}")
    console.print(f"  Android NDK:         {show(settings.android_ndk_home)}")
    console.print(f"  Windows SDK:         {show(settings.win_android_sdk)}")
    console.print()
    console.print("[bold]Signing:[/bold]")
    console.print(f"  Keystore:            {show(settings.keystore_path)}")
    console.print(f"  Key alias:           {show(settings.key_alias)}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Build timeout:       {settings.build_timeout}")
    console.print(f"  Sign timeout:        {settings.sign_timeout}")
    console.print(f"  Device timeout:      {settings.device_timeout}")
    console.print(f"  Emulator boot:       {settings.emulator_boot_timeout}")


__all__ = ["app", "build_app", "configure_logging"]
