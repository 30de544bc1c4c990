"""Subprocess execution for external tools.

This module handles:
- Running cargo, Gradle, signing tools and adb with explicit timeouts
- Passing toolchain environment overrides without touching os.environ
- Streaming long-running output (logcat) line by line

All tool invocations in droidkit go through this module.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from droidkit.errors import (
    MissingToolchainError,
    ToolExecutionError,
    ToolTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Result of a tool invocation.

    Attributes:
        command: The command that was executed (shell-quoted).
        exit_code: Process exit code.
        stdout: Captured standard output ("" when not captured).
        stderr: Captured standard error ("" when not captured).
        duration: Wall-clock duration in seconds.
    """

    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration: float

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def _merge_env(env_override: Mapping[str, str] | None) -> dict[str, str] | None:
    if not env_override:
        return None
    env = dict(os.environ)
    env.update(env_override)
    return env


def run_tool(
    cmd: Sequence[str | Path],
    *,
    cwd: Path | None = None,
    env_override: Mapping[str, str] | None = None,
    timeout: float | None = None,
    capture: bool = False,
    check: bool = True,
    stdout: IO[str] | None = None,
) -> ToolResult:
    """Execute an external tool.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env_override: Environment variables added on top of os.environ.
        timeout: Timeout in seconds (None = no timeout).
        capture: Capture stdout/stderr instead of inheriting the terminal.
        check: Raise ToolExecutionError on a non-zero exit code.
        stdout: Destination for the tool's stdout when not captured
            (default: inherit this process's stdout).

    Returns:
        ToolResult with execution details.

    Raises:
        MissingToolchainError: The executable does not exist.
        ToolTimeoutError: The command exceeded its timeout.
        ToolExecutionError: The command failed to start, or exited non-zero
            while check is set.
    """
    args = [str(part) for part in cmd]
    cmd_str = shlex.join(args)
    logger.debug("Executing: %s (cwd=%s)", cmd_str, cwd)

    started = time.monotonic()
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            env=_merge_env(env_override),
            timeout=timeout,
            stdout=subprocess.PIPE if capture else stdout,
            stderr=subprocess.PIPE if capture else None,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        logger.error("Executable not found: %s", args[0])
        raise MissingToolchainError(args[0]) from e
    except subprocess.TimeoutExpired as e:
        logger.error("Command timed out after %ss: %s", timeout, cmd_str)
        raise ToolTimeoutError(cmd_str, timeout or 0) from e
    except OSError as e:
        message = f"Failed to execute {args[0]}: {e}"
        logger.error(message)
        raise ToolExecutionError(message, command=cmd_str) from e

    duration = time.monotonic() - started
    tool_result = ToolResult(
        command=cmd_str,
        exit_code=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        duration=duration,
    )

    if check and not tool_result.success:
        message = f"{Path(args[0]).name} failed with exit code {result.returncode}"
        logger.error("%s: %s", message, cmd_str)
        raise ToolExecutionError(message, command=cmd_str, exit_code=result.returncode)

    logger.debug("Finished in %.1fs with exit code %d", duration, result.returncode)
    return tool_result


def stream_tool(
    cmd: Sequence[str | Path],
    *,
    sink: Callable[[str], None],
    line_filter: Callable[[str], bool] | None = None,
    env_override: Mapping[str, str] | None = None,
) -> int:
    """Run a tool and forward its output line by line.

    Blocks until the tool exits. On KeyboardInterrupt the child is
    terminated and the interrupt is re-raised.

    Args:
        cmd: Command and arguments.
        sink: Called with each forwarded line (without trailing newline).
        line_filter: Only lines for which this returns True are forwarded.
        env_override: Environment variables added on top of os.environ.

    Returns:
        The tool's exit code.
    """
    args = [str(part) for part in cmd]
    logger.debug("Streaming: %s", shlex.join(args))

    try:
        process = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            env=_merge_env(env_override),
        )
    except FileNotFoundError as e:
        raise MissingToolchainError(args[0]) from e

    try:
        for raw_line in process.stdout or ():
            line = raw_line.rstrip("\n")
            if line_filter is None or line_filter(line):
                sink(line)
        return process.wait()
    except KeyboardInterrupt:
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
        raise


__all__ = ["ToolResult", "run_tool", "stream_tool"]
