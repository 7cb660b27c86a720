"""Command runners - the injectable subprocess layer.

The pipeline only talks to a ``CommandRunner``. The CLI uses
``SubprocessRunner`` so tool output reaches the terminal untouched; the MCP
server uses ``CapturingRunner`` because its stdout carries the protocol.
Tests substitute a fake that records commands.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from .policy import ExternalCommand

logger = logging.getLogger(__name__)

# Output buffer limits (security: prevent DoS)
MAX_OUTPUT_BYTES: int = 5_000_000  # 5MB total
MAX_OUTPUT_LINE: int = 10_000  # 10KB per line

# Shell conventions for commands that never ran
EXIT_NOT_EXECUTABLE: int = 126
EXIT_NOT_FOUND: int = 127
EXIT_SIGNAL_BASE: int = 128


@dataclass
class RunOutput:
    """Exit status plus whatever output the runner captured."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""


class CommandRunner(Protocol):
    """Runs one external command to completion."""

    def run(self, command: ExternalCommand) -> RunOutput: ...


def normalize_exit_code(returncode: int) -> int:
    """Map a Popen return code to the status a shell would report.

    A child killed by signal N has ``returncode == -N``; shells report 128+N.
    """
    if returncode < 0:
        return EXIT_SIGNAL_BASE - returncode
    return returncode


def limit_output(text: str) -> str:
    """Truncate long lines and drop the oldest lines past MAX_OUTPUT_BYTES."""
    lines: list[str] = []
    total = 0
    for line in text.splitlines(keepends=True):
        if len(line) > MAX_OUTPUT_LINE:
            line = line[:MAX_OUTPUT_LINE] + "...[truncated]\n"
        lines.append(line)
        total += len(line)
    start = 0
    while total > MAX_OUTPUT_BYTES and start < len(lines):
        total -= len(lines[start])
        start += 1
    return "".join(lines[start:])


def _launch_failure(command: ExternalCommand, exc: OSError) -> RunOutput:
    if isinstance(exc, FileNotFoundError):
        logger.error(f"Command not found: {command.program}")
        return RunOutput(EXIT_NOT_FOUND, stderr=f"{command.program}: command not found\n")
    logger.error(f"Cannot execute {command.program}: {exc}")
    return RunOutput(EXIT_NOT_EXECUTABLE, stderr=f"{command.program}: {exc}\n")


class SubprocessRunner:
    """Runs commands with inherited stdio; output is passed through unmodified."""

    def run(self, command: ExternalCommand) -> RunOutput:
        logger.info(f"Running: {command}")
        # Never use shell=True (security)
        try:
            completed = subprocess.run(list(command.argv), cwd=command.cwd, check=False)
        except OSError as e:
            return _launch_failure(command, e)
        return RunOutput(normalize_exit_code(completed.returncode))


class CapturingRunner:
    """Runs commands with stdout/stderr captured and size-limited."""

    def run(self, command: ExternalCommand) -> RunOutput:
        logger.info(f"Running (captured): {command}")
        try:
            completed = subprocess.run(
                list(command.argv),
                cwd=command.cwd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as e:
            return _launch_failure(command, e)
        return RunOutput(
            normalize_exit_code(completed.returncode),
            stdout=limit_output(completed.stdout or ""),
            stderr=limit_output(completed.stderr or ""),
        )
