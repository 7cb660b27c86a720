"""Build modes, result types and the error taxonomy.

State machine for a pipeline run:
IDLE → BUILDING → READY | FAILED
IDLE → CLEANED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .policy import ExternalCommand


class Mode(str, Enum):
    """Operational mode selected for one invocation."""

    DEFAULT = "default"
    DEBUG = "debug"
    TEST = "test"
    CLEAN = "clean"

    @property
    def is_build(self) -> bool:
        """Whether this mode runs the configure/compile pipeline."""
        return self is not Mode.CLEAN

    @property
    def is_debug(self) -> bool:
        return self is Mode.DEBUG

    @property
    def runs_tests(self) -> bool:
        return self is Mode.TEST


# Literals accepted on the command line. DEFAULT is selected by passing nothing.
MODE_LITERALS: tuple[str, ...] = (Mode.DEBUG.value, Mode.TEST.value, Mode.CLEAN.value)


class BuildState(str, Enum):
    """Pipeline state machine states."""

    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"
    CLEANED = "cleaned"


class OrchestratorError(Exception):
    """Base error carrying the process exit status it maps to."""

    exit_code: int = 1

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"error": str(self), "exitCode": self.exit_code}


class UsageError(OrchestratorError):
    """Malformed argument count or unrecognized mode literal."""


class DirectoryError(OrchestratorError):
    """Build directory could not be created/entered, or origin not restored."""


class CleanError(OrchestratorError):
    """An artifact exists but could not be removed."""


class SubprocessError(OrchestratorError):
    """An external tool exited non-zero."""

    def __init__(self, step: StepResult):
        super().__init__(
            f"{step.name} failed with exit status {step.exit_code}",
            exit_code=step.exit_code,
        )
        self.step = step

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["step"] = self.step.to_dict()
        return result


@dataclass
class StepResult:
    """Outcome of one external command."""

    name: str
    command: ExternalCommand
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "name": self.name,
            "command": list(self.command.argv),
            "exitCode": self.exit_code,
            "durationMs": round(self.duration_ms, 2),
        }
        if self.command.cwd is not None:
            result["cwd"] = str(self.command.cwd)
        if self.stdout:
            result["stdout"] = self.stdout
        if self.stderr:
            result["stderr"] = self.stderr
        return result


@dataclass
class PipelineResult:
    """Result of one orchestrator run."""

    mode: Mode
    state: BuildState
    exit_code: int = 0
    steps: list[StepResult] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def failed_step(self) -> StepResult | None:
        """First step that exited non-zero, if any."""
        for step in self.steps:
            if not step.success:
                return step
        return None

    def raise_for_status(self) -> None:
        """Raise SubprocessError if a step failed."""
        failed = self.failed_step
        if failed is not None:
            raise SubprocessError(failed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "success": self.success,
            "mode": self.mode.value,
            "state": self.state.value,
            "exitCode": self.exit_code,
            "durationMs": round(self.duration_ms, 2),
            "steps": [s.to_dict() for s in self.steps],
        }
        if self.mode is Mode.CLEAN:
            result["removed"] = list(self.removed)
        return result

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        if self.mode is Mode.CLEAN:
            status = "[OK] Clean finished"
        elif self.success:
            status = "[OK] Build succeeded"
        else:
            status = "[FAILED] Build failed"

        parts = [
            status,
            f"  Mode: {self.mode.value}",
            f"  Duration: {self.duration_ms:.0f}ms",
        ]
        for step in self.steps:
            marker = "ok" if step.success else f"exit {step.exit_code}"
            parts.append(f"    {step.name}: {step.command} ({marker})")
        if self.mode is Mode.CLEAN:
            removed = ", ".join(self.removed) if self.removed else "nothing to remove"
            parts.append(f"  Removed: {removed}")
        return "\n".join(parts)
