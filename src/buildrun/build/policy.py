"""Build policy - fixed argument vectors for the external tools.

The orchestrator never builds command lines from user input: every
command is one of three fixed shapes.

    <configure> <project-root> [-DCMAKE_BUILD_TYPE=Debug]
    <build> -j<processor-count>
    <test-runner> --output-on-failure
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from ..config import OrchestratorConfig
    from .state import Mode

DEBUG_VARIANT_FLAG: Final[str] = "-DCMAKE_BUILD_TYPE=Debug"
OUTPUT_ON_FAILURE_FLAG: Final[str] = "--output-on-failure"


@dataclass(frozen=True)
class ExternalCommand:
    """A subprocess invocation: program, argument vector, working directory."""

    program: str
    args: tuple[str, ...] = ()
    cwd: Path | None = None

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.program, *self.args)

    def __str__(self) -> str:
        return " ".join(self.argv)


def available_processors() -> int:
    """Number of processing units this process may run on (at least 1)."""
    if hasattr(os, "sched_getaffinity"):
        try:
            return max(1, len(os.sched_getaffinity(0)))
        except OSError:
            pass
    return max(1, os.cpu_count() or 1)


class BuildPolicy:
    """Produces the configure/compile/test commands for a mode."""

    def __init__(self, config: OrchestratorConfig):
        self._config = config

    @property
    def jobs(self) -> int:
        """Parallelism level handed to the build tool."""
        return self._config.jobs or available_processors()

    def project_root_arg(self, project_root: Path, build_dir: Path) -> str:
        """Project root as seen from inside the build directory (``..`` by default)."""
        return os.path.relpath(project_root, build_dir)

    def configure_command(
        self, mode: Mode, project_root: Path, build_dir: Path
    ) -> ExternalCommand:
        args = [self.project_root_arg(project_root, build_dir)]
        if mode.is_debug:
            args.append(DEBUG_VARIANT_FLAG)
        return ExternalCommand(self._config.configure_program, tuple(args), build_dir)

    def compile_command(self, build_dir: Path) -> ExternalCommand:
        return ExternalCommand(
            self._config.build_program, (f"-j{self.jobs}",), build_dir
        )

    def test_command(self, build_dir: Path) -> ExternalCommand:
        return ExternalCommand(
            self._config.test_program, (OUTPUT_ON_FAILURE_FLAG,), build_dir
        )
