"""Build pipeline - one orchestrator run against a project directory.

Pipeline for DEFAULT / DEBUG / TEST:
    ensure build dir → enter → configure → compile → [test] → return to origin

CLEAN short-circuits: remove the artifact set and stop.

Every step is checked explicitly; the first non-zero exit status ends the
run and becomes the run's exit status.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..config import OrchestratorConfig
from .cleanup import remove_artifacts
from .policy import BuildPolicy, ExternalCommand
from .runner import CommandRunner, SubprocessRunner
from .state import (
    BuildState,
    CleanError,
    DirectoryError,
    Mode,
    PipelineResult,
    StepResult,
)

logger = logging.getLogger(__name__)


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Enter ``path`` for the duration of the block, then return to the origin.

    The origin is restored on every exit path, including exceptions.

    Yields:
        The origin directory

    Raises:
        DirectoryError: If ``path`` cannot be entered or the origin cannot be restored
    """
    try:
        origin = Path.cwd()
    except OSError as e:
        raise DirectoryError(f"Cannot determine current directory: {e}") from e

    try:
        os.chdir(path)
    except OSError as e:
        raise DirectoryError(f"Cannot enter {path}: {e}") from e

    try:
        yield origin
    finally:
        try:
            os.chdir(origin)
        except OSError as e:
            raise DirectoryError(f"Cannot return to {origin}: {e}") from e


class BuildPipeline:
    """Runs the configure/compile/test sequence or the clean action.

    Not safe for concurrent use: the working directory is process-wide.
    """

    def __init__(
        self,
        project_root: str | Path | None = None,
        config: OrchestratorConfig | None = None,
        runner: CommandRunner | None = None,
    ):
        """Initialize pipeline.

        Args:
            project_root: Directory holding the top-level CMakeLists.txt (default: CWD)
            config: Orchestrator settings (loaded from the environment if not provided)
            runner: Subprocess layer (passthrough runner if not provided)
        """
        self._project_root = Path(os.path.abspath(project_root or os.getcwd()))
        self._config = config or OrchestratorConfig.from_env()
        self._runner: CommandRunner = runner or SubprocessRunner()
        self._policy = BuildPolicy(self._config)
        self._state = BuildState.IDLE
        self._last_result: PipelineResult | None = None
        self._state_listeners: list[Callable[[BuildState], None]] = []

    @property
    def project_root(self) -> Path:
        return self._project_root

    @property
    def build_dir(self) -> Path:
        """Absolute build directory."""
        return self._project_root / self._config.build_dir

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def last_result(self) -> PipelineResult | None:
        return self._last_result

    def on_state_change(self, listener: Callable[[BuildState], None]) -> None:
        """Register state change listener."""
        self._state_listeners.append(listener)

    def _set_state(self, new_state: BuildState) -> None:
        """Update state and notify listeners."""
        old_state = self._state
        self._state = new_state
        if old_state != new_state:
            logger.info(f"Build state: {old_state.value} -> {new_state.value}")
            for listener in self._state_listeners:
                try:
                    listener(new_state)
                except Exception:
                    logger.exception("State listener error")

    def run(self, mode: Mode) -> PipelineResult:
        """Execute the action selected by ``mode``.

        Returns:
            Pipeline result; ``exit_code`` is the first failing tool status or 0

        Raises:
            DirectoryError: If the build directory cannot be created or entered,
                or the origin directory cannot be restored
            CleanError: If an artifact exists but cannot be removed
        """
        if mode is Mode.CLEAN:
            return self.clean()
        return self.build(mode)

    def clean(self) -> PipelineResult:
        """Remove the artifact set. Never invokes a build tool."""
        start_time = time.perf_counter()
        try:
            removed = remove_artifacts(self._config.artifacts, root=self._project_root)
        except CleanError:
            self._set_state(BuildState.FAILED)
            raise
        except OSError as e:
            self._set_state(BuildState.FAILED)
            raise CleanError(f"Cannot remove {e.filename or 'artifact'}: {e}") from e

        result = PipelineResult(
            mode=Mode.CLEAN,
            state=BuildState.CLEANED,
            removed=removed,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        self._last_result = result
        self._set_state(BuildState.CLEANED)
        return result

    def build(self, mode: Mode) -> PipelineResult:
        """Configure, compile and optionally test inside the build directory."""
        if not mode.is_build:
            raise ValueError(f"Not a build mode: {mode.value}")

        self._set_state(BuildState.BUILDING)
        start_time = time.perf_counter()
        result = PipelineResult(mode=mode, state=BuildState.BUILDING)

        try:
            build_dir = self._ensure_build_directory()
            with working_directory(build_dir):
                for name, command in self._commands(mode, build_dir):
                    step = self._run_step(name, command)
                    result.steps.append(step)
                    if not step.success:
                        logger.error(f"{name} failed with exit status {step.exit_code}")
                        result.exit_code = step.exit_code
                        break
        except Exception:
            self._set_state(BuildState.FAILED)
            raise

        result.duration_ms = (time.perf_counter() - start_time) * 1000
        result.state = BuildState.READY if result.success else BuildState.FAILED
        self._last_result = result
        self._set_state(result.state)
        return result

    def _ensure_build_directory(self) -> Path:
        build_dir = self.build_dir
        try:
            build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryError(f"Cannot create build directory {build_dir}: {e}") from e
        return build_dir

    def _commands(self, mode: Mode, build_dir: Path) -> Iterator[tuple[str, ExternalCommand]]:
        yield "configure", self._policy.configure_command(mode, self._project_root, build_dir)
        yield "compile", self._policy.compile_command(build_dir)
        if mode.runs_tests:
            yield "test", self._policy.test_command(build_dir)

    def _run_step(self, name: str, command: ExternalCommand) -> StepResult:
        start_time = time.perf_counter()
        output = self._runner.run(command)
        return StepResult(
            name=name,
            command=command,
            exit_code=output.exit_code,
            stdout=output.stdout,
            stderr=output.stderr,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
