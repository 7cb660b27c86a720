"""Build orchestration for CMake projects.

Provides the configure/compile/test pipeline with:
- A single immutable Mode per run (default, debug, test, clean)
- Scoped working-directory handling that always restores the origin
- Fail-fast step checking with exit status propagation
- An injectable command runner (passthrough, captured, or fake)
"""

from .cleanup import remove_artifacts, remove_path
from .policy import BuildPolicy, ExternalCommand, available_processors
from .runner import CapturingRunner, CommandRunner, RunOutput, SubprocessRunner
from .session import BuildPipeline, working_directory
from .state import (
    BuildState,
    CleanError,
    DirectoryError,
    Mode,
    OrchestratorError,
    PipelineResult,
    StepResult,
    SubprocessError,
    UsageError,
)

__all__ = [
    "Mode",
    "BuildState",
    "BuildPolicy",
    "ExternalCommand",
    "available_processors",
    "CommandRunner",
    "RunOutput",
    "SubprocessRunner",
    "CapturingRunner",
    "BuildPipeline",
    "working_directory",
    "PipelineResult",
    "StepResult",
    "OrchestratorError",
    "UsageError",
    "DirectoryError",
    "CleanError",
    "SubprocessError",
    "remove_artifacts",
    "remove_path",
]
