"""buildrun - configure, build, test and clean CMake projects."""

from .build import BuildPipeline, Mode, PipelineResult
from .config import OrchestratorConfig

__version__ = "0.1.0"

__all__ = ["BuildPipeline", "Mode", "PipelineResult", "OrchestratorConfig", "__version__"]
