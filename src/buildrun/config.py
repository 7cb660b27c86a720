"""Environment-driven configuration.

The command line stays ``<program> [debug|test|clean]``; everything else
is read from ``BUILDRUN_*`` environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BUILD_DIR = "build"
DEFAULT_ARTIFACTS: tuple[str, ...] = ("build", "bin")
DEFAULT_CONFIGURE = "cmake"
DEFAULT_BUILD_TOOL = "make"
DEFAULT_TEST_RUNNER = "ctest"


def _parse_jobs(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        jobs = int(raw)
    except ValueError:
        raise ValueError(f"BUILDRUN_JOBS must be an integer, got {raw!r}") from None
    if jobs < 1:
        raise ValueError(f"BUILDRUN_JOBS must be positive, got {jobs}")
    return jobs


@dataclass
class OrchestratorConfig:
    """Settings for one orchestrator run."""

    build_dir: Path = field(default_factory=lambda: Path(DEFAULT_BUILD_DIR))
    artifacts: tuple[Path, ...] = field(
        default_factory=lambda: tuple(Path(p) for p in DEFAULT_ARTIFACTS)
    )
    configure_program: str = DEFAULT_CONFIGURE
    build_program: str = DEFAULT_BUILD_TOOL
    test_program: str = DEFAULT_TEST_RUNNER
    jobs: int | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OrchestratorConfig:
        """Load configuration from environment variables.

        Raises:
            ValueError: If BUILDRUN_JOBS is not a positive integer
        """
        env = os.environ if environ is None else environ

        artifacts_raw = env.get("BUILDRUN_CLEAN_PATHS")
        if artifacts_raw:
            artifacts = tuple(Path(p) for p in artifacts_raw.split(os.pathsep) if p)
        else:
            artifacts = tuple(Path(p) for p in DEFAULT_ARTIFACTS)

        return cls(
            build_dir=Path(env.get("BUILDRUN_BUILD_DIR") or DEFAULT_BUILD_DIR),
            artifacts=artifacts,
            configure_program=env.get("BUILDRUN_CONFIGURE") or DEFAULT_CONFIGURE,
            build_program=env.get("BUILDRUN_BUILD_TOOL") or DEFAULT_BUILD_TOOL,
            test_program=env.get("BUILDRUN_TEST_RUNNER") or DEFAULT_TEST_RUNNER,
            jobs=_parse_jobs(env.get("BUILDRUN_JOBS")),
        )
