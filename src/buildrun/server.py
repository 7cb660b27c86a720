"""MCP server exposing the build modes as tools.

Tool output is captured rather than passed through: stdout belongs to the
MCP stdio transport.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from .build import (
    BuildPipeline,
    CapturingRunner,
    Mode,
    OrchestratorError,
)
from .__main__ import configure_logging
from .config import OrchestratorConfig

logger = logging.getLogger(__name__)

BUILD_MODES: tuple[str, ...] = (Mode.DEFAULT.value, Mode.DEBUG.value, Mode.TEST.value)


class BuildService:
    """Serializes pipeline runs and turns results into tool payloads.

    Pipeline runs block and change the process working directory, so they
    execute one at a time in a worker thread.
    """

    def __init__(self, pipeline: BuildPipeline):
        self._pipeline = pipeline
        self._lock = asyncio.Lock()

    @property
    def pipeline(self) -> BuildPipeline:
        return self._pipeline

    async def _run(self, mode: Mode) -> dict[str, Any]:
        async with self._lock:
            try:
                result = await asyncio.to_thread(self._pipeline.run, mode)
            except OrchestratorError as e:
                logger.error(f"{mode.value} run failed: {e}")
                return {"success": False, "mode": mode.value, **e.to_dict()}
        logger.info(result.to_summary())
        return result.to_dict()

    async def build(self, mode: str = Mode.DEFAULT.value) -> dict[str, Any]:
        if mode not in BUILD_MODES:
            return {
                "success": False,
                "error": f"Unknown build mode {mode!r}; expected one of {', '.join(BUILD_MODES)}",
            }
        return await self._run(Mode(mode))

    async def clean(self) -> dict[str, Any]:
        return await self._run(Mode.CLEAN)

    def state(self) -> dict[str, Any]:
        last = self._pipeline.last_result
        return {
            "state": self._pipeline.state.value,
            "projectRoot": str(self._pipeline.project_root),
            "buildDir": str(self._pipeline.build_dir),
            "lastResult": last.to_dict() if last else None,
        }


def create_server(
    project_path: str | None = None,
    config: OrchestratorConfig | None = None,
) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        project_path: Root of the CMake project. Defaults to the CWD.
        config: Orchestrator settings (loaded from the environment if not provided)
    """
    pipeline = BuildPipeline(
        project_root=project_path or os.getcwd(),
        config=config,
        runner=CapturingRunner(),
    )
    service = BuildService(pipeline)
    mcp = FastMCP("buildrun")

    @mcp.tool()
    async def build(mode: str = "default") -> dict:
        """
        Configure and build the project, optionally running its tests.

        Modes:
        - default: cmake .. && make -j<cpus>
        - debug: same, configured with -DCMAKE_BUILD_TYPE=Debug
        - test: same as default, then ctest --output-on-failure

        Stops at the first failing step. The result lists every step that ran
        with its exit code and captured output.

        Args:
            mode: One of "default", "debug", "test"
        """
        return await service.build(mode)

    @mcp.tool()
    async def clean() -> dict:
        """
        Remove build artifacts (the build and bin directories by default).

        Paths that do not exist are skipped. No build tool is invoked.
        """
        return await service.clean()

    @mcp.tool()
    async def get_build_state() -> dict:
        """Get the current pipeline state and the last run's result."""
        return service.state()

    @mcp.resource("build://last-result", mime_type="application/json")
    async def last_result() -> str:
        """
        Result of the most recent build or clean run.
        Includes: mode, state, exitCode, steps with captured output
        """
        last = pipeline.last_result
        return json.dumps(last.to_dict() if last else None, indent=2)

    return mcp


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="buildrun MCP Server - configure, build, test and clean CMake projects via MCP"
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project root holding the top-level CMakeLists.txt (default: CWD).",
    )
    return parser.parse_args()


async def main() -> None:
    """Main entry point."""
    configure_logging(default_level="INFO")
    args = parse_args()

    try:
        config = OrchestratorConfig.from_env()
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1) from e

    project_path = args.project or os.getcwd()
    logger.info(f"Starting buildrun MCP Server (project: {project_path})...")
    mcp = create_server(project_path, config=config)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
