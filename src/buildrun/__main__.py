"""Entry point for the buildrun CLI.

Usage: buildrun [debug|test|clean]

    (no argument)  configure and build
    debug          configure with CMAKE_BUILD_TYPE=Debug and build
    test           configure, build and run ctest --output-on-failure
    clean          remove build artifacts and stop
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from .build import BuildPipeline, Mode, OrchestratorError, UsageError
from .build.state import MODE_LITERALS
from .config import OrchestratorConfig

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


class ModeArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2."""

    def error(self, message: str):  # type: ignore[override]
        raise UsageError(message)


def program_name(argv0: str | None = None) -> str:
    """Name of the invoking program as the user typed it.

    ``python -m buildrun`` sets argv[0] to the path of this file, which
    is reported as ``<python> -m buildrun``.
    """
    argv0 = sys.argv[0] if argv0 is None else argv0
    name = os.path.basename(argv0)
    if not name or name == "__main__.py":
        python = os.path.basename(sys.executable) or "python"
        return f"{python} -m buildrun"
    return name


def build_parser(prog: str | None = None) -> ModeArgumentParser:
    """Create the parser for ``<prog> [debug|test|clean]``."""
    parser = ModeArgumentParser(
        prog=prog or program_name(),
        usage=f"%(prog)s [{'|'.join(MODE_LITERALS)}]",
        description="Configure, build, test or clean a CMake project",
        add_help=False,
    )
    parser.add_argument("mode", nargs="?", choices=MODE_LITERALS, default=None)
    return parser


def parse_mode(argv: Sequence[str], parser: argparse.ArgumentParser | None = None) -> Mode:
    """Translate the raw argument list into exactly one Mode.

    Raises:
        UsageError: On more than one argument or an unrecognized literal
    """
    if len(argv) > 1:
        raise UsageError(f"expected at most one argument, got {len(argv)}")

    parser = parser or build_parser()
    args = parser.parse_args(list(argv))
    if args.mode is None:
        # Catches a lone "--", which argparse consumes as a separator
        if argv:
            raise UsageError(f"unrecognized argument: {argv[0]!r}")
        return Mode.DEFAULT
    return Mode(args.mode)


def configure_logging(default_level: str = "WARNING") -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", default_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point. Returns the process exit status."""
    configure_logging()

    args = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    try:
        mode = parse_mode(args, parser)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return e.exit_code

    try:
        config = OrchestratorConfig.from_env()
    except ValueError as e:
        logger.error(str(e))
        return 1

    pipeline = BuildPipeline(config=config)
    try:
        result = pipeline.run(mode)
    except OrchestratorError as e:
        logger.error(str(e))
        return e.exit_code

    logger.info(result.to_summary())
    return result.exit_code


def run() -> None:
    """Run the CLI and exit with its status."""
    try:
        status = main()
    except KeyboardInterrupt:
        status = EXIT_INTERRUPTED
    sys.exit(status)


if __name__ == "__main__":
    run()
