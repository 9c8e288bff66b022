"""Command-line entry point: run a bundle directory in a sandbox container."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

import structlog

from runbox.config import load_settings
from runbox.errors import SandboxError
from runbox.models.bundle import DirectoryBundleSource
from runbox.providers.runtime.docker import DockerRuntime
from runbox.sandbox.orchestrator import SandboxOrchestrator
from runbox.util.debug import dbg

DEFAULT_BUNDLE_DIR = "examples/python"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runbox",
        description="Run a directory of source files inside a disposable container.",
    )
    parser.add_argument(
        "bundle_dir",
        nargs="?",
        default=DEFAULT_BUNDLE_DIR,
        help=f"directory holding the bundle (default: {DEFAULT_BUNDLE_DIR})",
    )
    parser.add_argument("--config", default=None, help="path to runner settings YAML")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="seconds to wait for the container before it is removed",
    )
    parser.add_argument(
        "--dump-bundle",
        action="store_true",
        help="print the loaded bundle as JSON before running it",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    logger = structlog.get_logger("runbox.cli")

    try:
        settings = load_settings(args.config)
        bundle = DirectoryBundleSource(
            args.bundle_dir, harness_name=settings.harness_name
        ).load()
    except SandboxError as exc:
        logger.error("runbox_setup_failed", error=str(exc))
        return 1
    if args.dump_bundle:
        dbg(bundle.to_json_dict())

    try:
        with DockerRuntime.from_env() as runtime:
            orchestrator = SandboxOrchestrator(runtime, settings, logger=logger)
            result = orchestrator.run(bundle, timeout_seconds=args.timeout)
    except SandboxError as exc:
        logger.error("runbox_run_failed", error=str(exc), error_type=type(exc).__name__)
        return 1

    print("STDOUT:\n" + result.stdout_text)
    print("STDERR:\n" + result.stderr_text)
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
