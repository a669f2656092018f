#!/usr/bin/env python3
# cli.py — command-line entry point for the flake detector

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console

from flake_detector.config import DetectorConfig, DEFAULT_QUERIES, split_csv
from flake_detector.core import FlakeDetector
from flake_detector.logging_config import setup_logging
from flake_detector.persistence import export_reports
from flake_detector.rendering import render_banner, render_summary
from flake_detector.utils import GracefulKiller

logger = logging.getLogger(__name__)

ENV_PREFIX = "FLAKE_DETECTOR_"


def _env(name: str, default=None):
    return os.getenv(ENV_PREFIX + name, default)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="flake-detector",
        description="Detect flaky RPC endpoints with query-specific testing",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-e",
        "--endpoints",
        default=_env("ENDPOINTS"),
        help="Comma-separated list of RPC endpoints to test",
    )
    parser.add_argument(
        "-q",
        "--queries",
        default=_env("QUERIES", ",".join(DEFAULT_QUERIES)),
        help="Comma-separated list of RPC queries to test",
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=int,
        default=_env("DURATION", "60"),
        help="Test duration in seconds (per query)",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=_env("CONCURRENCY", "10"),
        help="Concurrent workers per query",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=_env("TIMEOUT", "5"),
        help="Request timeout in seconds",
    )
    parser.add_argument(
        "--pause-ms",
        type=int,
        default=100,
        help="Pause between requests of one worker, in milliseconds",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output JSON file path (optional)",
    )

    # Presentation & Logging
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional file to write logs to (e.g., flake-detector.log)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> DetectorConfig:
    return DetectorConfig(
        endpoints=split_csv(args.endpoints),
        queries=split_csv(args.queries),
        duration_s=args.duration,
        concurrency=args.concurrency,
        timeout_s=args.timeout,
        pause_s=args.pause_ms / 1000.0,
        output=args.output,
    )


async def run(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    setup_logging(level="DEBUG" if args.debug else "WARNING", log_file=args.log_file)
    console = Console()

    try:
        config = build_config(args)
    except ValidationError as e:
        console.print(f"[bright_red]Invalid configuration:[/]\n{e}", highlight=False)
        return 2

    render_banner(config, console)

    stop_event = asyncio.Event()
    GracefulKiller(stop_event)

    detector = FlakeDetector(
        config,
        stop_event=stop_event,
        use_progress_bar=not args.no_progress,
        console=console,
    )
    reports = await detector.run()

    render_summary(reports, console)

    if config.output:
        if export_reports(reports, config.output):
            console.print(f"\n💾 Results exported to: [bright_cyan]{config.output}[/]")
        else:
            console.print(f"\n❌ [bright_red]Failed to write output:[/] {config.output}")

    if stop_event.is_set():
        logger.warning("Run was interrupted; later queries may hold partial windows.")
    console.print("\n✅ Testing complete!\n")
    return 0


def main():
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
