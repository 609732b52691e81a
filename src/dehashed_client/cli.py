"""CLI entrypoint for dehashed-search."""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence

from .config import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MIN_REQUEST_INTERVAL,
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_WORKERS,
    SchedulerConfig,
    SearchConfig,
)
from .errors import ConfigError, UnauthorizedError
from .logging_utils import configure_logging, get_logger
from .pipeline import run_pipeline
from .query import MATCH_MODES
from .validation import load_lines_from_file


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description="Dehashed search - rate-limited batch queries with CSV export."
    )
    source_group = parser.add_mutually_exclusive_group(required=False)
    source_group.add_argument(
        "--query",
        nargs="+",
        help='Queries as field:value, field:"exact" or field:/regex/; no prefix searches all fields.',
    )
    source_group.add_argument("--queries-file", help="Path to query file (one query per line).")
    parser.add_argument(
        "--match",
        choices=MATCH_MODES,
        default="simple",
        help="Match mode for values without quotes or slashes.",
    )
    parser.add_argument("--email", help="Account email (or set DEHASHED_EMAIL env var).")
    parser.add_argument("--api-key", help="API key (or set DEHASHED_API_KEY env var).")
    parser.add_argument("--output", default="dehashed_results.csv", help="Output CSV path.")
    parser.add_argument(
        "--workers", type=int, default=DEFAULT_WORKERS, help="Number of submitting threads."
    )
    parser.add_argument(
        "--min-interval",
        type=float,
        default=DEFAULT_MIN_REQUEST_INTERVAL,
        help="Minimum seconds between two API requests.",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help="Retries of a rate limited request before giving up.",
    )
    parser.add_argument(
        "--queue-capacity",
        type=int,
        default=DEFAULT_QUEUE_CAPACITY,
        help="Bound of the request queue; 0 for unbounded.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="HTTP request timeout in seconds.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable tqdm progress bars.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse and pre-validate CLI input."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.query or args.queries_file):
        parser.error("Provide --query or --queries-file.")
    return args


def _materialize_queries(args: argparse.Namespace) -> tuple[str, ...]:
    if args.query:
        return tuple(args.query)
    if args.queries_file:
        return tuple(load_lines_from_file(args.queries_file))
    return tuple()


def namespace_to_config(args: argparse.Namespace) -> SearchConfig:
    """Convert CLI args to validated SearchConfig."""
    scheduler = SchedulerConfig(
        min_request_interval=args.min_interval,
        max_retries=args.max_retries,
        queue_capacity=args.queue_capacity or None,
    )
    return SearchConfig(
        queries=_materialize_queries(args),
        email=args.email or os.getenv("DEHASHED_EMAIL", ""),
        api_key=args.api_key or os.getenv("DEHASHED_API_KEY", ""),
        output=args.output,
        match=args.match,
        workers=args.workers,
        request_timeout=args.timeout,
        scheduler=scheduler,
        show_progress=not args.no_progress,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    logger = get_logger()
    try:
        config = namespace_to_config(args)
    except (ConfigError, OSError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    outcome = run_pipeline(config, logger=logger)
    logger.info("Wrote %d entries to %s", len(outcome.rows), config.output)
    if outcome.balance is not None:
        logger.info("Remaining balance: %d", outcome.balance)
    if any(isinstance(exc, UnauthorizedError) for exc in outcome.failures.values()):
        logger.error("Dehashed rejected the credentials.")
        return 3
    if outcome.failures:
        logger.error("%d of %d searches failed.", len(outcome.failures), outcome.total_queries)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
