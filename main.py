# main.py

"""Entry point for the market_benchmark headless CLI."""

import argparse
import asyncio
import logging
import sys

from market_benchmark.config.logging_config import setup_logging
from market_benchmark.config.settings import Settings

logger = logging.getLogger("market_benchmark.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    mapped = ", ".join(sorted(Settings.CATEGORY_QUERIES))

    parser = argparse.ArgumentParser(
        prog="market_benchmark",
        description="Marketplace competitive benchmarking engine.",
        epilog=f"Mapped categories: {mapped}",
    )
    parser.add_argument(
        "query",
        nargs="?",
        default=None,
        help="Category to analyse, or product name with --compete.",
    )
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=None,
        help=(
            f"Listings per query (default: {Settings.DEFAULT_LIMIT}, "
            f"max: {Settings.MAX_LIMIT})."
        ),
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall time budget in seconds for a category analysis.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--compete",
        action="store_true",
        default=False,
        help="Compare the named product against its competitors.",
    )
    parser.add_argument(
        "--price",
        default=None,
        dest="current_price",
        help="Your current price, used with --compete.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on the marketplace.",
    )
    return parser


def _run_analysis(args: argparse.Namespace) -> None:
    """Run a headless category analysis and exit."""
    from market_benchmark.cli.runner import cli_analyze

    exit_code = asyncio.run(
        cli_analyze(
            category=args.query,
            limit=args.limit,
            deadline=args.deadline,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


def _run_compete(args: argparse.Namespace) -> None:
    """Run a headless competitor analysis and exit."""
    from market_benchmark.cli.runner import cli_compete

    exit_code = asyncio.run(
        cli_compete(
            product_name=args.query,
            current_price=args.current_price,
            limit=args.limit,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


def _run_health_check() -> None:
    """Run marketplace connectivity health check."""
    from market_benchmark.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main() -> None:
    """Route to health check, competitor or category analysis."""
    log_file = setup_logging()
    logger.info("market_benchmark starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.health:
        _run_health_check()
    elif args.query is None:
        parser.print_help()
        sys.exit(2)
    elif args.compete:
        _run_compete(args)
    else:
        _run_analysis(args)


if __name__ == "__main__":
    main()
