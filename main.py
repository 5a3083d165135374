# main.py

"""Entry point for the price_tracker refresh job."""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal, InvalidOperation

from src.config.logging_config import setup_logging

logger = logging.getLogger("price_tracker.main")


def _decimal(value: str) -> Decimal:
    """argparse type for prices."""
    try:
        price = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a price: {value}") from exc
    if price < 0:
        raise argparse.ArgumentTypeError("price must be non-negative")
    return price


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price_tracker",
        description="Refresh tracked product prices and email subscribers.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO logs to stderr.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    refresh = sub.add_parser(
        "refresh", help="Run one refresh batch over all tracked products."
    )
    refresh.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    refresh.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help="Maximum concurrent refreshes.",
    )
    refresh.add_argument(
        "-d",
        "--deadline",
        type=float,
        default=None,
        help="Wall-clock budget for the batch in seconds (0 = none).",
    )

    track = sub.add_parser("track", help="Start tracking a product URL.")
    track.add_argument("url", help="Product page URL.")
    track.add_argument(
        "-e", "--email", default=None, help="Subscribe this address."
    )
    track.add_argument(
        "-t",
        "--target-price",
        type=_decimal,
        default=None,
        dest="target_price",
        help="Notify when the price falls to this value.",
    )

    sub.add_parser("list", help="List tracked products.")
    return parser


def main() -> None:
    """Parse arguments and dispatch to the matching runner."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(
        console_level=logging.INFO if args.verbose else logging.WARNING
    )
    logger.info("price_tracker %s starting, log file: %s", args.command, log_file)

    from src.cli.runner import run_list, run_refresh, run_track

    if args.command == "refresh":
        exit_code = asyncio.run(
            run_refresh(
                output_format=args.output_format,
                concurrency=args.concurrency,
                deadline=args.deadline,
            )
        )
    elif args.command == "track":
        exit_code = asyncio.run(
            run_track(args.url, args.email, args.target_price)
        )
    else:
        exit_code = run_list()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
