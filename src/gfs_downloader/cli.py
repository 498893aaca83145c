"""Command-line interface for gfs-downloader.

Two subcommands:
    gfs-downloader index: print the validated index of one forecast file
    gfs-downloader fetch: download every expected message of one forecast file
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import logging
import signal
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure root logger for CLI use."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _forecast_hour(value: str) -> int:
    from gfs_downloader import axes

    try:
        hour = int(value)
        axes.hour_index(hour)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from err
    return hour


def _add_common_args(p) -> None:
    p.add_argument(
        "--date",
        type=datetime.date.fromisoformat,
        required=True,
        help="Cycle date (YYYY-MM-DD)",
    )
    p.add_argument(
        "--cycle",
        type=int,
        choices=[0, 6, 12, 18],
        default=0,
        help="Cycle hour in UTC (default: 0)",
    )
    p.add_argument(
        "--hour",
        type=_forecast_hour,
        default=0,
        help="Forecast hour, a multiple of 3 in 0..192 (default: 0)",
    )
    p.add_argument(
        "--variant",
        choices=["pgrb2", "pgrb2b"],
        default="pgrb2",
        help="Product file (default: pgrb2)",
    )
    p.add_argument(
        "--base-url",
        default=None,
        help="Archive root URL (default: NOMADS)",
    )
    p.add_argument(
        "--max-concurrent",
        type=int,
        default=5,
        help="Maximum simultaneous HTTP requests (default: 5)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gfs-downloader",
        description="Fetch GFS height and wind fields by HTTP byte range",
    )
    subparsers = parser.add_subparsers(dest="command")

    p = subparsers.add_parser("index", help="Print the validated index of one forecast file")
    _add_common_args(p)

    p = subparsers.add_parser("fetch", help="Download every expected message of one forecast file")
    _add_common_args(p)
    p.add_argument(
        "--output-dir",
        default="./gfs/",
        help="Output directory (default: ./gfs/)",
    )
    p.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    return parser


def output_path(output_dir, fcst_time, variant, hour) -> Path:
    return Path(output_dir) / f"gfs_{fcst_time}_{variant}_f{hour:03d}.grib2"


async def _run(args, interrupt: asyncio.Event) -> None:
    from gfs_downloader.fetcher import GribFetcher
    from gfs_downloader.throttle import Throttle
    from gfs_downloader.urls import GfsUrls
    from gfs_downloader.variables import DatasetVariant, ForecastTime

    fcst_time = ForecastTime(args.date, args.cycle)
    variant = DatasetVariant(args.variant)
    urls = GfsUrls(args.base_url) if args.base_url else GfsUrls()

    async with GribFetcher(urls=urls, throttle=Throttle(args.max_concurrent)) as fetcher:
        if args.command == "index":
            index = await fetcher.get_index(fcst_time, variant, args.hour, interrupt=interrupt)
            for msg in sorted(index.values(), key=lambda m: m.offset):
                print(msg)
            return

        messages = await fetcher.get_cycle_hour(
            fcst_time,
            variant,
            args.hour,
            interrupt=interrupt,
            show_progress=not args.no_progress,
        )
        path = output_path(args.output_dir, fcst_time, variant, args.hour)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            for message in messages.values():
                f.write(message.data)
        logger.info("Wrote %d messages to %s", len(messages), path)


async def _main(args) -> None:
    interrupt = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, interrupt.set)
    except NotImplementedError:
        pass  # Windows
    await _run(args, interrupt)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    from gfs_downloader.errors import Interrupted

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _setup_logging(verbose=args.verbose)

    try:
        asyncio.run(_main(args))
    except Interrupted as err:
        logger.error("%s", err)
        sys.exit(130)
    except ValueError as err:
        print(f"ERROR: {err}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
