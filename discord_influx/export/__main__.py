"""CLI entry point for discord_influx.export.

Usage:
    python -m discord_influx.export historic 123/456            # One channel
    python -m discord_influx.export historic 123 --start 2021-01-01T00:00:00Z
    python -m discord_influx.export live 123                    # Poll a guild
    python -m discord_influx.export --verbose historic 123      # Show more details
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from discord_influx.config.settings import AppSettings, ConfigError, load_config
from discord_influx.export.historic import DEFAULT_START, DEFAULT_STOP, Bounds
from discord_influx.export.live import DEFAULT_POLL_INTERVAL
from discord_influx.export.logger import logger
from discord_influx.export.run import run_historic, run_live
from discord_influx.export.targets import InvalidTargetError, TargetSpec, parse_target
from discord_influx.utils.logging import setup_logging
from discord_influx.utils.snowflake import InvalidBoundError, parse_bound


def _bound_arg(value: str) -> int:
    try:
        return parse_bound(value)
    except InvalidBoundError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _target_arg(value: str) -> TargetSpec:
    try:
        return parse_target(value)
    except InvalidTargetError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _add_influx_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("InfluxDB")
    group.add_argument("--influxdb-url", help="InfluxDB server URL")
    group.add_argument("--influxdb-org", help="InfluxDB organization")
    group.add_argument("--influxdb-bucket", help="InfluxDB bucket")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discord-influx",
        description="Discord metrics exporter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Targets are either a guild ID (all text channels of the guild) or
guild_id/channel_id (a single channel).

Examples:
  discord-influx historic 123456789/987654321
      Export the full history of one channel

  discord-influx historic 123456789 --start 2021-04-06T00:00:00Z
      Export every text channel of a guild since a point in time

  discord-influx live 123456789
      Continually export new messages of a guild

Tokens are read from DISCORD_TOKEN / DISCORD_TOKEN_FILE and
INFLUXDB_TOKEN / INFLUXDB_TOKEN_FILE.
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config.json",
        help="Path to config.json (default: config.json, optional)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode with third-party library logs",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Optional file to write logs to",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    historic = commands.add_parser(
        "historic",
        help="Export historic stats",
        description="One-off job to export historic statistics of specific channels.",
    )
    historic.add_argument(
        "targets",
        nargs="+",
        type=_target_arg,
        metavar="guild_id[/channel_id]",
    )
    historic.add_argument(
        "--start",
        type=_bound_arg,
        default=DEFAULT_START,
        help="Export messages from this ID or RFC 3339 timestamp on (default: 0)",
    )
    historic.add_argument(
        "--stop",
        type=_bound_arg,
        default=DEFAULT_STOP,
        help="Export messages before this ID or RFC 3339 timestamp "
        f"(default: {DEFAULT_STOP})",
    )
    historic.add_argument(
        "--skip-hidden",
        action="store_true",
        help="Skip channels whose @everyone overwrite denies viewing or history",
    )
    _add_influx_args(historic)

    live = commands.add_parser(
        "live",
        help="Continually export live stats",
        description="Polls channels for new messages and exports them as they arrive.",
    )
    live.add_argument(
        "targets",
        nargs="+",
        type=_target_arg,
        metavar="guild_id[/channel_id]",
    )
    live.add_argument(
        "--start",
        type=_bound_arg,
        default=None,
        help="Export messages after this ID or RFC 3339 timestamp "
        "(default: the latest message of each channel)",
    )
    live.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between polls (default: {DEFAULT_POLL_INTERVAL})",
    )
    _add_influx_args(live)

    return parser


def _load_settings(args: argparse.Namespace) -> AppSettings:
    settings = load_config(args.config)
    return settings.with_overrides(
        influxdb_url=args.influxdb_url,
        influxdb_org=args.influxdb_org,
        influxdb_bucket=args.influxdb_bucket,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        log_level = logging.DEBUG
        debug_third_party = True
    elif args.verbose:
        log_level = logging.DEBUG
        debug_third_party = False
    else:
        log_level = logging.INFO
        debug_third_party = False

    setup_logging(
        level=log_level,
        log_file=args.log_file,
        debug_third_party=debug_third_party,
    )

    try:
        settings = _load_settings(args)
        if args.command == "historic":
            bounds = Bounds(start=args.start, stop=args.stop)
            logger.info("Starting Discord-InfluxDB historic export")
            asyncio.run(
                run_historic(
                    settings,
                    bounds,
                    args.targets,
                    include_hidden=not args.skip_hidden,
                )
            )
            logger.success("Export complete!")
        else:
            logger.info("Starting Discord-InfluxDB live exporter")
            asyncio.run(
                run_live(
                    settings,
                    args.targets,
                    start=args.start,
                    poll_interval=args.poll_interval,
                )
            )
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)
    except (KeyboardInterrupt, asyncio.CancelledError):
        if args.command == "live":
            logger.info("Stopping")
            return
        logger.warning("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise


if __name__ == "__main__":
    main()
