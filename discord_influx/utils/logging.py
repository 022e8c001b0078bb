"""Logging setup for the exporter.

Everything rich draws goes to one shared stderr console: log records through
RichHandler as well as the blocks and panels of the pipeline loggers. Call
setup_logging() once from the CLI before any output.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

# Chatty client libraries, kept at WARNING unless --debug is given
THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "influxdb_client")

FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: str | Path | None = None,
    debug_third_party: bool = False,
) -> None:
    """Route the root logger to the shared console and, optionally, a file.

    Args:
        level: Root logger level
        log_file: Also append plain-text records to this file
        debug_third_party: Let httpx and influxdb_client log at DEBUG
    """
    handlers: list[logging.Handler] = [
        RichHandler(console=console, show_path=False, rich_tracebacks=True)
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(FILE_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)

    third_party_level = logging.DEBUG if debug_third_party else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
