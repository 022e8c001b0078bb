"""Tests for discord_influx.utils.logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from discord_influx.utils.logging import THIRD_PARTY_LOGGERS, console, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_rich_handler_on_shared_console(self) -> None:
        setup_logging(level=logging.DEBUG)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert handlers[0].console is console

    def test_third_party_quiet_by_default(self) -> None:
        setup_logging()

        for name in THIRD_PARTY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_third_party_debug(self) -> None:
        setup_logging(debug_third_party=True)

        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "export.log"
        setup_logging(log_file=log_file)

        logging.getLogger("discord_influx.test").warning("rate limited")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "WARNING  | discord_influx.test | rate limited" in log_file.read_text(
            encoding="utf-8"
        )
