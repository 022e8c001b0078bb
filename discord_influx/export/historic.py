"""Historic export of a bounded window of channel history.

The walker pages backwards from the stop bound using the `before` parameter.
Discord returns each page newest-first, so the scan ends either when a page
comes back empty (history exhausted) or when a message older than the start
bound shows up. Messages below the start bound are never exported.

Transport failures abandon the scan of that target; the result records the
last cursor reached so the operator can re-run with an adjusted stop bound.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from discord_influx.export.client import MAX_PAGE_SIZE, DiscordAPIError
from discord_influx.export.logger import logger
from discord_influx.export.records import ExportRecord, map_message
from discord_influx.export.targets import ChannelTarget
from discord_influx.utils.snowflake import (
    INT64_MAX,
    INT64_MIN,
    parse_bound,
    parse_message_id,
    snowflake_to_unix_ns,
)
from discord_influx.utils.time import format_unix_ns

if TYPE_CHECKING:
    from discord_influx.export.client import DiscordClient


DEFAULT_START = "0"
DEFAULT_STOP = "2199-12-31T23:59:59Z"


class RecordSink(Protocol):
    def write(self, record: ExportRecord) -> None: ...


@dataclass(frozen=True)
class Bounds:
    """Scan window in ID space: export every message with start <= ID < stop."""

    start: int
    stop: int

    def __post_init__(self) -> None:
        for name in ("start", "stop"):
            value = getattr(self, name)
            if not INT64_MIN <= value <= INT64_MAX:
                raise ValueError(f"{name} bound out of int64 range: {value}")

    @classmethod
    def parse(cls, start: str = DEFAULT_START, stop: str = DEFAULT_STOP) -> "Bounds":
        return cls(start=parse_bound(start), stop=parse_bound(stop))


class ScanState(enum.Enum):
    SCANNING = "scanning"
    DONE = "done"


@dataclass
class ExportResult:
    """Result of a historic export of one target."""

    target: ChannelTarget
    last_cursor: str
    pages: int = 0
    messages_count: int = 0
    reactions_count: int = 0
    reached_start: bool = False
    exhausted: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_complete(self) -> bool:
        return self.reached_start or self.exhausted


def _process_page(
    messages: list[dict[str, Any]],
    sink: RecordSink,
    target: ChannelTarget,
    bounds: Bounds,
    result: ExportResult,
) -> ScanState:
    """Export one page, newest to oldest. Advances result.last_cursor."""
    for message in messages:
        message_id = parse_message_id(message.get("id"))
        if message_id < bounds.start:
            result.reached_start = True
            return ScanState.DONE

        time_ns = snowflake_to_unix_ns(message_id)
        records = map_message(message, target.guild_id, time_ns)
        for record in records:
            sink.write(record)

        result.messages_count += 1
        result.reactions_count += len(records) - 1
        result.last_cursor = str(message_id)
        logger.debug(
            f"Message {message_id} at {format_unix_ns(time_ns)} "
            f"({len(records) - 1} reactions)"
        )
    return ScanState.SCANNING


async def export_channel(
    client: "DiscordClient",
    sink: RecordSink,
    target: ChannelTarget,
    bounds: Bounds,
    page_size: int = MAX_PAGE_SIZE,
) -> ExportResult:
    """Export the history of one channel between the bounds.

    Args:
        client: Discord API client
        sink: Receives one record per message and per named reaction
        target: Channel to export
        bounds: Window in ID space
        page_size: Messages per API call (max 100)

    Returns:
        ExportResult with counts, last cursor and failure state
    """
    result = ExportResult(target=target, last_cursor=str(bounds.stop))
    state = ScanState.SCANNING

    while state is ScanState.SCANNING:
        cursor = result.last_cursor
        logger.debug(f"{target}: page {result.pages} before {cursor}")
        try:
            messages = await client.get_messages(
                channel_id=target.channel_id,
                limit=page_size,
                before=cursor,
            )
        except (DiscordAPIError, httpx.HTTPError) as e:
            logger.error(f"Export of {target} failed before {cursor}: {e}")
            result.error = str(e)
            break

        result.pages += 1

        if not messages:
            result.exhausted = True
            break

        state = _process_page(messages, sink, target, bounds, result)

        if result.last_cursor != cursor:
            oldest_ns = snowflake_to_unix_ns(int(result.last_cursor))
            logger.batch_progress(
                result.messages_count, oldest_date=format_unix_ns(oldest_ns)
            )

    return result
