"""Live export by polling channels for new messages.

Each target keeps an `after` cursor. A poll pages forward from the cursor
until Discord returns an empty or short page, exporting every new message.
Polls repeat for all targets after a fixed interval until the process is
stopped. Failed polls are logged and retried on the next round.

Reactions usually arrive after their message, so the most recent messages of
each target stay tracked. Every poll re-reads them and writes the per-emoji
user count again whenever it changed, down to 0 when a reaction is removed.
The count is written at the message's timestamp, so InfluxDB keeps only the
latest value for each (message, emoji).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from discord_influx.export.client import MAX_PAGE_SIZE, DiscordAPIError
from discord_influx.export.historic import RecordSink
from discord_influx.export.logger import logger
from discord_influx.export.records import (
    map_user_message,
    message_record,
    reaction_counts,
    reaction_record,
)
from discord_influx.export.targets import ChannelTarget
from discord_influx.utils.snowflake import parse_message_id, snowflake_to_unix_ns

if TYPE_CHECKING:
    from discord_influx.export.client import DiscordClient


DEFAULT_POLL_INTERVAL = 3.0  # seconds

# Newest messages per target whose reactions are re-read on every poll
REACTION_WINDOW = MAX_PAGE_SIZE


@dataclass
class LiveCursor:
    """Position of one target in live mode."""

    target: ChannelTarget
    after: str
    messages_count: int = 0
    reactions_count: int = 0
    # message ID -> {emoji name: users}
    reactions: dict[int, dict[str, int]] = field(default_factory=dict)


async def initial_cursor(
    client: "DiscordClient",
    target: ChannelTarget,
    start: int | None = None,
) -> LiveCursor:
    """Start after an explicit ID, or after the channel's latest message."""
    if start is not None:
        return LiveCursor(target=target, after=str(start))
    channel = await client.get_channel(target.channel_id)
    last_message_id = channel.get("last_message_id")
    after = str(parse_message_id(last_message_id)) if last_message_id else "0"
    return LiveCursor(target=target, after=after)


def _write_reactions(
    sink: RecordSink,
    cursor: LiveCursor,
    message_id: int,
    counts: dict[str, int],
) -> int:
    """Write the emojis whose count changed since the last poll."""
    previous = cursor.reactions.get(message_id, {})
    time_ns = snowflake_to_unix_ns(message_id)
    written = 0
    for emoji in sorted(previous.keys() | counts.keys()):
        count = counts.get(emoji, 0)
        if count == previous.get(emoji, 0):
            continue
        sink.write(reaction_record(cursor.target.guild_id, emoji, time_ns, count))
        written += 1
    cursor.reactions[message_id] = counts
    cursor.reactions_count += written
    return written


def _track(cursor: LiveCursor, message_id: int, counts: dict[str, int]) -> None:
    cursor.reactions[message_id] = counts
    while len(cursor.reactions) > REACTION_WINDOW:
        del cursor.reactions[min(cursor.reactions)]


async def refresh_reactions(
    client: "DiscordClient",
    sink: RecordSink,
    cursor: LiveCursor,
) -> int:
    """Re-read the tracked messages and write reaction count changes.

    Returns:
        Number of reaction records written
    """
    if not cursor.reactions:
        return 0

    oldest = min(cursor.reactions)
    messages_data = await client.get_messages(
        channel_id=cursor.target.channel_id,
        limit=REACTION_WINDOW,
        after=oldest - 1,
    )

    seen: set[int] = set()
    written = 0
    for message in messages_data:
        message_id = parse_message_id(message.get("id"))
        if message_id not in cursor.reactions:
            continue
        seen.add(message_id)
        written += _write_reactions(sink, cursor, message_id, reaction_counts(message))

    # Anything tracked but missing from the page has been deleted
    for message_id in [m for m in cursor.reactions if m not in seen]:
        del cursor.reactions[message_id]

    return written


def _export_message(
    sink: RecordSink, cursor: LiveCursor, message_id: int, message: dict[str, Any]
) -> None:
    guild_id = cursor.target.guild_id
    time_ns = snowflake_to_unix_ns(message_id)
    sink.write(message_record(message, guild_id, time_ns))
    user_record = map_user_message(message, guild_id, time_ns)
    if user_record is not None:
        sink.write(user_record)
    counts = reaction_counts(message)
    _write_reactions(sink, cursor, message_id, counts)
    _track(cursor, message_id, counts)
    cursor.messages_count += 1


async def poll_channel(
    client: "DiscordClient",
    sink: RecordSink,
    cursor: LiveCursor,
    page_size: int = MAX_PAGE_SIZE,
) -> int:
    """Update reactions of recent messages, then export newer messages.

    Returns:
        Number of messages exported by this poll
    """
    await refresh_reactions(client, sink, cursor)

    exported = 0
    while True:
        messages_data = await client.get_messages(
            channel_id=cursor.target.channel_id,
            limit=page_size,
            after=cursor.after,
        )

        if not messages_data:
            break

        # Sort ascending so the cursor only ever moves forward
        ordered = sorted(
            ((parse_message_id(m.get("id")), m) for m in messages_data),
            key=lambda item: item[0],
        )
        for message_id, message in ordered:
            _export_message(sink, cursor, message_id, message)
            exported += 1

        cursor.after = str(ordered[-1][0])

        # Fewer than requested means we've caught up
        if len(messages_data) < page_size:
            break

    return exported


async def poll_forever(
    client: "DiscordClient",
    sink: RecordSink,
    cursors: list[LiveCursor],
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_polls: int | None = None,
) -> None:
    """Poll all targets round-robin until cancelled (or max_polls rounds)."""
    rounds = 0
    while True:
        for cursor in cursors:
            try:
                exported = await poll_channel(client, sink, cursor)
            except (DiscordAPIError, httpx.HTTPError) as e:
                logger.warning(
                    f"Poll of {cursor.target} failed after {cursor.after}: {e}"
                )
                continue
            logger.poll_complete(str(cursor.target), exported)

        rounds += 1
        if max_polls is not None and rounds >= max_polls:
            return
        await asyncio.sleep(poll_interval)
