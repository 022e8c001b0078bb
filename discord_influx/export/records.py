"""Message API JSON to export record mapper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

METRIC_MESSAGES = "discord_messages"
METRIC_REACTIONS = "discord_message_reactions"
METRIC_USER_MESSAGES = "discord_user_messages"

LABEL_GUILD = "guild"
LABEL_CHANNEL = "channel"
LABEL_EMOJI = "emoji"
LABEL_USER = "user"

FIELD_COUNT = "count"


@dataclass(frozen=True)
class ExportRecord:
    """One data point destined for the time-series store."""

    measurement: str
    time_ns: int
    tags: dict[str, str] = field(default_factory=dict)
    fields: dict[str, int] = field(default_factory=dict)


def reaction_emoji_name(reaction: dict[str, Any]) -> str | None:
    """Return the emoji name of a reaction entry, if Discord sent one.

    Reactions on deleted custom emojis come back without a usable name.
    """
    emoji = reaction.get("emoji")
    if not emoji:
        return None
    return emoji.get("name") or None


def message_record(data: dict[str, Any], guild_id: int, time_ns: int) -> ExportRecord:
    return ExportRecord(
        measurement=METRIC_MESSAGES,
        time_ns=time_ns,
        tags={LABEL_GUILD: str(guild_id), LABEL_CHANNEL: str(data["channel_id"])},
        fields={FIELD_COUNT: 1},
    )


def reaction_record(
    guild_id: int, emoji: str, time_ns: int, count: int = 1
) -> ExportRecord:
    return ExportRecord(
        measurement=METRIC_REACTIONS,
        time_ns=time_ns,
        tags={LABEL_GUILD: str(guild_id), LABEL_EMOJI: emoji},
        fields={FIELD_COUNT: count},
    )


def reaction_counts(data: dict[str, Any]) -> dict[str, int]:
    """Users per emoji name on a message, skipping entries without a name."""
    counts: dict[str, int] = {}
    for reaction in data.get("reactions") or []:
        emoji = reaction_emoji_name(reaction)
        if emoji is None:
            continue
        counts[emoji] = counts.get(emoji, 0) + int(reaction.get("count") or 0)
    return counts


def map_message(
    data: dict[str, Any], guild_id: int, time_ns: int
) -> list[ExportRecord]:
    """Convert a Discord API message into its message and reaction records.

    Each reaction entry with an emoji name counts once, however many users
    added it.

    Args:
        data: Raw message object from Discord API
        guild_id: Guild ID (not part of the message payload for this endpoint)
        time_ns: Timestamp derived from the message ID
    """
    records = [message_record(data, guild_id, time_ns)]
    for reaction in data.get("reactions") or []:
        emoji = reaction_emoji_name(reaction)
        if emoji is None:
            continue
        records.append(reaction_record(guild_id, emoji, time_ns))
    return records


def map_user_message(
    data: dict[str, Any], guild_id: int, time_ns: int
) -> ExportRecord | None:
    """Build the per-author record emitted in live mode."""
    author = data.get("author")
    if not author or not author.get("username"):
        return None
    user = author["username"]
    discriminator = author.get("discriminator")
    if discriminator and discriminator != "0":
        user = f"{user}#{discriminator}"
    return ExportRecord(
        measurement=METRIC_USER_MESSAGES,
        time_ns=time_ns,
        tags={LABEL_GUILD: str(guild_id), LABEL_USER: user},
        fields={FIELD_COUNT: 1},
    )
