"""Export target parsing and guild expansion.

A target argument is either ``guild_id`` (every text channel of that guild,
as listed at discovery time) or ``guild_id/channel_id`` (one channel).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from discord_influx.export.logger import logger
from discord_influx.utils.permissions import is_hidden_channel

if TYPE_CHECKING:
    from discord_influx.export.client import DiscordClient


# Channel type constants
CHANNEL_TYPE_TEXT = 0
CHANNEL_TYPE_ANNOUNCEMENT = 5

TEXT_CHANNEL_TYPES = (CHANNEL_TYPE_TEXT, CHANNEL_TYPE_ANNOUNCEMENT)


class InvalidTargetError(ValueError):
    """Raised when a target argument is not ``guild`` or ``guild/channel``."""


@dataclass(frozen=True)
class TargetSpec:
    """A parsed target argument; channel_id is None for a whole guild."""

    guild_id: int
    channel_id: int | None = None


@dataclass(frozen=True, order=True)
class ChannelTarget:
    """One (guild, channel) scan unit."""

    guild_id: int
    channel_id: int

    def __str__(self) -> str:
        return f"{self.guild_id}/{self.channel_id}"


def _parse_id(part: str, arg: str) -> int:
    if not part.isdigit():
        raise InvalidTargetError(f"invalid target {arg!r}: expected guild_id[/channel_id]")
    return int(part)


def parse_target(arg: str) -> TargetSpec:
    parts = arg.strip().split("/")
    if len(parts) == 1:
        return TargetSpec(guild_id=_parse_id(parts[0], arg))
    if len(parts) == 2:
        return TargetSpec(
            guild_id=_parse_id(parts[0], arg),
            channel_id=_parse_id(parts[1], arg),
        )
    raise InvalidTargetError(f"invalid target {arg!r}: expected guild_id[/channel_id]")


def filter_text_channels(
    channels: list[dict[str, Any]],
    guild_id: int,
    include_hidden: bool = True,
) -> tuple[list[ChannelTarget], int]:
    """Keep text-capable channels of a guild.

    Returns:
        (targets, number of hidden channels skipped)
    """
    targets: list[ChannelTarget] = []
    skipped_hidden = 0

    for c in channels:
        if c.get("type") not in TEXT_CHANNEL_TYPES:
            continue
        if not include_hidden and is_hidden_channel(
            c.get("permission_overwrites") or [], guild_id
        ):
            skipped_hidden += 1
            continue
        targets.append(
            ChannelTarget(
                guild_id=int(c.get("guild_id") or guild_id),
                channel_id=int(c["id"]),
            )
        )

    return targets, skipped_hidden


async def resolve_targets(
    client: "DiscordClient",
    specs: Iterable[TargetSpec],
    include_hidden: bool = True,
) -> set[ChannelTarget]:
    """Expand target specs into a deduplicated set of channel targets.

    Guild channel listings are a snapshot; channels created later are not
    picked up. Errors while listing a guild propagate to the caller.
    """
    targets: set[ChannelTarget] = set()
    expanded: dict[int, list[ChannelTarget]] = {}

    for spec in specs:
        if spec.channel_id is not None:
            targets.add(ChannelTarget(spec.guild_id, spec.channel_id))
            continue
        if spec.guild_id in expanded:
            continue
        channels = await client.get_guild_channels(spec.guild_id)
        guild_targets, skipped = filter_text_channels(
            channels, spec.guild_id, include_hidden=include_hidden
        )
        logger.guild_expanded(spec.guild_id, len(guild_targets), skipped)
        expanded[spec.guild_id] = guild_targets
        targets.update(guild_targets)

    return targets
