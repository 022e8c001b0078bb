"""Discord permission utilities.

Used to tell hidden channels apart from public ones during guild expansion.
"""

from __future__ import annotations

from typing import Any


# Permission bit flags
# See: https://discord.com/developers/docs/topics/permissions#permissions-bitwise-permission-flags
VIEW_CHANNEL = 0x0000000000000400  # 1 << 10
READ_MESSAGE_HISTORY = 0x0000000000010000  # 1 << 16

OVERWRITE_TYPE_ROLE = 0


def is_hidden_channel(
    channel_overwrites: list[dict[str, Any]],
    everyone_role_id: int,
) -> bool:
    """Check whether a channel is hidden from @everyone.

    A channel counts as hidden when its @everyone overwrite denies
    VIEW_CHANNEL or READ_MESSAGE_HISTORY.

    Args:
        channel_overwrites: List of permission overwrite objects from channel
        everyone_role_id: The guild's @everyone role ID (same as guild_id)
    """
    for overwrite in channel_overwrites:
        if overwrite.get("type") != OVERWRITE_TYPE_ROLE:
            continue
        if int(overwrite["id"]) != everyone_role_id:
            continue
        deny = int(overwrite.get("deny", 0) or 0)
        if deny & (VIEW_CHANNEL | READ_MESSAGE_HISTORY):
            return True
    return False
