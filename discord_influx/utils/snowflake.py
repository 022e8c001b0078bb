# discord_influx/utils/snowflake.py
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from discord_influx.utils.time import parse_iso8601

DISCORD_EPOCH = 1420070400000  # 2015-01-01 UTC (ms)

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_RFC3339_RE = re.compile(
    r"[0-9]{4}-[0-9]{2}-[0-9]{2}[Tt][0-9]{2}:[0-9]{2}:[0-9]{2}"
    r"(\.[0-9]+)?([Zz]|[+-][0-9]{2}:[0-9]{2})"
)

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InvalidSnowflakeError(ValueError):
    """Raised when an ID returned by Discord is not a signed 64-bit integer."""


class InvalidBoundError(ValueError):
    """Raised when a bound is neither a snowflake ID nor an RFC 3339 timestamp."""


def parse_message_id(value: str | int) -> int:
    """Parse a snowflake as sent by Discord.

    Discord never sends malformed IDs; if it does, every ordering decision
    built on top of it is unsound, so callers are expected to let this error
    abort the run.
    """
    try:
        snowflake = int(value)
    except (TypeError, ValueError):
        raise InvalidSnowflakeError(f"invalid message ID: {value!r}") from None
    if isinstance(value, bool) or not INT64_MIN <= snowflake <= INT64_MAX:
        raise InvalidSnowflakeError(f"invalid message ID: {value!r}")
    return snowflake


def snowflake_to_unix_ns(snowflake: int) -> int:
    """Convert a snowflake to a Unix timestamp in nanoseconds.

    Separate messages sent within the same millisecond would otherwise end up
    as a single InfluxDB point (same timestamp, same tags). To keep them apart,
    the 7 most significant bits of the 10-bit shard ID and the 12-bit sequence
    number are packed into the millisecond fraction, skewing the timestamp by
    0-524287 ns.
    """
    ms = (snowflake >> 22) + DISCORD_EPOCH
    shard = (snowflake >> 15) & 0x7F
    sequence = snowflake & 0xFFF
    return ms * 1_000_000 + (shard << 12 | sequence)


def snowflake_to_datetime(snowflake: int) -> datetime:
    ms = (snowflake >> 22) + DISCORD_EPOCH
    return _UNIX_EPOCH + timedelta(milliseconds=ms)


def datetime_to_snowflake(dt: datetime) -> int:
    """Return the smallest snowflake that could have been minted at ``dt``."""
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    ms = (dt - _UNIX_EPOCH) // timedelta(milliseconds=1) - DISCORD_EPOCH
    return ms << 22


def parse_bound(value: str) -> int:
    """Parse a scan bound given as a snowflake ID or an RFC 3339 timestamp.

    Only plain base-10 integers and full RFC 3339 date-times (seconds and a
    ``Z`` or ``+hh:mm`` offset present) are accepted.
    """
    text = value.strip()
    if _INTEGER_RE.fullmatch(text):
        snowflake = int(text)
        if not INT64_MIN <= snowflake <= INT64_MAX:
            raise InvalidBoundError(f"ID out of range: {value}")
        return snowflake

    if not _RFC3339_RE.fullmatch(text):
        raise InvalidBoundError(f"invalid ID or RFC 3339 timestamp: {value!r}")
    try:
        dt = parse_iso8601(text)
    except ValueError:
        raise InvalidBoundError(
            f"invalid ID or RFC 3339 timestamp: {value!r}"
        ) from None
    # Far-future and far-past timestamps saturate at the int64 limits
    return max(INT64_MIN, min(datetime_to_snowflake(dt), INT64_MAX))
