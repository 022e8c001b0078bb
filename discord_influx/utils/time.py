from datetime import datetime, timezone
from typing import Optional


def parse_iso8601(value: str | None) -> Optional[datetime]:
    """
    Parse an RFC 3339 / ISO 8601 timestamp into a timezone-aware UTC datetime.

    Naive timestamps are taken as UTC. Fractional seconds beyond microseconds
    are truncated.
    """
    if not value:
        return None

    dt = datetime.fromisoformat(value.replace("Z", "+00:00").replace("z", "+00:00"))

    # Normalize to UTC timezone-aware
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt


def format_unix_ns(ns: int) -> str:
    """Render a nanosecond Unix timestamp as a short UTC date for display."""
    return datetime.fromtimestamp(ns // 1_000_000_000, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S"
    )
