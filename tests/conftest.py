"""Shared fixtures for discord-influx tests."""

from __future__ import annotations

from typing import Any

import pytest

from discord_influx.export.records import ExportRecord

SETTINGS_ENV_VARS = (
    "DISCORD_TOKEN",
    "DISCORD_TOKEN_FILE",
    "DISCORD_USER_AGENT",
    "INFLUXDB_URL",
    "INFLUXDB_TOKEN",
    "INFLUXDB_TOKEN_FILE",
    "INFLUXDB_ORG",
    "INFLUXDB_BUCKET",
)


def make_message(
    msg_id: int,
    channel_id: int = 10,
    reactions: list[dict[str, Any]] | None = None,
    author: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a minimal message dict as returned by the messages endpoint."""
    msg: dict[str, Any] = {"id": str(msg_id), "channel_id": str(channel_id)}
    if reactions is not None:
        msg["reactions"] = reactions
    if author is not None:
        msg["author"] = author
    return msg


class FakeSink:
    """Collects records instead of writing them to InfluxDB."""

    def __init__(self) -> None:
        self.records: list[ExportRecord] = []

    def write(self, record: ExportRecord) -> None:
        self.records.append(record)


class FakeHistory:
    """In-memory channel history honoring the before/after/limit semantics."""

    def __init__(self, ids: list[int], channel_id: int = 10) -> None:
        self.messages = [make_message(i, channel_id) for i in sorted(ids, reverse=True)]
        self.calls: list[dict[str, Any]] = []

    async def get_messages(
        self,
        channel_id: int,
        limit: int = 100,
        before: str | int | None = None,
        after: str | int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append({"before": before, "after": after, "limit": limit})
        if after is not None:
            newer = [m for m in self.messages if int(m["id"]) > int(after)]
            # Discord hands out the page right after the cursor, newest first
            return newer[-limit:]
        older = [
            m for m in self.messages if before is None or int(m["id"]) < int(before)
        ]
        return older[:limit]


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of settings tests."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()
