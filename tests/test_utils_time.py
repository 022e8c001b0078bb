"""Tests for discord_influx.utils.time module."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from discord_influx.utils.time import format_unix_ns, parse_iso8601


class TestParseIso8601:
    """Tests for parse_iso8601 function."""

    def test_parses_z_suffix(self) -> None:
        """Should parse timestamps with Z suffix."""
        result = parse_iso8601("2021-04-06T03:01:01Z")

        assert result is not None
        assert (result.year, result.month, result.day) == (2021, 4, 6)
        assert (result.hour, result.minute, result.second) == (3, 1, 1)
        assert result.tzinfo == timezone.utc

    def test_lowercase_z(self) -> None:
        result = parse_iso8601("2021-04-06t03:01:01z")

        assert result is not None
        assert result.hour == 3

    def test_offset_normalized_to_utc(self) -> None:
        """Should convert offset timestamps to UTC."""
        result = parse_iso8601("2021-04-06T05:01:01+02:00")

        assert result is not None
        assert result.hour == 3
        assert result.utcoffset() == timedelta(0)

    def test_naive_assumed_utc(self) -> None:
        result = parse_iso8601("2021-04-06T03:01:01")

        assert result is not None
        assert result.tzinfo == timezone.utc

    def test_fractional_seconds(self) -> None:
        result = parse_iso8601("2021-04-06T03:01:01.250Z")

        assert result is not None
        assert result.microsecond == 250_000

    @pytest.mark.parametrize("value", [None, ""])
    def test_returns_none_for_empty(self, value) -> None:
        assert parse_iso8601(value) is None

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_iso8601("not-a-dateTtime")


class TestFormatUnixNs:
    def test_formats_utc(self) -> None:
        assert format_unix_ns(1617665726608147496) == "2021-04-05 23:35:26"

    def test_epoch(self) -> None:
        assert format_unix_ns(0) == "1970-01-01 00:00:00"
