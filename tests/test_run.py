"""Unit tests for discord_influx.export.run."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import FakeSink
from discord_influx.config.settings import AppSettings, ConfigError
from discord_influx.export.client import DiscordAPIError
from discord_influx.export.historic import Bounds, ExportResult
from discord_influx.export.live import LiveCursor
from discord_influx.export.run import (
    HistoricOrchestrator,
    LiveOrchestrator,
    run_historic,
    run_live,
)
from discord_influx.export.targets import ChannelTarget, TargetSpec

BOUNDS = Bounds(start=0, stop=1000)


def _make_settings(**overrides) -> AppSettings:
    values = {
        "discord_token": "Bot test",
        "influxdb_url": "http://influx:8086",
        "influxdb_token": "t",
        "influxdb_bucket": "b",
    }
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def mock_client_cls():
    with patch("discord_influx.core.DiscordClient") as m:
        client = AsyncMock()
        m.return_value.__aenter__ = AsyncMock(return_value=client)
        m.return_value.__aexit__ = AsyncMock(return_value=False)
        m.client = client
        yield m


@pytest.fixture(autouse=True)
def mock_logger():
    with patch("discord_influx.export.run.logger") as m:
        yield m


# ---------------------------------------------------------------------------
# TestHistoricOrchestrator
# ---------------------------------------------------------------------------


class TestHistoricOrchestrator:
    """Tests for HistoricOrchestrator."""

    @pytest.mark.asyncio
    @patch("discord_influx.export.run.export_channel", new_callable=AsyncMock)
    @patch("discord_influx.export.run.resolve_targets", new_callable=AsyncMock)
    async def test_exports_targets_in_order(
        self, mock_resolve, mock_export, mock_client_cls
    ) -> None:
        targets = {ChannelTarget(2, 1), ChannelTarget(1, 5)}
        mock_resolve.return_value = targets
        mock_export.side_effect = lambda client, sink, target, bounds: ExportResult(
            target=target, last_cursor="0", messages_count=3, exhausted=True
        )
        sink = FakeSink()
        orch = HistoricOrchestrator(
            _make_settings(), sink, BOUNDS, [TargetSpec(1), TargetSpec(2, 1)]
        )

        await orch.run()

        exported = [c.args[2] for c in mock_export.await_args_list]
        assert exported == [ChannelTarget(1, 5), ChannelTarget(2, 1)]
        assert all(c.args[1] is sink for c in mock_export.await_args_list)
        assert all(c.args[3] == BOUNDS for c in mock_export.await_args_list)
        assert len(orch.results) == 2
        assert orch.failed_results == []

    @pytest.mark.asyncio
    @patch("discord_influx.export.run.export_channel", new_callable=AsyncMock)
    @patch("discord_influx.export.run.resolve_targets", new_callable=AsyncMock)
    async def test_include_hidden_passed_to_resolution(
        self, mock_resolve, mock_export, mock_client_cls
    ) -> None:
        mock_resolve.return_value = set()
        specs = [TargetSpec(1)]
        orch = HistoricOrchestrator(
            _make_settings(), FakeSink(), BOUNDS, specs, include_hidden=False
        )

        await orch.run()

        mock_resolve.assert_awaited_once_with(
            mock_client_cls.client, specs, include_hidden=False
        )
        mock_export.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("discord_influx.export.run.export_channel", new_callable=AsyncMock)
    @patch("discord_influx.export.run.resolve_targets", new_callable=AsyncMock)
    async def test_failed_target_reported_with_cursor(
        self, mock_resolve, mock_export, mock_client_cls, mock_logger
    ) -> None:
        ok = ChannelTarget(1, 1)
        bad = ChannelTarget(1, 2)
        mock_resolve.return_value = {ok, bad}
        mock_export.side_effect = [
            ExportResult(target=ok, last_cursor="5", messages_count=4, exhausted=True),
            ExportResult(target=bad, last_cursor="777", messages_count=1, error="boom"),
        ]
        orch = HistoricOrchestrator(_make_settings(), FakeSink(), BOUNDS, [TargetSpec(1)])

        await orch.run()

        assert [r.target for r in orch.failed_results] == [bad]
        kwargs = mock_logger.summary.call_args.kwargs
        assert kwargs["targets"] == 2
        assert kwargs["failed"] == 1
        assert kwargs["messages"] == 5
        assert kwargs["incomplete"] == {"1/2": "777"}

    @pytest.mark.asyncio
    @patch("discord_influx.export.run.resolve_targets", new_callable=AsyncMock)
    async def test_discovery_error_propagates_after_summary(
        self, mock_resolve, mock_client_cls, mock_logger
    ) -> None:
        mock_resolve.side_effect = DiscordAPIError(403, "Missing Access")
        orch = HistoricOrchestrator(_make_settings(), FakeSink(), BOUNDS, [TargetSpec(1)])

        with pytest.raises(DiscordAPIError):
            await orch.run()

        mock_logger.summary.assert_called_once()


# ---------------------------------------------------------------------------
# TestLiveOrchestrator
# ---------------------------------------------------------------------------


class TestLiveOrchestrator:
    """Tests for LiveOrchestrator."""

    @pytest.mark.asyncio
    @patch("discord_influx.export.run.poll_forever", new_callable=AsyncMock)
    @patch("discord_influx.export.run.initial_cursor", new_callable=AsyncMock)
    @patch("discord_influx.export.run.resolve_targets", new_callable=AsyncMock)
    async def test_builds_cursors_and_polls(
        self, mock_resolve, mock_initial, mock_poll, mock_client_cls, mock_logger
    ) -> None:
        target = ChannelTarget(1, 2)
        mock_resolve.return_value = {target}
        mock_initial.side_effect = lambda client, t, start: LiveCursor(
            target=t, after=str(start), messages_count=6
        )
        sink = FakeSink()
        orch = LiveOrchestrator(
            _make_settings(),
            sink,
            [TargetSpec(1, 2)],
            start=99,
            poll_interval=1.5,
            max_polls=1,
        )

        await orch.run()

        assert [c.after for c in orch.cursors] == ["99"]
        mock_poll.assert_awaited_once_with(
            mock_client_cls.client, sink, orch.cursors, poll_interval=1.5, max_polls=1
        )
        kwargs = mock_logger.summary.call_args.kwargs
        assert kwargs["pipeline_name"] == "Live export"
        assert kwargs["messages"] == 6


# ---------------------------------------------------------------------------
# TestRunHistoric
# ---------------------------------------------------------------------------


class TestRunHistoric:
    """Tests for run_historic."""

    @pytest.mark.asyncio
    @patch("discord_influx.export.run._cancel_on_sigterm")
    @patch("discord_influx.export.run.InfluxSink")
    async def test_missing_influx_config_fails_before_export(
        self, mock_sink_cls, _sigterm
    ) -> None:
        mock_sink_cls.from_settings.side_effect = ConfigError("Missing InfluxDB URL")

        with pytest.raises(ConfigError):
            await run_historic(_make_settings(), BOUNDS, [TargetSpec(1, 2)])

    @pytest.mark.asyncio
    async def test_missing_discord_token(self) -> None:
        with pytest.raises(ConfigError):
            await run_historic(
                _make_settings(discord_token=""), BOUNDS, [TargetSpec(1, 2)]
            )

    @pytest.mark.asyncio
    @patch("discord_influx.export.run._cancel_on_sigterm")
    @patch("discord_influx.export.run.export_channel", new_callable=AsyncMock)
    @patch("discord_influx.export.run.resolve_targets", new_callable=AsyncMock)
    @patch("discord_influx.export.run.InfluxSink")
    async def test_returns_results_and_closes_sink(
        self, mock_sink_cls, mock_resolve, mock_export, _sigterm, mock_client_cls
    ) -> None:
        sink = MagicMock()
        mock_sink_cls.from_settings.return_value.__enter__.return_value = sink
        target = ChannelTarget(1, 2)
        mock_resolve.return_value = {target}
        mock_export.return_value = ExportResult(target=target, last_cursor="0")

        results = await run_historic(_make_settings(), BOUNDS, [TargetSpec(1, 2)])

        assert [r.target for r in results] == [target]
        assert mock_export.await_args.args[1] is sink
        mock_sink_cls.from_settings.return_value.__exit__.assert_called_once()


# ---------------------------------------------------------------------------
# TestRunLive
# ---------------------------------------------------------------------------


class TestRunLive:
    """Tests for run_live."""

    @pytest.mark.asyncio
    @patch("discord_influx.export.run.InfluxSink")
    async def test_missing_discord_token_opens_no_sink(self, mock_sink_cls) -> None:
        with pytest.raises(ConfigError):
            await run_live(_make_settings(discord_token=""), [TargetSpec(1, 2)])

        mock_sink_cls.from_settings.assert_not_called()
