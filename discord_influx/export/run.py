"""Main orchestration for historic and live exports.

Both pipelines resolve the target arguments into channels once, then export
them one after another with a single Discord client and a single sink.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import Iterable

from discord_influx.config.settings import AppSettings
from discord_influx.core import BaseOrchestrator
from discord_influx.export.client import DiscordClient
from discord_influx.export.historic import (
    Bounds,
    ExportResult,
    RecordSink,
    export_channel,
)
from discord_influx.export.live import (
    DEFAULT_POLL_INTERVAL,
    LiveCursor,
    initial_cursor,
    poll_forever,
)
from discord_influx.export.logger import logger
from discord_influx.export.targets import ChannelTarget, TargetSpec, resolve_targets
from discord_influx.sink import InfluxSink


class HistoricOrchestrator(BaseOrchestrator):
    """Exports a bounded window of history for every target."""

    def __init__(
        self,
        settings: AppSettings,
        sink: RecordSink,
        bounds: Bounds,
        target_specs: Iterable[TargetSpec],
        include_hidden: bool = True,
    ) -> None:
        super().__init__(settings, sink)
        self.bounds = bounds
        self.target_specs = list(target_specs)
        self.include_hidden = include_hidden
        self.results: list[ExportResult] = []

    async def _run_pipeline(self) -> None:
        async with self.discord_client() as client:
            targets = await resolve_targets(
                client, self.target_specs, include_hidden=self.include_hidden
            )
            logger.info(f"Exporting {len(targets)} channels")
            # Targets are independent; sorting only makes runs reproducible
            for target in sorted(targets):
                result = await self._export_target(client, target)
                self.results.append(result)

    async def _export_target(
        self, client: DiscordClient, target: ChannelTarget
    ) -> ExportResult:
        with logger.block(str(target)) as block:
            block.field("start", self.bounds.start)
            block.field("stop", self.bounds.stop)
            block.field("mode", "historic", color="magenta")

            result = await export_channel(client, self.sink, target, self.bounds)

            if result.failed:
                block.result(
                    f"failed after {result.messages_count:,} messages "
                    f"(last cursor {result.last_cursor})",
                    success=False,
                )
            elif result.messages_count == 0:
                block.empty()
            else:
                block.result(
                    f"exported {result.messages_count:,} messages, "
                    f"{result.reactions_count:,} reactions"
                )
        return result

    @property
    def failed_results(self) -> list[ExportResult]:
        return [r for r in self.results if r.failed]

    def _log_summary(self, elapsed: float) -> None:
        logger.summary(
            targets=len(self.results),
            failed=len(self.failed_results),
            messages=sum(r.messages_count for r in self.results),
            reactions=sum(r.reactions_count for r in self.results),
            incomplete={str(r.target): r.last_cursor for r in self.failed_results},
            elapsed=elapsed,
        )


class LiveOrchestrator(BaseOrchestrator):
    """Continually exports new messages of every target."""

    def __init__(
        self,
        settings: AppSettings,
        sink: RecordSink,
        target_specs: Iterable[TargetSpec],
        start: int | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: int | None = None,
    ) -> None:
        super().__init__(settings, sink)
        self.target_specs = list(target_specs)
        self.start = start
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.cursors: list[LiveCursor] = []

    async def _run_pipeline(self) -> None:
        async with self.discord_client() as client:
            targets = await resolve_targets(client, self.target_specs)
            for target in sorted(targets):
                self.cursors.append(await initial_cursor(client, target, self.start))
            logger.info(f"Starting live export of {len(self.cursors)} channels")
            await poll_forever(
                client,
                self.sink,
                self.cursors,
                poll_interval=self.poll_interval,
                max_polls=self.max_polls,
            )

    def _log_summary(self, elapsed: float) -> None:
        logger.summary(
            targets=len(self.cursors),
            messages=sum(c.messages_count for c in self.cursors),
            reactions=sum(c.reactions_count for c in self.cursors),
            elapsed=elapsed,
            pipeline_name="Live export",
        )


def _cancel_on_sigterm() -> None:
    """Treat SIGTERM like Ctrl-C so buffered points get flushed."""
    task = asyncio.current_task()
    if task is None:
        return
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGTERM, task.cancel)


async def run_historic(
    settings: AppSettings,
    bounds: Bounds,
    target_specs: Iterable[TargetSpec],
    include_hidden: bool = True,
) -> list[ExportResult]:
    """Entry point for running a historic export."""
    settings.require_discord()
    _cancel_on_sigterm()
    with InfluxSink.from_settings(settings) as sink:
        orchestrator = HistoricOrchestrator(
            settings, sink, bounds, target_specs, include_hidden=include_hidden
        )
        await orchestrator.run()
    return orchestrator.results


async def run_live(
    settings: AppSettings,
    target_specs: Iterable[TargetSpec],
    start: int | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Entry point for running the live exporter until interrupted."""
    settings.require_discord()
    _cancel_on_sigterm()
    with InfluxSink.from_settings(settings) as sink:
        orchestrator = LiveOrchestrator(
            settings, sink, target_specs, start=start, poll_interval=poll_interval
        )
        await orchestrator.run()
