"""Base orchestrator for exporter pipelines.

Provides common infrastructure for the historic and live orchestrators:
- Settings and sink wiring
- Timing and statistics tracking
- Common run() interface

Usage:
    class MyOrchestrator(BaseOrchestrator):
        async def _run_pipeline(self):
            # Implementation
            pass

        def _log_summary(self, elapsed):
            # Log final statistics
            pass
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_influx.export.client import DiscordClient

if TYPE_CHECKING:
    from discord_influx.config.settings import AppSettings
    from discord_influx.export.historic import RecordSink


class BaseOrchestrator(ABC):
    """Abstract base class for exporter orchestrators.

    Subclasses must implement:
    - _run_pipeline(): The actual pipeline logic
    - _log_summary(): Log final statistics
    """

    def __init__(self, settings: "AppSettings", sink: "RecordSink") -> None:
        """Initialize the orchestrator.

        Args:
            settings: Validated application settings.
            sink: Destination for export records.
        """
        self.settings = settings
        self.sink = sink
        self.start_time: float = 0.0

    def discord_client(self) -> DiscordClient:
        return DiscordClient(
            token=self.settings.discord_token,
            user_agent=self.settings.discord_user_agent,
        )

    async def run(self) -> None:
        """Run the pipeline, printing the summary even when interrupted."""
        self.start_time = time.time()
        try:
            await self._run_pipeline()
        finally:
            elapsed = time.time() - self.start_time
            self._log_summary(elapsed)

    @abstractmethod
    async def _run_pipeline(self) -> None:
        """Execute the pipeline logic."""
        ...

    @abstractmethod
    def _log_summary(self, elapsed: float) -> None:
        """Log the final summary statistics.

        Args:
            elapsed: Total time elapsed in seconds.
        """
        ...
