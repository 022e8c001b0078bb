"""Rich-based logging utilities for the exporter.

Provides console output for target scans, page progress and color-coded
warnings for rate limits and retries.
"""

from __future__ import annotations

from typing import Any

from discord_influx.utils.pipeline_logger import BasePipelineLogger


class ExportLogger(BasePipelineLogger):
    """Logger for historic and live exports.

    Extends BasePipelineLogger with export-specific methods.
    """

    def __init__(self) -> None:
        super().__init__(__name__)

    # -------------------------------------------------------------------------
    # Rate Limiting & Retries
    # -------------------------------------------------------------------------

    def rate_limit(self, retry_after: float) -> None:
        self._logger.warning(f"Rate limited. Waiting {retry_after:.1f}s...")

    def retry(
        self, attempt: int, max_attempts: int, wait_time: float, reason: str = ""
    ) -> None:
        msg = f"Retry {attempt}/{max_attempts} in {wait_time:.1f}s"
        if reason:
            msg += f" ({reason})"
        self._logger.warning(msg)

    # -------------------------------------------------------------------------
    # Target Discovery
    # -------------------------------------------------------------------------

    def guild_expanded(self, guild_id: int, channels: int, skipped: int) -> None:
        msg = f"Guild {guild_id}: {channels} text channels"
        if skipped:
            msg += f" ({skipped} hidden skipped)"
        self._logger.info(msg)

    # -------------------------------------------------------------------------
    # Live Polling
    # -------------------------------------------------------------------------

    def poll_complete(self, target: str, messages: int) -> None:
        if messages:
            self._logger.info(f"{target}: exported {messages:,} new messages")
        else:
            self._logger.debug(f"{target}: no new messages")

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------

    def summary(
        self,
        targets: int = 0,
        failed: int = 0,
        messages: int = 0,
        reactions: int = 0,
        elapsed: float = 0.0,
        incomplete: dict[str, int | str] | None = None,
        pipeline_name: str = "Historic export",
        **kwargs: Any,
    ) -> None:
        """Print final export summary.

        Args:
            incomplete: Last cursor reached for each target that failed
        """
        self.print_summary(
            pipeline_name,
            elapsed=elapsed,
            stats={
                "Targets": targets,
                "Failed targets": failed,
                "Messages exported": messages,
                "Reactions exported": reactions,
            },
            extra_sections={"Incomplete targets (last cursor)": incomplete or {}},
            style="red" if failed else "cyan",
        )


# Global logger instance
logger = ExportLogger()
