"""Console output shared by the historic and live exporters.

Plain messages go through Python logging (and so through the RichHandler set
up in discord_influx.utils.logging). Per-target blocks, the in-place page
counter and the closing summary panel are drawn directly on the console.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Generator

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from discord_influx.utils.logging import console

# Erase the current terminal line and return the cursor to column 0
_CLEAR_LINE = "\033[2K\r"


class StructuredBlock:
    """Indented key/value lines under a bold title, one block per target.

    Example output:
        123/456
            start: 0
            mode: historic
            ✓ exported 1,234 messages, 56 reactions
    """

    def __init__(self, title: str, parent: "BasePipelineLogger") -> None:
        self.title = title
        self._parent = parent

    @property
    def console(self) -> Console:
        return self._parent.console

    def field(self, key: str, value: Any, color: str | None = None) -> None:
        text = f"[{color}]{value}[/{color}]" if color else str(value)
        self.console.print(f"    [dim]{key}:[/dim] {text}")

    def result(self, message: str, success: bool = True) -> None:
        self._parent._clear_progress_line()
        icon = "[green]✓[/green]" if success else "[red]✗[/red]"
        self.console.print(f"    {icon} {message}")

    def empty(self) -> None:
        self._parent._clear_progress_line()
        self.console.print("    [dim]Empty, nothing exported[/dim]")


class BasePipelineLogger(ABC):
    """Logging facade for one exporter; subclasses add summary()."""

    def __init__(self, logger_name: str | None = None) -> None:
        self.console: Console = console
        self._has_progress_line = False
        self._logger = logging.getLogger(logger_name or self.__class__.__module__)

    def _clear_progress_line(self) -> None:
        if self._has_progress_line:
            self.console.file.write(_CLEAR_LINE)
            self._has_progress_line = False

    @contextmanager
    def block(self, title: str) -> Generator[StructuredBlock, None, None]:
        self._clear_progress_line()
        self.console.print(f"\n[bold]{title}[/bold]")
        try:
            yield StructuredBlock(title, self)
        finally:
            self._clear_progress_line()

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    def debug(self, message: str) -> None:
        self._logger.debug(message)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def batch_progress(self, count: int, *, oldest_date: str | None = None) -> None:
        """Rewrite the progress line with the running message count.

        Args:
            count: Messages exported so far for the current target
            oldest_date: Date of the oldest message reached, if any
        """
        reached = f" [→ {oldest_date}]" if oldest_date else ""
        self._clear_progress_line()
        self.console.print(f"    [dim]Exported {count:,} messages{reached}[/dim]", end="\r")
        self._has_progress_line = True

    def print_summary(
        self,
        pipeline_name: str,
        *,
        elapsed: float,
        stats: dict[str, int | str],
        extra_sections: dict[str, dict[str, int | str]] | None = None,
        style: str = "cyan",
    ) -> None:
        """Draw the closing panel.

        Integers are printed with thousands separators. Sections with no
        entries are left out.
        """
        rows: list[tuple[str, int | str]] = list(stats.items())
        for section_name, section_stats in (extra_sections or {}).items():
            if not section_stats:
                continue
            rows.append((f"[dim]{section_name}[/dim]", ""))
            rows.extend((f"  {label}", value) for label, value in section_stats.items())
        rows.append(("Time elapsed", f"{elapsed:.1f}s"))

        table = Table.grid(padding=(0, 2))
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right", style="green")
        for label, value in rows:
            table.add_row(label, f"{value:,}" if isinstance(value, int) else str(value))

        self._clear_progress_line()
        self.console.print()
        self.console.print(
            Panel(
                table,
                title=f"[bold]{pipeline_name} Complete[/bold]",
                border_style=style,
                padding=(1, 2),
            )
        )

    @abstractmethod
    def summary(self, **kwargs: Any) -> None: ...
