"""Console rendering of bus snapshots using Rich."""

from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from typed_bus.core.bus import Bus
from typed_bus.core.cell import UNSET
from typed_bus.core.combine import Snapshot


def format_value(value: Any) -> str:
    if value is UNSET:
        return "[dim]unset[/dim]"
    return escape(repr(value))


class SnapshotConsole:
    """Renders bus snapshots and summaries to the console."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def build_table(self, snapshot: Snapshot, title: str = "Snapshot") -> Table:
        table = Table(title=title)
        table.add_column("Kind", style="cyan")
        table.add_column("Name", style="magenta")
        table.add_column("Value", style="green")

        for channel, value in snapshot.items():
            table.add_row(
                channel.kind.name,
                channel.name or "-",
                format_value(value),
            )
        return table

    def print_snapshot(self, snapshot: Snapshot, title: str = "Snapshot") -> None:
        self.console.print(self.build_table(snapshot, title))

    def print_bus_summary(self, bus: Bus) -> None:
        """Print lifecycle state, schema size and activity counters."""
        stats = bus.statistics
        panel = Panel(
            f"State: {bus.state.value}\n"
            f"Channels: {len(bus.channels)}\n"
            f"Publishes: {stats.publishes}\n"
            f"Subscriptions: {stats.subscriptions}",
            title=f"{type(bus).__name__} Summary",
        )
        self.console.print(panel)
