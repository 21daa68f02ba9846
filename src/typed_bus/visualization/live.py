"""Live display of a bus's combined stream."""

from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console
from rich.live import Live

from typed_bus.core.bus import Bus
from typed_bus.core.channel import Channel
from typed_bus.core.combine import Snapshot
from typed_bus.visualization.binding import CombinedBinding
from typed_bus.visualization.console import SnapshotConsole


class LiveSnapshotDisplay:
    """Redraws a snapshot table every time any selected channel changes."""

    def __init__(
        self,
        bus: Bus,
        channels: Optional[Iterable[Channel]] = None,
        console: Optional[Console] = None,
        refresh_rate: float = 4.0,
    ) -> None:
        self._console = console or Console()
        self._renderer = SnapshotConsole(self._console)
        self._refresh_rate = refresh_rate
        self._live: Optional[Live] = None
        self._binding = CombinedBinding(bus, self._on_snapshot, channels)

    @property
    def updates(self) -> int:
        return self._binding.render_count

    def _on_snapshot(self, snapshot: Snapshot) -> Snapshot:
        if self._live is not None:
            self._live.update(self._renderer.build_table(snapshot, title="Live"))
        return snapshot

    async def run(self) -> None:
        """Run until the bus is destroyed or ``stop()`` is called."""
        with Live(
            console=self._console,
            refresh_per_second=self._refresh_rate,
        ) as live:
            self._live = live
            try:
                await self._binding.run()
            finally:
                self._live = None

    def stop(self) -> None:
        self._binding.stop()
