"""Combined view over several channels.

``CombinedSubscription`` merges the emissions of N channel cells into one
stream of snapshot maps. It keeps the last known value of every selected
channel and re-emits the whole map whenever any one of them changes, so
unchanged channels repeat their previous value.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, ContextManager, Iterable, Mapping, Optional, Sequence

from typed_bus.core.cell import ChannelCell, Subscription
from typed_bus.core.channel import Channel


Snapshot = Mapping[Channel, Any]


def snapshot_of(cells: Iterable[ChannelCell]) -> Snapshot:
    """Build an immutable snapshot map from the current value of each cell."""
    return MappingProxyType({cell.channel: cell.latest for cell in cells})


class _Tap:
    """Forwards one cell's emissions into a combined subscription."""

    def __init__(self, cell: ChannelCell, parent: CombinedSubscription) -> None:
        self.cell = cell
        self._parent = parent

    def _deliver(self, value: Any) -> None:
        self._parent._on_upstream(self.cell.channel, value)

    def _complete(self) -> None:
        self._parent._complete()


class CombinedSubscription(Subscription):
    """A stream of snapshot maps over a fixed set of channels.

    The first emission is the snapshot at subscription time. Every later
    emission follows exactly one upstream publish.
    """

    def __init__(
        self,
        cells: Sequence[ChannelCell],
        lock: Optional[ContextManager[Any]] = None,
    ) -> None:
        super().__init__(None, lock)
        self.channels = tuple(cell.channel for cell in cells)
        self._latest: dict[Channel, Any] = {cell.channel: cell.latest for cell in cells}
        self._taps = [_Tap(cell, self) for cell in cells]
        for tap in self._taps:
            tap.cell.attach(tap, replay=False)
        self._emit()

    def _on_upstream(self, channel: Channel, value: Any) -> None:
        self._latest[channel] = value
        self._emit()

    def _emit(self) -> None:
        self._deliver(MappingProxyType(dict(self._latest)))

    def _detach(self) -> None:
        for tap in self._taps:
            tap.cell.detach(tap)
        self._taps = []

    def _complete(self) -> None:
        if not self.closed:
            self._detach()
        super()._complete()

    def __repr__(self) -> str:
        names = ", ".join(str(channel) for channel in self.channels)
        state = "closed" if self.closed else "open"
        return f"CombinedSubscription([{names}], {state}, pending={self.pending})"
