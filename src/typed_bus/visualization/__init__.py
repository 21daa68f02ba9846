"""Presentation helpers built on bus reads and subscriptions."""

from typed_bus.visualization.binding import Binding, ChannelBinding, CombinedBinding
from typed_bus.visualization.console import SnapshotConsole
from typed_bus.visualization.live import LiveSnapshotDisplay

__all__ = ["Binding", "ChannelBinding", "CombinedBinding", "SnapshotConsole", "LiveSnapshotDisplay"]
