"""Core components: channels, cells, combined views and the bus itself."""

from typed_bus.core.bus import Bus, BusStatistics
from typed_bus.core.cell import UNSET, ChannelCell, Subscription
from typed_bus.core.channel import ANY, Channel, ChannelKind
from typed_bus.core.combine import CombinedSubscription, Snapshot
from typed_bus.core.errors import (
    BusError,
    BusNotFound,
    DestroyedBusAccess,
    InvalidStateTransition,
    TypeMismatch,
    UnknownChannel,
)
from typed_bus.core.state import BusState

__all__ = [
    "ANY",
    "UNSET",
    "Bus",
    "BusError",
    "BusNotFound",
    "BusState",
    "BusStatistics",
    "Channel",
    "ChannelCell",
    "ChannelKind",
    "CombinedSubscription",
    "DestroyedBusAccess",
    "InvalidStateTransition",
    "Snapshot",
    "Subscription",
    "TypeMismatch",
    "UnknownChannel",
]
