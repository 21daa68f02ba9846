"""typed-bus - A type-indexed publish/subscribe hub with latest-value channels."""

__version__ = "0.1.0"

from typed_bus.core.bus import Bus
from typed_bus.core.cell import UNSET, Subscription
from typed_bus.core.channel import ANY, Channel, ChannelKind
from typed_bus.core.combine import CombinedSubscription
from typed_bus.core.errors import (
    BusError,
    BusNotFound,
    DestroyedBusAccess,
    InvalidStateTransition,
    TypeMismatch,
    UnknownChannel,
)
from typed_bus.core.state import BusState
from typed_bus.registry import BusRegistry

__all__ = [
    "ANY",
    "UNSET",
    "Bus",
    "BusError",
    "BusNotFound",
    "BusRegistry",
    "BusState",
    "Channel",
    "ChannelKind",
    "CombinedSubscription",
    "DestroyedBusAccess",
    "InvalidStateTransition",
    "Subscription",
    "TypeMismatch",
    "UnknownChannel",
]
