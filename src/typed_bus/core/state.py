"""Bus lifecycle states."""

from enum import Enum


class BusState(Enum):
    """Lifecycle state of a bus.

    PENDING means the bus has never been initialized, INITIALIZED means its
    channels are open, and DESTROYED means it released all channels and can
    no longer be used.
    """

    PENDING = "pending"
    INITIALIZED = "initialized"
    DESTROYED = "destroyed"
