"""Bus lookup.

Components that need to find a bus receive a ``BusRegistry`` (or any
``BusResolver``) explicitly instead of reaching for a global. The helper
functions mirror the bus operations and accept either a bus instance or
a resolver plus a type and/or name.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional, Protocol

from typed_bus.core.bus import MISSING, Bus, Publisher
from typed_bus.core.cell import Subscription
from typed_bus.core.channel import Channel, ChannelKind
from typed_bus.core.combine import CombinedSubscription, Snapshot
from typed_bus.core.errors import BusNotFound


logger = logging.getLogger(__name__)


class BusResolver(Protocol):
    def resolve(self, bus_type: Optional[type] = None, name: Optional[str] = None) -> Bus: ...


class BusRegistry:
    """Holds buses registered by name and/or by their type."""

    def __init__(self) -> None:
        self._by_name: dict[str, Bus] = {}
        self._by_type: dict[type, Bus] = {}
        self._lock = threading.Lock()

    def register(self, bus: Bus, name: Optional[str] = None) -> Bus:
        """Register a bus. Named buses are resolved by name, others by type."""
        with self._lock:
            if name is not None:
                if name in self._by_name and self._by_name[name] is not bus:
                    raise ValueError(f"A bus is already registered as {name!r}")
                self._by_name[name] = bus
            else:
                self._by_type[type(bus)] = bus
        logger.debug("registered %r as %s", bus, name or type(bus).__name__)
        return bus

    def unregister(self, bus: Bus) -> None:
        with self._lock:
            for name in [n for n, b in self._by_name.items() if b is bus]:
                del self._by_name[name]
            for bus_type in [t for t, b in self._by_type.items() if b is bus]:
                del self._by_type[bus_type]

    def resolve(self, bus_type: Optional[type] = None, name: Optional[str] = None) -> Bus:
        """Return the bus registered under ``name``, else under ``bus_type``.

        Raises:
            BusNotFound: Nothing matches.
        """
        with self._lock:
            if name is not None:
                bus = self._by_name.get(name)
                if bus is not None and (bus_type is None or isinstance(bus, bus_type)):
                    return bus
            if bus_type is not None and bus_type in self._by_type:
                return self._by_type[bus_type]
        raise BusNotFound(bus_type, name)

    def __contains__(self, bus: object) -> bool:
        return any(b is bus for b in (*self._by_name.values(), *self._by_type.values()))

    def __len__(self) -> int:
        return len({id(b) for b in (*self._by_name.values(), *self._by_type.values())})


def find_bus(
    bus: Optional[Bus] = None,
    registry: Optional[BusResolver] = None,
    bus_type: Optional[type] = None,
    bus_name: Optional[str] = None,
) -> Bus:
    """Return ``bus`` if given, else look it up in ``registry``."""
    if bus is not None:
        return bus
    if registry is None:
        raise ValueError("Either bus or registry is required")
    return registry.resolve(bus_type=bus_type, name=bus_name)


def bus_read(
    kind: ChannelKind,
    channel_name: Optional[str] = None,
    **lookup: Any,
) -> Any:
    return find_bus(**lookup).read(kind, channel_name)


def bus_read_all(channels: Optional[Iterable[Channel]] = None, **lookup: Any) -> Snapshot:
    return find_bus(**lookup).read_all(channels)


def bus_subscribe(
    kind: ChannelKind,
    channel_name: Optional[str] = None,
    **lookup: Any,
) -> Subscription:
    return find_bus(**lookup).subscribe(kind, channel_name)


def bus_subscribe_all(
    channels: Optional[Iterable[Channel]] = None,
    **lookup: Any,
) -> CombinedSubscription:
    return find_bus(**lookup).subscribe_all(channels)


def bus_publish(
    kind: ChannelKind,
    value: Any = MISSING,
    *,
    channel_name: Optional[str] = None,
    publisher: Optional[Publisher] = None,
    **lookup: Any,
) -> None:
    find_bus(**lookup).publish(kind, value, name=channel_name, publisher=publisher)
