"""Typed publish/subscribe bus."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, ClassVar, Iterable, Optional, Sequence

from typed_bus.core.cell import ChannelCell, Subscription
from typed_bus.core.channel import Channel, ChannelKind
from typed_bus.core.combine import CombinedSubscription, Snapshot
from typed_bus.core.errors import (
    DestroyedBusAccess,
    InvalidStateTransition,
    TypeMismatch,
    UnknownChannel,
)
from typed_bus.core.state import BusState


logger = logging.getLogger(__name__)

# Per-publish diagnostics, below DEBUG.
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LifecycleHook = Callable[["Bus"], None]
Publisher = Callable[[Any], Any]

# Default for publish(value=...), distinct from a published None.
MISSING = object()


@dataclass
class BusStatistics:
    """Statistics about bus activity."""

    publishes: int = 0
    subscriptions: int = 0
    created_at: float = field(default_factory=time.time)
    last_publish_time: Optional[float] = None


class Bus:
    """A bus passes values between publishers and subscribers over a fixed
    set of typed channels.

    Subscribers either read a snapshot of a channel or subscribe to a stream
    of its values. Streams immediately replay the latest value. The bus
    initializes itself on first use; call ``destroy()`` when done with it.

    The channel schema is given either by a subclass::

        class LawnBus(Bus):
            channels = (Channel(LAWN_DATA), Channel(INT, name="mowers"))

    or directly for an ad-hoc bus: ``Bus([Channel(STR), Channel(INT)])``.

    Publishing from another thread is allowed: values for a stream that is
    being consumed are handed to the consuming event loop with
    ``call_soon_threadsafe``.
    """

    channels: ClassVar[Sequence[Channel]] = ()

    def __init__(
        self,
        channels: Optional[Iterable[Channel]] = None,
        *,
        on_init: Optional[LifecycleHook] = None,
        on_destroy: Optional[LifecycleHook] = None,
    ) -> None:
        declared = tuple(type(self).channels if channels is None else channels)
        for channel in declared:
            if not isinstance(channel, Channel):
                raise TypeError(f"Expected Channel, got {channel!r}")
        if len(set(declared)) != len(declared):
            raise ValueError(f"Duplicate channels in {declared}")

        # Instance attribute shadows the class-level schema.
        self.channels = declared
        self._declared = frozenset(declared)
        self._on_init = on_init
        self._on_destroy = on_destroy
        self._state = BusState.PENDING
        self._cells: dict[Channel, ChannelCell] = {}
        self._unbound: list[Subscription] = []
        self._lock = threading.RLock()
        self._statistics = BusStatistics()

    @property
    def state(self) -> BusState:
        """The current lifecycle state."""
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is BusState.INITIALIZED

    @property
    def statistics(self) -> BusStatistics:
        return self._statistics

    # Lifecycle

    def init(self) -> None:
        """Open all channels.

        Done implicitly by the first channel access. Initializing an
        initialized bus only logs a warning.

        Raises:
            InvalidStateTransition: The bus was destroyed.
        """
        with self._lock:
            if self._state is BusState.DESTROYED:
                raise InvalidStateTransition(self._state, BusState.INITIALIZED)
            if self._state is BusState.INITIALIZED:
                logger.warning("init: can not initialize initialized bus %r", self)
                return

            for channel in self.channels:
                self._cells[channel] = ChannelCell(channel)
                logger.debug("init: opened %s", channel)
            self._state = BusState.INITIALIZED
            self.on_init()

    def on_init(self) -> None:
        """Called exactly once, after the bus has been initialized."""
        if self._on_init is not None:
            self._on_init(self)

    def destroy(self) -> None:
        """Close all channels and release their values.

        Every open stream ends. Destroying a pending or destroyed bus only
        logs a warning.
        """
        with self._lock:
            if self._state is not BusState.INITIALIZED:
                logger.warning("destroy: can not destroy %s bus %r", self._state.value, self)
                return

            for channel, cell in self._cells.items():
                try:
                    cell.close()
                    logger.debug("destroy: closed %s", channel)
                except Exception:
                    logger.warning("destroy: failed to close %s", channel, exc_info=True)
            for stream in self._unbound:
                stream._complete()
            self._unbound.clear()
            self._cells.clear()
            self._state = BusState.DESTROYED
            self.on_destroy()

    def on_destroy(self) -> None:
        """Called exactly once, after the bus has been destroyed."""
        if self._on_destroy is not None:
            self._on_destroy(self)

    def _ensure_open(self, operation: str) -> None:
        if self._state is BusState.DESTROYED:
            raise DestroyedBusAccess(operation)
        if self._state is BusState.PENDING:
            self.init()

    def _resolve(self, operation: str, channel: Channel) -> ChannelCell:
        # Schema check first, so undeclared channels fail in every state.
        if channel not in self._declared:
            raise UnknownChannel(channel)
        self._ensure_open(operation)
        return self._cells[channel]

    def _access(self, operation: str, kind: ChannelKind, name: Optional[str]) -> ChannelCell:
        channel = Channel(kind, name)
        if kind.is_any:
            raise TypeMismatch(kind)
        return self._resolve(operation, channel)

    def _select(self, operation: str, channels: Optional[Iterable[Channel]]) -> list[ChannelCell]:
        if channels is None:
            selected = self._declared
        else:
            selected = frozenset(channels)
            for channel in selected:
                if channel not in self._declared:
                    raise UnknownChannel(channel)
        self._ensure_open(operation)
        return [self._cells[channel] for channel in self.channels if channel in selected]

    # Single channel

    def read(self, kind: ChannelKind, name: Optional[str] = None) -> Any:
        """Return the latest value of a channel, or ``UNSET``."""
        with self._lock:
            return self._access("read", kind, name).latest

    def subscribe(self, kind: ChannelKind, name: Optional[str] = None) -> Subscription:
        """Return a stream of a channel's values, starting with the latest."""
        with self._lock:
            cell = self._access("subscribe", kind, name)
            subscription = Subscription(cell.channel, self._lock)
            subscription.attach(cell)
            self._statistics.subscriptions += 1
            return subscription

    def publish(
        self,
        kind: ChannelKind,
        value: Any = MISSING,
        *,
        name: Optional[str] = None,
        publisher: Optional[Publisher] = None,
    ) -> None:
        """Publish a value to a channel.

        Pass either ``value`` or a ``publisher`` function, which receives the
        channel's latest value and returns the value to publish.

        Raises:
            ValueError: Neither or both of ``value`` and ``publisher`` given.
            TypeMismatch: The value is not exactly of ``kind``.
        """
        if (value is MISSING) == (publisher is None):
            raise ValueError("publish: exactly one of value and publisher is required")

        with self._lock:
            cell = self._access("publish", kind, name)
            if publisher is not None:
                value = publisher(cell.latest)
            if not kind.accepts(value):
                raise TypeMismatch(kind, type(value))

            logger.log(TRACE, "publish %s", cell.channel)
            cell.set(value)
            self._statistics.publishes += 1
            self._statistics.last_publish_time = time.time()

    def subscriber_count(self, kind: ChannelKind, name: Optional[str] = None) -> int:
        """Number of live listeners on a channel, combined streams included."""
        with self._lock:
            return self._access("subscriber_count", kind, name).listener_count

    # All channels

    def read_all(self, channels: Optional[Iterable[Channel]] = None) -> Snapshot:
        """Return the latest values of all channels, or of the given ones."""
        with self._lock:
            cells = self._select("read_all", channels)
            return MappingProxyType({cell.channel: cell.latest for cell in cells})

    def subscribe_all(self, channels: Optional[Iterable[Channel]] = None) -> CombinedSubscription:
        """Return a stream of snapshot maps of all channels, or of the given ones.

        A new map is emitted on subscription and after every publish to any
        selected channel.
        """
        with self._lock:
            cells = self._select("subscribe_all", channels)
            subscription = CombinedSubscription(cells, self._lock)
            if not cells:
                self._unbound = [s for s in self._unbound if not s.closed]
                self._unbound.append(subscription)
            self._statistics.subscriptions += 1
            return subscription

    # Context managers

    def __enter__(self) -> Bus:
        if self._state is not BusState.INITIALIZED:
            self.init()
        return self

    def __exit__(self, *args: object) -> None:
        self.destroy()

    async def __aenter__(self) -> Bus:
        return self.__enter__()

    async def __aexit__(self, *args: object) -> None:
        self.destroy()

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Bus):
            return NotImplemented
        return type(self) is type(other) and self.channels == other.channels

    def __hash__(self) -> int:
        return hash((type(self), self.channels))

    def __repr__(self) -> str:
        channels = ", ".join(str(channel) for channel in self.channels)
        return f"{type(self).__name__}([{channels}])"
