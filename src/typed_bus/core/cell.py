"""Per-channel state: the latest value plus its live subscribers."""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from typing import Any, ContextManager, Optional, Protocol

from typed_bus.core.channel import Channel


class _Unset:
    """Sentinel for a channel that was never published to."""

    _instance: Optional[_Unset] = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

# Queued after the last value once a stream is completed.
_END = object()


class Listener(Protocol):
    """Anything a cell can push values into."""

    def _deliver(self, value: Any) -> None: ...

    def _complete(self) -> None: ...


class Subscription:
    """A live, ordered stream of values from one channel.

    Values are queued synchronously by the publisher and consumed with
    ``async for``. The stream ends when the bus is destroyed or when
    ``close()`` is called; it can not be restarted.
    """

    def __init__(
        self,
        channel: Optional[Channel] = None,
        lock: Optional[ContextManager[Any]] = None,
    ) -> None:
        self.channel = channel
        self._cell: Optional[ChannelCell] = None
        self._lock = lock if lock is not None else nullcontext()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._completed = False
        self._exhausted = False

    @property
    def closed(self) -> bool:
        """True once no further values will be queued."""
        return self._completed

    @property
    def pending(self) -> int:
        """Number of queued values not yet consumed."""
        size = self._queue.qsize()
        if self._completed and not self._exhausted:
            size -= 1
        return max(size, 0)

    def attach(self, cell: ChannelCell, replay: bool = True) -> None:
        self._cell = cell
        cell.attach(self, replay=replay)

    def _detach(self) -> None:
        if self._cell is not None:
            self._cell.detach(self)
            self._cell = None

    def _put(self, item: Any) -> None:
        # Hand off to the consuming loop when called from another thread.
        loop = self._loop
        if loop is not None and not loop.is_closed():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is not loop:
                loop.call_soon_threadsafe(self._queue.put_nowait, item)
                return
        self._queue.put_nowait(item)

    def _deliver(self, value: Any) -> None:
        if not self._completed:
            self._put(value)

    def _complete(self) -> None:
        if not self._completed:
            self._completed = True
            self._put(_END)

    def close(self) -> None:
        """Unsubscribe. Values already queued can still be consumed."""
        with self._lock:
            self._detach()
            self._complete()

    def get_nowait(self) -> Any:
        """Return the next queued value, raising ``asyncio.QueueEmpty`` if none."""
        if self.pending == 0:
            raise asyncio.QueueEmpty
        return self._queue.get_nowait()

    def drain(self) -> list[Any]:
        """Return every queued value without waiting."""
        values = []
        while self.pending:
            values.append(self._queue.get_nowait())
        return values

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        if self._exhausted:
            raise StopAsyncIteration
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        item = await self._queue.get()
        if item is _END:
            self._exhausted = True
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._completed else "open"
        return f"Subscription({self.channel}, {state}, pending={self.pending})"


class ChannelCell:
    """Holds the latest value of a channel and notifies its listeners.

    The cell does no locking of its own; the owning bus serializes access.
    """

    def __init__(self, channel: Channel) -> None:
        self.channel = channel
        self.latest: Any = UNSET
        self._listeners: list[Listener] = []

    @property
    def has_value(self) -> bool:
        return self.latest is not UNSET

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def attach(self, listener: Listener, replay: bool = True) -> None:
        """Add a listener, replaying the latest value to it first."""
        self._listeners.append(listener)
        if replay and self.has_value:
            listener._deliver(self.latest)

    def detach(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set(self, value: Any) -> None:
        """Store ``value`` and push it to every listener in attach order."""
        self.latest = value
        for listener in list(self._listeners):
            listener._deliver(value)

    def close(self) -> None:
        """Complete every listener and discard the value."""
        listeners = list(self._listeners)
        self._listeners.clear()
        self.latest = UNSET
        for listener in listeners:
            listener._complete()
