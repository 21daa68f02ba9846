"""Bindings that turn bus data into render callbacks."""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from typed_bus.core.bus import Bus
from typed_bus.core.cell import Subscription
from typed_bus.core.channel import Channel, ChannelKind


logger = logging.getLogger(__name__)

R = TypeVar("R")


class Binding(Generic[R]):
    """Renders bus data now and again after every emission.

    ``builder`` is called once with the current data when ``build()`` is
    called, then for every value the subscription yields while ``run()``
    is active. The most recent result is kept in ``rendered``.

    Subclasses choose what is read and subscribed to.
    """

    def __init__(self, bus: Bus, builder: Callable[[Any], R]) -> None:
        self.bus = bus
        self._builder = builder
        self._subscription: Optional[Subscription] = None
        self.rendered: Optional[R] = None
        self.render_count = 0

    @property
    def is_running(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def _read(self) -> Any:
        raise NotImplementedError

    def _subscribe(self) -> Subscription:
        raise NotImplementedError

    def _render(self, value: Any) -> R:
        self.rendered = self._builder(value)
        self.render_count += 1
        return self.rendered

    def build(self) -> R:
        """Render the current value."""
        return self._render(self._read())

    async def run(self) -> int:
        """Render every emission until the bus is destroyed or ``stop()`` is called.

        Returns the number of renders done by this call.
        """
        self._subscription = self._subscribe()
        count = 0
        async for value in self._subscription:
            self._render(value)
            count += 1
        logger.debug("binding on %r finished after %d renders", self.bus, count)
        return count

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()


class ChannelBinding(Binding[R]):
    """Renders the values of one channel."""

    def __init__(
        self,
        bus: Bus,
        kind: ChannelKind,
        builder: Callable[[Any], R],
        name: Optional[str] = None,
    ) -> None:
        super().__init__(bus, builder)
        self.kind = kind
        self.name = name

    def _read(self) -> Any:
        return self.bus.read(self.kind, self.name)

    def _subscribe(self) -> Subscription:
        return self.bus.subscribe(self.kind, self.name)


class CombinedBinding(Binding[R]):
    """Renders snapshot maps of several channels."""

    def __init__(
        self,
        bus: Bus,
        builder: Callable[[Any], R],
        channels: Optional[Iterable[Channel]] = None,
    ) -> None:
        super().__init__(bus, builder)
        self.channels = tuple(channels) if channels is not None else None

    def _read(self) -> Any:
        return self.bus.read_all(self.channels)

    def _subscribe(self) -> Subscription:
        return self.bus.subscribe_all(self.channels)
