"""Bus error hierarchy.

Every error is a precondition violation raised synchronously at the point
of misuse. Callers can catch all of them with ``BusError``; each also
derives from the closest builtin so generic handlers keep working.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from typed_bus.core.channel import Channel, ChannelKind
    from typed_bus.core.state import BusState


class BusError(Exception):
    """Base exception for all bus errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidStateTransition(BusError, RuntimeError):
    """Raised when ``init()`` is called on a destroyed bus."""

    def __init__(self, state: BusState, target: BusState) -> None:
        self.state = state
        self.target = target
        super().__init__(f"can not move {state.value} bus to {target.value}")


class UnknownChannel(BusError, LookupError):
    """Raised when a channel is not part of the bus schema."""

    def __init__(self, channel: Channel) -> None:
        self.channel = channel
        super().__init__(f"{channel} is not registered")


class TypeMismatch(BusError, TypeError):
    """Raised when a value does not match its channel kind, or the kind is ANY."""

    def __init__(self, kind: ChannelKind, value_type: Optional[type] = None) -> None:
        self.kind = kind
        self.value_type = value_type
        if value_type is None:
            message = f"kind must not be {kind.name!r}"
        else:
            message = f"expected value of kind {kind.name!r}, got {value_type.__name__}"
        super().__init__(message)


class DestroyedBusAccess(BusError, RuntimeError):
    """Raised on any channel access after the bus was destroyed."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}: can not access destroyed bus")


class BusNotFound(BusError, LookupError):
    """Raised when a bus registry can not resolve a bus."""

    def __init__(self, bus_type: Optional[type] = None, name: Optional[str] = None) -> None:
        self.bus_type = bus_type
        self.name = name
        parts = []
        if name is not None:
            parts.append(f"name {name!r}")
        if bus_type is not None:
            parts.append(f"type {bus_type.__name__}")
        super().__init__(f"No bus registered for {' or '.join(parts) or 'query'}")
