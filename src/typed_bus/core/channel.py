"""Channel identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ChannelKind:
    """An explicit value-kind token chosen by the application.

    Attributes:
        name: Display name of the kind, e.g. ``"int"`` or ``"LawnData"``.
        value_type: Python type a published value must have, exactly.
    """

    name: str
    value_type: type

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ChannelKind name must be a non-empty string")
        if not isinstance(self.value_type, type):
            raise TypeError(f"value_type must be a type, got {self.value_type!r}")

    @classmethod
    def of(cls, value_type: type) -> ChannelKind:
        """Create a kind named after a Python type."""
        return cls(value_type.__name__, value_type)

    @property
    def is_any(self) -> bool:
        return self.value_type is object

    def accepts(self, value: Any) -> bool:
        """Return True if ``value`` is exactly of this kind."""
        return type(value) is self.value_type

    def __str__(self) -> str:
        return self.name


# Universal kind. Channels may be declared with it but never accessed.
ANY = ChannelKind("any", object)


@dataclass(frozen=True)
class Channel:
    """A channel on a bus, addressed by kind and optional name.

    Attributes:
        kind: The kind of values carried on this channel.
        name: Disambiguates several channels of the same kind on one bus.
    """

    kind: ChannelKind
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, ChannelKind):
            raise TypeError(f"Channel kind must be a ChannelKind, got {self.kind!r}")

    def __str__(self) -> str:
        if self.name is None:
            return f"Channel({self.kind})"
        return f"Channel({self.kind}, {self.name})"
