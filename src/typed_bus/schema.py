"""Channel schema definitions loaded from configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from typed_bus.core.bus import Bus
from typed_bus.core.channel import Channel, ChannelKind


class UnknownKind(KeyError):
    """Raised when a schema names a kind that was never registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown channel kind {self.name!r}"


class KindRegistry:
    """Maps kind names used in configuration files to ``ChannelKind`` tokens."""

    def __init__(self) -> None:
        self._kinds: Dict[str, ChannelKind] = {}

    def register(self, kind: ChannelKind) -> ChannelKind:
        """Register a kind under its name. Re-registering the same kind is allowed."""
        existing = self._kinds.get(kind.name)
        if existing is not None and existing != kind:
            raise ValueError(f"Kind {kind.name!r} already registered as {existing.value_type!r}")
        self._kinds[kind.name] = kind
        return kind

    def get(self, name: str) -> ChannelKind:
        try:
            return self._kinds[name]
        except KeyError:
            raise UnknownKind(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __iter__(self) -> Iterator[ChannelKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)


def default_kinds() -> KindRegistry:
    """Return a registry holding the builtin value kinds."""
    registry = KindRegistry()
    for value_type in (str, int, float, bool, list, dict):
        registry.register(ChannelKind.of(value_type))
    return registry


@dataclass
class ChannelSpec:
    """Configuration entry for one channel."""

    kind: str
    name: Optional[str] = None

    def to_channel(self, kinds: KindRegistry) -> Channel:
        return Channel(kinds.get(self.kind), self.name)


@dataclass
class BusSchema:
    """Ordered channel declarations for an ad-hoc bus."""

    name: str
    channels: list[ChannelSpec] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BusSchema:
        entries = data.get("channels", [])
        if not isinstance(entries, list):
            raise ValueError("'channels' must be a list")
        specs = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"Channel entry must be an object: {entry!r}")
            if "kind" not in entry:
                raise ValueError(f"Channel entry without 'kind': {entry!r}")
            specs.append(ChannelSpec(kind=str(entry["kind"]), name=entry.get("name")))
        return cls(
            name=str(data.get("name", "bus")),
            channels=specs,
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "channels": [
                {"kind": spec.kind, "name": spec.name} if spec.name is not None
                else {"kind": spec.kind}
                for spec in self.channels
            ],
        }

    def resolve(self, kinds: Optional[KindRegistry] = None) -> tuple[Channel, ...]:
        """Turn the entries into channels, in declaration order."""
        kinds = kinds or default_kinds()
        return tuple(spec.to_channel(kinds) for spec in self.channels)

    def build_bus(self, kinds: Optional[KindRegistry] = None) -> Bus:
        return Bus(self.resolve(kinds))


def load_schema(path: Path) -> BusSchema:
    """Load a bus schema from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Schema file must contain a JSON object: {path}")
    return BusSchema.from_dict(data)


def save_schema(schema: BusSchema, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(schema.to_dict(), f, indent=2)
