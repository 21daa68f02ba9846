"""Tests for bus lifecycle, single-channel access and identity."""

import logging

import pytest
from typed_bus.core.bus import Bus
from typed_bus.core.cell import UNSET
from typed_bus.core.channel import ANY, Channel, ChannelKind
from typed_bus.core.errors import (
    BusError,
    DestroyedBusAccess,
    InvalidStateTransition,
    TypeMismatch,
    UnknownChannel,
)
from typed_bus.core.state import BusState


STR = ChannelKind.of(str)
INT = ChannelKind.of(int)
FLOAT = ChannelKind.of(float)


class CountingBus(Bus):
    """Bus that counts lifecycle hook calls."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.inits = 0
        self.destroys = 0

    def on_init(self) -> None:
        self.inits += 1

    def on_destroy(self) -> None:
        self.destroys += 1


class EmptyBus(CountingBus):
    channels = ()


class StringIntBus(CountingBus):
    channels = (Channel(STR), Channel(INT))


class StringStringBus(CountingBus):
    channels = (Channel(STR, name="ChannelA"), Channel(STR, name="ChannelB"))


class TestBusLifecycle:
    """Tests for the Pending -> Initialized -> Destroyed state machine."""

    @pytest.fixture
    def bus(self) -> StringIntBus:
        """Create a test bus."""
        return StringIntBus()

    def test_create_bus(self, bus: StringIntBus) -> None:
        """Test a new bus is pending."""
        assert bus.state is BusState.PENDING
        assert not bus.is_initialized
        assert bus.channels == (Channel(STR), Channel(INT))

    def test_init(self, bus: StringIntBus) -> None:
        """Test explicit initialization."""
        bus.init()
        assert bus.state is BusState.INITIALIZED
        assert bus.is_initialized
        assert bus.inits == 1

    def test_init_twice_is_noop(self, bus: StringIntBus, caplog: pytest.LogCaptureFixture) -> None:
        """Test the init hook runs once and the repeat is only reported."""
        bus.init()
        with caplog.at_level(logging.WARNING):
            bus.init()
        assert bus.inits == 1
        assert bus.is_initialized
        assert "can not initialize initialized bus" in caplog.text

    def test_destroy_pending_is_noop(self, bus: StringIntBus) -> None:
        """Test destroying a pending bus leaves it pending."""
        bus.destroy()
        assert bus.state is BusState.PENDING
        assert bus.destroys == 0

    def test_destroy(self, bus: StringIntBus) -> None:
        """Test destroying an initialized bus."""
        bus.init()
        bus.destroy()
        assert bus.state is BusState.DESTROYED
        assert not bus.is_initialized
        assert bus.destroys == 1

    def test_destroy_twice_is_noop(self, bus: StringIntBus, caplog: pytest.LogCaptureFixture) -> None:
        """Test the destroy hook runs once."""
        bus.init()
        bus.destroy()
        with caplog.at_level(logging.WARNING):
            bus.destroy()
        assert bus.destroys == 1
        assert bus.state is BusState.DESTROYED
        assert "can not destroy destroyed bus" in caplog.text

    def test_destroy_survives_failing_channel(
        self,
        bus: StringIntBus,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test one channel failing to close does not stop the others."""
        strings = bus.subscribe(STR)
        ints = bus.subscribe(INT)

        def fail() -> None:
            raise RuntimeError("close failed")

        monkeypatch.setattr(bus._cells[Channel(STR)], "close", fail)
        with caplog.at_level(logging.WARNING):
            bus.destroy()

        assert ints.closed
        assert not strings.closed
        assert bus.state is BusState.DESTROYED
        assert bus.destroys == 1
        assert "failed to close" in caplog.text

    def test_init_destroyed_fails(self, bus: StringIntBus) -> None:
        """Test a destroyed bus can never be initialized again."""
        bus.init()
        bus.destroy()
        with pytest.raises(InvalidStateTransition):
            bus.init()
        assert bus.state is BusState.DESTROYED
        assert bus.inits == 1

    def test_empty_schema(self) -> None:
        """Test a bus without channels still moves through its states."""
        bus = EmptyBus()
        bus.init()
        assert bus.is_initialized
        assert dict(bus.read_all()) == {}
        bus.destroy()
        assert bus.state is BusState.DESTROYED
        assert (bus.inits, bus.destroys) == (1, 1)

    def test_hook_callbacks(self) -> None:
        """Test lifecycle callbacks on an ad-hoc bus."""
        calls: list[tuple[str, Bus]] = []
        bus = Bus(
            [Channel(STR)],
            on_init=lambda b: calls.append(("init", b)),
            on_destroy=lambda b: calls.append(("destroy", b)),
        )
        bus.init()
        bus.init()
        bus.destroy()
        bus.destroy()
        assert calls == [("init", bus), ("destroy", bus)]

    def test_implicit_init(self, bus: StringIntBus) -> None:
        """Test the first channel access initializes the bus."""
        assert bus.read(STR) is UNSET
        assert bus.is_initialized
        assert bus.inits == 1

    def test_implicit_init_on_publish(self, bus: StringIntBus) -> None:
        """Test publishing to a pending bus initializes it."""
        bus.publish(INT, 1)
        assert bus.is_initialized
        assert bus.read(INT) == 1

    def test_context_manager(self) -> None:
        """Test bus as context manager."""
        with StringIntBus() as bus:
            assert bus.is_initialized
        assert bus.state is BusState.DESTROYED

    async def test_async_context_manager(self) -> None:
        """Test bus as async context manager."""
        async with StringIntBus() as bus:
            bus.publish(STR, "x")
            assert bus.read(STR) == "x"
        assert bus.state is BusState.DESTROYED

    def test_duplicate_channels_rejected(self) -> None:
        """Test a schema can not declare a channel twice."""
        with pytest.raises(ValueError, match="Duplicate"):
            Bus([Channel(STR), Channel(STR)])

    def test_schema_entries_must_be_channels(self) -> None:
        """Test that schema entries are type checked."""
        with pytest.raises(TypeError):
            Bus([STR])  # type: ignore[list-item]


class TestBusAccess:
    """Tests for read, publish and error conditions."""

    @pytest.fixture
    def bus(self) -> StringIntBus:
        """Create a test bus."""
        return StringIntBus()

    def test_publish_and_read(self, bus: StringIntBus) -> None:
        """Test reading returns exactly the published value."""
        bus.publish(STR, "string")
        bus.publish(INT, 5)
        assert bus.read(STR) == "string"
        assert bus.read(INT) == 5

    def test_read_unpublished(self, bus: StringIntBus) -> None:
        """Test a never-published channel reads as UNSET."""
        assert bus.read(INT) is UNSET
        assert not UNSET

    def test_latest_value_wins(self) -> None:
        """Test only the latest value is kept."""
        bus = Bus([Channel(FLOAT)])
        bus.publish(FLOAT, 6.0)
        bus.publish(FLOAT, 7.0)
        bus.publish(FLOAT, 8.0)
        assert bus.read(FLOAT) == 8.0

    def test_named_channels(self) -> None:
        """Test channels of the same kind are separated by name."""
        bus = StringStringBus()
        bus.publish(STR, "a1", name="ChannelA")
        bus.publish(STR, "b1", name="ChannelB")
        assert bus.read(STR, "ChannelA") == "a1"
        assert bus.read(STR, "ChannelB") == "b1"

    def test_publish_with_publisher(self, bus: StringIntBus) -> None:
        """Test computing the new value from the current one."""
        bus.publish(INT, 5)
        bus.publish(INT, publisher=lambda latest: latest + 1)
        assert bus.read(INT) == 6

    def test_publisher_receives_unset(self, bus: StringIntBus) -> None:
        """Test the publisher sees UNSET before the first publish."""
        seen = []

        def publisher(latest):
            seen.append(latest)
            return 1

        bus.publish(INT, publisher=publisher)
        assert seen == [UNSET]
        assert bus.read(INT) == 1

    def test_publish_requires_exactly_one_source(self, bus: StringIntBus) -> None:
        """Test value and publisher are mutually exclusive."""
        with pytest.raises(ValueError):
            bus.publish(INT)
        with pytest.raises(ValueError):
            bus.publish(INT, 1, publisher=lambda latest: 2)

    def test_publish_none_value(self, bus: StringIntBus) -> None:
        """Test None is a value, and does not match an int channel."""
        with pytest.raises(TypeMismatch):
            bus.publish(INT, None)

    def test_type_mismatch(self, bus: StringIntBus) -> None:
        """Test publishing the wrong kind leaves the value unchanged."""
        bus.publish(INT, 5)
        with pytest.raises(TypeMismatch):
            bus.publish(INT, "five")
        with pytest.raises(TypeMismatch):
            bus.publish(INT, True)
        assert bus.read(INT) == 5

    def test_publisher_type_mismatch(self, bus: StringIntBus) -> None:
        """Test the publisher's result is kind checked too."""
        bus.publish(INT, 5)
        with pytest.raises(TypeMismatch):
            bus.publish(INT, publisher=lambda latest: str(latest))
        assert bus.read(INT) == 5

    def test_any_kind_rejected(self, bus: StringIntBus) -> None:
        """Test the universal kind can not be used for access."""
        with pytest.raises(TypeMismatch):
            bus.read(ANY)
        with pytest.raises(TypeMismatch):
            bus.subscribe(ANY)
        with pytest.raises(TypeMismatch):
            bus.publish(ANY, object())

    @pytest.mark.parametrize("setup", ["pending", "initialized", "destroyed"])
    def test_unknown_channel(self, bus: StringIntBus, setup: str) -> None:
        """Test undeclared channels fail in every state."""
        if setup != "pending":
            bus.init()
        if setup == "destroyed":
            bus.destroy()

        with pytest.raises(UnknownChannel):
            bus.read(FLOAT)
        with pytest.raises(UnknownChannel):
            bus.read(STR, "unnamed")
        with pytest.raises(UnknownChannel):
            bus.subscribe(FLOAT)
        with pytest.raises(UnknownChannel):
            bus.publish(FLOAT, 1.0)
        with pytest.raises(UnknownChannel):
            bus.read_all([Channel(FLOAT)])

    def test_unknown_channel_does_not_init(self, bus: StringIntBus) -> None:
        """Test a failed lookup leaves a pending bus pending."""
        with pytest.raises(UnknownChannel):
            bus.read(FLOAT)
        assert bus.state is BusState.PENDING

    def test_destroyed_bus_access(self, bus: StringIntBus) -> None:
        """Test every access fails after destroy."""
        bus.publish(INT, 5)
        bus.destroy()

        with pytest.raises(DestroyedBusAccess):
            bus.read(INT)
        with pytest.raises(DestroyedBusAccess):
            bus.subscribe(INT)
        with pytest.raises(DestroyedBusAccess):
            bus.publish(INT, 6)
        with pytest.raises(DestroyedBusAccess):
            bus.read_all()
        with pytest.raises(DestroyedBusAccess):
            bus.subscribe_all()
        assert bus.state is BusState.DESTROYED

    def test_errors_share_base(self) -> None:
        """Test all bus errors derive from BusError and a builtin."""
        assert issubclass(UnknownChannel, BusError)
        assert issubclass(UnknownChannel, LookupError)
        assert issubclass(TypeMismatch, TypeError)
        assert issubclass(DestroyedBusAccess, RuntimeError)
        assert issubclass(InvalidStateTransition, RuntimeError)

    def test_statistics(self, bus: StringIntBus) -> None:
        """Test activity counters."""
        bus.publish(INT, 1)
        bus.publish(INT, 2)
        bus.subscribe(INT)
        assert bus.statistics.publishes == 2
        assert bus.statistics.subscriptions == 1
        assert bus.statistics.last_publish_time is not None


class TestBusIdentity:
    """Tests for equality and representation."""

    def test_equal_schemas(self) -> None:
        """Test buses with identical schemas compare equal."""
        assert StringIntBus() == StringIntBus()
        assert StringStringBus() == StringStringBus()
        assert EmptyBus() == EmptyBus()
        assert Bus([Channel(STR), Channel(INT)]) == Bus([Channel(STR), Channel(INT)])
        assert hash(StringIntBus()) == hash(StringIntBus())

    def test_unequal_schemas(self) -> None:
        """Test differing schemas or bus classes compare unequal."""
        assert Bus([Channel(STR), Channel(INT)]) != Bus([Channel(INT), Channel(STR)])
        assert Bus([Channel(STR, "A")]) != Bus([Channel(STR, "B")])
        assert EmptyBus() != StringIntBus()
        assert StringIntBus() != Bus([Channel(STR), Channel(INT)])

    def test_repr(self) -> None:
        """Test string representation."""
        assert repr(EmptyBus()) == "EmptyBus([])"
        assert repr(StringIntBus()) == "StringIntBus([Channel(str), Channel(int)])"
        assert repr(StringStringBus()) == (
            "StringStringBus([Channel(str, ChannelA), Channel(str, ChannelB)])"
        )
        assert repr(Bus([Channel(FLOAT)])) == "Bus([Channel(float)])"
