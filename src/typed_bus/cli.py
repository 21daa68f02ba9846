"""Command-line interface for typed-bus."""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from typed_bus import __version__
from typed_bus.core.bus import TRACE, Bus
from typed_bus.core.channel import Channel, ChannelKind
from typed_bus.core.errors import BusError
from typed_bus.schema import UnknownKind, load_schema
from typed_bus.visualization.console import SnapshotConsole
from typed_bus.visualization.live import LiveSnapshotDisplay


console = Console()

STR = ChannelKind.of(str)
INT = ChannelKind.of(int)


def configure_logging(verbosity: int) -> None:
    """Route library diagnostics through Rich."""
    level = {0: logging.WARNING, 1: logging.DEBUG}.get(verbosity, TRACE)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", count=True, help="Show diagnostics (-vv for every publish)")
def main(verbose: int) -> None:
    """typed-bus - typed publish/subscribe channels."""
    configure_logging(verbose)


@main.command()
@click.option("--publishes", "-n", default=4, help="Number of values to publish")
@click.option("--live", is_flag=True, help="Render the combined stream live")
@click.option("--interval", "-i", default=0.5, help="Seconds between live publishes")
def demo(publishes: int, live: bool, interval: float) -> None:
    """Publish to a two-channel bus and show every combined snapshot."""
    console.print("[bold cyan]typed-bus demo[/bold cyan]\n")

    asyncio.run(_run_demo(publishes, live, interval))


async def _run_demo(publishes: int, live: bool, interval: float) -> None:
    """Run the demo asynchronously."""
    renderer = SnapshotConsole(console)
    bus = Bus([Channel(STR), Channel(INT)])

    bus.publish(STR, "string")
    bus.publish(INT, 5)

    if live:
        display = LiveSnapshotDisplay(bus, console=console)
        task = asyncio.create_task(display.run())
        await asyncio.sleep(0)
        for i in range(publishes):
            _publish_step(bus, i)
            await asyncio.sleep(interval)
        bus.destroy()
        await task
        console.print(f"\n[bold]Updates rendered:[/bold] {display.updates}")
        renderer.print_bus_summary(bus)
        return

    subscription = bus.subscribe_all()
    for i in range(publishes):
        _publish_step(bus, i)
    bus.destroy()

    count = 0
    async for snapshot in subscription:
        count += 1
        renderer.print_snapshot(snapshot, title=f"Snapshot {count}")

    renderer.print_bus_summary(bus)
    console.print("\n[green]Demo complete![/green]")


def _publish_step(bus: Bus, step: int) -> None:
    if step % 2 == 0:
        bus.publish(STR, publisher=lambda latest: f"{latest}+")
    else:
        bus.publish(INT, publisher=lambda latest: latest + 1)


@main.command()
@click.argument("schema_file", type=click.Path(exists=True))
def inspect(schema_file: str) -> None:
    """Show the channels declared by a JSON schema file."""
    try:
        schema = load_schema(Path(schema_file))
        bus = schema.build_bus()
    except (UnknownKind, ValueError, BusError) as e:
        raise click.ClickException(str(e))

    renderer = SnapshotConsole(console)
    if schema.description:
        console.print(schema.description)
    with bus:
        renderer.print_snapshot(bus.read_all(), title=schema.name)
        renderer.print_bus_summary(bus)


if __name__ == "__main__":
    main()
