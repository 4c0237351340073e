from __future__ import annotations

from collections.abc import Awaitable, Callable

import typer
from rich.console import Console

from webbrick.config import Settings
from webbrick.core import CommandEncoder, DeviceRegistry, EventQueue, StatusPoller

from .common import format_event, load_settings_or_exit, run_or_exit


async def _send(
    settings: Settings,
    address: str,
    uid: str,
    action: Callable[[CommandEncoder], Awaitable[None]],
    console: Console,
) -> None:
    events = EventQueue(settings.events.queue_size)
    registry = DeviceRegistry()
    poller = StatusPoller(
        registry,
        settings.devices,
        timeout=settings.polling.timeout,
        charset=settings.polling.charset,
    )
    encoder = CommandEncoder(registry, events, timeout=settings.polling.timeout)

    # Channel numbers and categories come from the brick's own config.
    await poller.poll_address(address)
    await action(encoder)

    for event in events.drain():
        console.print(format_event(event))


def register(app: typer.Typer) -> None:
    @app.command()
    def light(
        address: str = typer.Argument(..., help="Brick address (host or host:port)"),
        uid: str = typer.Argument(..., help="Light UID, e.g. 3::AO::0"),
        level: float = typer.Argument(..., min=0.0, max=1.0, help="Level from 0 to 1"),
    ) -> None:
        """Set a light to a level."""
        settings = load_settings_or_exit()
        console = Console()
        run_or_exit(
            _send(settings, address, uid, lambda enc: enc.set_level(uid, level), console)
        )

    @app.command()
    def output(
        address: str = typer.Argument(..., help="Brick address (host or host:port)"),
        uid: str = typer.Argument(..., help="Device UID, e.g. 3::DO::1"),
        state: str = typer.Argument(..., help="'on' or 'off'"),
    ) -> None:
        """Switch an output (or light) on or off."""
        normalized = state.strip().lower()
        if normalized not in ("on", "off"):
            typer.echo("State must be 'on' or 'off'", err=True)
            raise typer.Exit(1)

        settings = load_settings_or_exit()
        console = Console()
        on = normalized == "on"
        run_or_exit(
            _send(settings, address, uid, lambda enc: enc.set_state(uid, on), console)
        )

    @app.command()
    def pulse(
        address: str = typer.Argument(..., help="Brick address (host or host:port)"),
        uid: str = typer.Argument(..., help="Button UID, e.g. 3::TD::0"),
    ) -> None:
        """Trigger a momentary button press."""
        settings = load_settings_or_exit()
        console = Console()
        run_or_exit(_send(settings, address, uid, lambda enc: enc.pulse(uid), console))
