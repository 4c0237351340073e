from __future__ import annotations

import typer
from rich.console import Console

from webbrick.core import DeviceRegistry, StatusPoller

from .common import device_table, load_settings_or_exit, run_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def poll(
        address: str = typer.Argument(..., help="Brick address (host or host:port)"),
    ) -> None:
        """Fetch status and config from one brick and list its channels."""
        console = Console()
        settings = load_settings_or_exit()

        registry = DeviceRegistry()
        poller = StatusPoller(
            registry,
            settings.devices,
            timeout=settings.polling.timeout,
            charset=settings.polling.charset,
        )

        console.print(f"Polling brick at {address}...")
        count = run_or_exit(poller.poll_address(address))

        if not count:
            console.print("No channels reported.")
            return

        console.print(device_table(registry.devices()))
        console.print(f"\n[green]Found {count} channel(s)[/green]")
