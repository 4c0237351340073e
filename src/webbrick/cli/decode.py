from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from webbrick.core import decode, normalize
from webbrick.errors import UnknownDeviceTypeError

from .common import load_settings_or_exit


def register(app: typer.Typer) -> None:
    @app.command("decode")
    def decode_cmd(
        data: str = typer.Argument(..., help="Datagram as hex, e.g. '10 44 41 4f 05'"),
        address: str = typer.Option("0.0.0.0", "--address", help="Sender address"),
    ) -> None:
        """Decode a single UDP announcement."""
        console = Console()
        settings = load_settings_or_exit()

        try:
            raw = bytes.fromhex(data)
        except ValueError as exc:
            typer.echo(f"Invalid hex: {exc}", err=True)
            raise typer.Exit(1) from exc

        packet = decode(raw, address)

        table = Table(show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("UID", packet.uid)
        table.add_row("Packet type", packet.packet_type)
        table.add_row("Source type", packet.source_type)
        if packet.source_type == "ST":
            table.add_row("Time", f"{packet.hour}:{packet.minute}:{packet.second}")
            table.add_row("Day", str(packet.day))
        else:
            table.add_row("Source channel", str(packet.source_channel))
            table.add_row("Target channel", str(packet.target_channel))
            table.add_row("Value", str(packet.value))
        table.add_row("Brick", str(packet.brick_id))

        try:
            sighting = normalize(packet, settings.devices.pirs)
        except UnknownDeviceTypeError as exc:
            table.add_row("Category", f"[red]{exc}[/red]")
        else:
            table.add_row("Category", sighting.category.name)
            table.add_row("State", "on" if sighting.state else "off")
            table.add_row("Level", f"{sighting.level:g}")
            if settings.devices.is_excluded(sighting.uid):
                table.add_row("Policy", "[yellow]excluded[/yellow]")

        console.print(table)
