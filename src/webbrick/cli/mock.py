from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from webbrick.core import run_mock_brick


def _parse_target(value: str) -> tuple[str, int]:
    host, _, port = value.rpartition(":")
    if not host or not port.isdigit():
        raise typer.BadParameter("Expected HOST:PORT")
    return host, int(port)


def register(app: typer.Typer) -> None:
    @app.command()
    def mock(
        brick_id: int = typer.Option(3, "--brick-id", "-b", help="Brick number"),
        name: str = typer.Option("MockBrick", "--name", "-n", help="Brick name"),
        port: int = typer.Option(8080, "--port", "-p", help="HTTP port to serve on"),
        announce: str | None = typer.Option(
            None,
            "--announce",
            help="HOST:PORT to send UDP heartbeats to, e.g. 255.255.255.255:2552",
        ),
    ) -> None:
        """Run a mock brick for development."""
        console = Console()
        target = _parse_target(announce) if announce else None

        console.print(f"Starting mock brick {brick_id} '{name}' on port {port}...")
        console.print("Press Ctrl+C to stop.\n")

        try:
            asyncio.run(
                run_mock_brick(
                    brick_id=brick_id, name=name, port=port, udp_target=target
                )
            )
        except KeyboardInterrupt:
            console.print("\n[green]Mock brick stopped.[/green]")
