from __future__ import annotations

import asyncio
import logging
from typing import Annotated

import typer
from rich.console import Console

from webbrick.config import Settings
from webbrick.core import Engine
from webbrick.errors import StartupError

from .common import format_event, load_settings_or_exit

logger = logging.getLogger(__name__)


async def _listen(settings: Settings, console: Console) -> None:
    async with Engine(settings) as engine:
        async for event in engine.stream():
            console.print(format_event(event))


def register(app: typer.Typer) -> None:
    @app.command()
    def listen(
        port: Annotated[
            int | None,
            typer.Option("--port", "-p", help="UDP port (defaults to config)"),
        ] = None,
        poll: Annotated[
            bool,
            typer.Option(
                "--poll/--no-poll", help="Poll bricks once their heartbeat is seen"
            ),
        ] = True,
    ) -> None:
        """Listen for brick announcements and print device events."""
        console = Console()
        settings = load_settings_or_exit()

        listener = settings.listener
        if port is not None:
            listener = listener.model_copy(update={"port": port})
        polling = settings.polling.model_copy(
            update={"enabled": settings.polling.enabled and poll}
        )
        settings = settings.model_copy(update={"listener": listener, "polling": polling})

        console.print(f"Listening on UDP port {settings.listener.port}...")
        logger.info(
            "Polling %s (interval=%.1fs)",
            "enabled" if settings.polling.enabled else "disabled",
            settings.polling.interval,
        )
        console.print("Press Ctrl+C to stop.\n")

        try:
            asyncio.run(_listen(settings, console))
        except StartupError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc
        except OSError as exc:
            typer.echo(
                f"Cannot listen on port {settings.listener.port}: {exc}", err=True
            )
            raise typer.Exit(1) from exc
        except KeyboardInterrupt:
            console.print("\n[green]Stopped listening.[/green]")
