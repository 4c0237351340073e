from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.table import Table

from webbrick.config import Settings, get_settings, resolve_config_path
from webbrick.errors import WebbrickError
from webbrick.models import Device, Event

T = TypeVar("T")


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except (WebbrickError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc


def device_table(devices: list[Device]) -> Table:
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("UID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Category", style="yellow")
    table.add_column("IP")
    table.add_column("State")
    table.add_column("Level", justify="right")
    table.add_column("Last message")

    for device in devices:
        table.add_row(
            str(device.id),
            device.uid,
            device.name,
            device.category.name,
            device.ip,
            "on" if device.state else "off",
            f"{device.level:g}",
            device.last_message,
        )
    return table


def format_event(event: Event) -> str:
    device = event.device
    name = f" ({device.name})" if device.name else ""
    return (
        f"[cyan]{event.name}[/cyan] {device.uid}{name} "
        f"state={'on' if device.state else 'off'} level={device.level:g} "
        f"[dim]{device.last_message}[/dim]"
    )
