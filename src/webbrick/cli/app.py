from __future__ import annotations

from typing import Annotated

import typer

from webbrick.utils.logging import setup_logging

from . import config as config_cmd
from .control import register as register_control
from .decode import register as register_decode
from .listen import register as register_listen
from .mock import register as register_mock
from .poll import register as register_poll

app = typer.Typer(
    help="webbrick - Webbrick home-automation protocol engine", no_args_is_help=True
)

app.add_typer(config_cmd.app, name="config")

register_listen(app)
register_poll(app)
register_decode(app)
register_control(app)
register_mock(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (defaults to $LOGLEVEL or INFO)"),
    ] = None,
) -> None:
    """webbrick CLI."""
    setup_logging(log_level)

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"webbrick version {get_version('webbrick')}")
        raise typer.Exit()
