"""rowmodel CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer
from rich.console import Console

from rowmodel.cli.errors import err_config
from rowmodel.cli.sync import sync_cmd
from rowmodel.cli.tables import show_cmd, tables_cmd
from rowmodel.config import ConfigError, load_config
from rowmodel.logging import setup_logging

console = Console()


def _version() -> str:
    try:
        return importlib.metadata.version("rowmodel")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"rowmodel {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="rowmodel",
    help="rowmodel: inspect and reconcile model databases.",
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every statement decision at debug level."),
    ] = False,
) -> None:
    """rowmodel: inspect and reconcile model databases."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    setup_logging("DEBUG" if verbose else cfg.logging.level, json=cfg.logging.json)


app.command("tables")(tables_cmd)
app.command("show")(show_cmd)
app.command("sync")(sync_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed rowmodel version."""
    typer.echo(f"rowmodel {_version()}")


if __name__ == "__main__":
    app()
