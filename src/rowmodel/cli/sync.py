"""rowmodel sync: create or extend the tables of every model in a module.

Usage:
  rowmodel sync myapp.models
  rowmodel sync myapp.models --db data/app.db
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from rowmodel.cli.errors import err_module_import, err_no_models
from rowmodel.cli.options import resolve_db_path
from rowmodel.engine import Store
from rowmodel.registry import registry

console = Console()


def sync_cmd(
    module: Annotated[str, typer.Argument(help="Dotted path of the module declaring the models.")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Path to the database (default: from rowmodel.yaml)."),
    ] = None,
) -> None:
    """Reconcile the table of every model registered by MODULE."""
    if "" not in sys.path:
        sys.path.insert(0, "")

    before = set(registry.models())
    try:
        mod = importlib.import_module(module)
    except ImportError as exc:
        console.print(err_module_import(module, str(exc)))
        raise typer.Exit(1)

    classes = [
        cls
        for cls in registry.models()
        if cls.__module__ == mod.__name__ or cls not in before
    ]
    if not classes:
        console.print(err_no_models(module))
        raise typer.Exit(0)

    store = Store(resolve_db_path(db))
    for table, added in store.sync(classes).items():
        if added:
            console.print(f"[green]✓[/] {table}: added {', '.join(added)}")
        else:
            console.print(f"[dim]✓ {table}: up to date[/]")
