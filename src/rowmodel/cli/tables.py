"""rowmodel tables / rowmodel show: inspect a database.

Usage:
  rowmodel tables
  rowmodel show Album --limit 20
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from rowmodel.cli.errors import err_no_db, err_table_not_found
from rowmodel.cli.options import resolve_db_path
from rowmodel.db.connection import Database
from rowmodel.db.schema import ID_COLUMN, list_tables, table_columns

console = Console()


def tables_cmd(
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Path to the database (default: from rowmodel.yaml)."),
    ] = None,
) -> None:
    """List tables with their row counts and columns."""
    db_path = resolve_db_path(db)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    with Database(db_path).connection() as conn:
        names = list_tables(conn)
        if not names:
            console.print("[dim]No tables yet.[/]")
            return

        table = Table(title=str(db_path))
        table.add_column("Table", style="bold")
        table.add_column("Rows", justify="right")
        table.add_column("Columns")
        for name in names:
            count = conn.execute(f"SELECT COUNT(*) FROM [{name}]").fetchone()[0]  # noqa: S608
            columns = ", ".join(
                f"{col} [dim]{ctype}[/]" for col, ctype in table_columns(conn, name)
            )
            table.add_row(name, f"{count:,}", columns)

    console.print(table)


def show_cmd(
    table_name: Annotated[str, typer.Argument(help="Table to print.")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Path to the database (default: from rowmodel.yaml)."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Maximum number of rows."),
    ] = 50,
) -> None:
    """Print the rows of a table, oldest first."""
    db_path = resolve_db_path(db)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    with Database(db_path).connection() as conn:
        names = list_tables(conn)
        if table_name not in names:
            console.print(err_table_not_found(table_name, names))
            raise typer.Exit(1)

        columns = [col for col, _ in table_columns(conn, table_name)]
        order = f" ORDER BY {ID_COLUMN}" if ID_COLUMN in columns else ""
        rows = conn.execute(
            f"SELECT * FROM [{table_name}]{order} LIMIT ?", (limit,)  # noqa: S608
        ).fetchall()

    out = Table(title=f"{table_name} ({len(rows)} shown)")
    for col in columns:
        out.add_column(col, style="bold" if col == ID_COLUMN else None)
    for row in rows:
        out.add_row(*("[dim]NULL[/]" if row[c] is None else str(row[c]) for c in columns))
    console.print(out)
