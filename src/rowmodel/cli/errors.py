"""rowmodel CLI error messages with actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from rowmodel.cli.errors import err_no_db
    console.print(err_no_db(".rowmodel.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".rowmodel.db") -> str:
    """No database file at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Save a model, or run:  rowmodel sync <module> --db " + db_path
    )


def err_table_not_found(table: str, tables: list[str]) -> str:
    """TABLE argument does not name a table in the database."""
    known = ", ".join(tables) if tables else "(none)"
    return (
        f"[red]Error:[/] Table '{table}' not found.\n"
        f"  Tables: {known}\n"
        "  Run:  rowmodel tables"
    )


def err_module_import(module: str, reason: str) -> str:
    """sync could not import the module declaring the models."""
    return (
        f"[red]Error:[/] Could not import '{module}': {reason}\n"
        "  Pass a dotted module path importable from the current directory,\n"
        "  e.g.  rowmodel sync myapp.models"
    )


def err_no_models(module: str) -> str:
    """The imported module registered no models."""
    return (
        f"[yellow]Warning:[/] '{module}' registered no models.\n"
        "  Decorate Model subclasses with @model."
    )


def err_config(reason: str) -> str:
    """rowmodel.yaml or the global config is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {reason}\n"
        "  Fix rowmodel.yaml (or ~/.rowmodel/config.yaml) and retry."
    )
