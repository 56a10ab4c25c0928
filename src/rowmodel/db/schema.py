"""Table creation and additive column reconciliation.

Tables are never migrated destructively: a missing table is created, a
missing column is added, and everything already present (including columns
no model declares any more) is left alone.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from rowmodel.db.connection import is_schema_mismatch
from rowmodel.db.types import column_type_for
from rowmodel.fields import FieldSpec
from rowmodel.logging import get_logger

log = get_logger(__name__)

ID_COLUMN = "_id"


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Probe *table* with a row count; a missing table raises in sqlite3."""
    try:
        conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    except sqlite3.OperationalError as exc:
        if not is_schema_mismatch(exc):
            raise
        return False
    return True


def column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    """Probe *column* by selecting its declared type from at most one row.

    Only a missing table or column reads as False; other errors (a locked
    database) propagate.
    """
    try:
        conn.execute(f"SELECT typeof({column}) FROM {table} LIMIT 1").fetchone()
    except sqlite3.OperationalError as exc:
        if not is_schema_mismatch(exc):
            raise
        return False
    return True


def create_table(conn: sqlite3.Connection, table: str, fields: Iterable[FieldSpec]) -> None:
    """Create *table* with one column per field plus the identity column."""
    columns = [f"{spec.name} {column_type_for(spec)}" for spec in fields if spec.is_column]
    columns.append(f"{ID_COLUMN} INTEGER PRIMARY KEY AUTOINCREMENT")
    sql = f"CREATE TABLE {table} ({', '.join(columns)})"
    log.info("schema.create_table", table=table, sql=sql)
    conn.execute(sql)
    conn.commit()


def add_column(conn: sqlite3.Connection, table: str, spec: FieldSpec) -> None:
    """Add the column for *spec* to an existing table."""
    storage = column_type_for(spec)
    log.info("schema.add_column", table=table, column=spec.name, type=str(storage))
    conn.execute(f"ALTER TABLE {table} ADD {spec.name} {storage}")
    conn.commit()


def ensure_table(conn: sqlite3.Connection, table: str, fields: Iterable[FieldSpec]) -> list[str]:
    """Create *table* or add the columns it is missing.

    Idempotent: on a table that already matches, only the probes run.

    Args:
        conn: Open connection.
        table: Table name.
        fields: Persisted-field descriptors of the model stored in *table*.

    Returns:
        Names of the columns that were created (all of them for a new table).
    """
    specs = [spec for spec in fields if spec.is_column]
    log.debug("schema.reconcile", table=table)

    if not table_exists(conn, table):
        create_table(conn, table, specs)
        return [spec.name for spec in specs]

    added: list[str] = []
    for spec in specs:
        if not column_exists(conn, table, spec.name):
            add_column(conn, table, spec)
            added.append(spec.name)
    return added


def table_columns(conn: sqlite3.Connection, table: str) -> list[tuple[str, str]]:
    """Return ``(name, declared type)`` for every physical column of *table*."""
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return [(row["name"], row["type"]) for row in rows]


def list_tables(conn: sqlite3.Connection) -> list[str]:
    """Return user table names, excluding SQLite's internal tables."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' "
        "ORDER BY name"
    ).fetchall()
    return [r[0] for r in rows]
