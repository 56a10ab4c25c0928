"""Store: save, load and delete model instances.

A Store owns the location of one SQLite database. Every operation opens its
own connection, commits its work and closes the connection before
returning; nothing spans more than one table write.

Writes and reads are attempted against the schema as it is. When SQLite
reports a missing table or column, the table is reconciled with the model
and the statement is retried exactly once.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from rowmodel.codec import decode_row, encode_row
from rowmodel.config import RowModelConfig
from rowmodel.db.connection import Database, is_schema_mismatch
from rowmodel.db.schema import ID_COLUMN, ensure_table
from rowmodel.errors import (
    InstanceNotFoundError,
    InvalidIdentityError,
    SchemaMismatchError,
    UnsavedModelError,
)
from rowmodel.fields import FieldKind
from rowmodel.graph import load_children, save_children
from rowmodel.logging import get_logger
from rowmodel.model import UNSAVED_ID, Model
from rowmodel.registry import Registry, registry

if TYPE_CHECKING:
    from rowmodel.manager import Manager

log = get_logger(__name__)

M = TypeVar("M", bound=Model)
T = TypeVar("T")


class Store:
    """Persistence engine for registered models."""

    def __init__(self, database: Database | Path | str, *, models: Registry | None = None) -> None:
        """Bind the store to a database.

        Args:
            database: A Database, or a path to the SQLite file.
            models: Registry to resolve model types with (the global one by default).
        """
        self.database = database if isinstance(database, Database) else Database(database)
        self.registry = models if models is not None else registry

    @classmethod
    def from_config(cls, cfg: RowModelConfig) -> Store:
        return cls(
            Database(
                cfg.database.path,
                journal_mode=cfg.database.journal_mode,
                timeout=cfg.database.timeout,
            )
        )

    def __repr__(self) -> str:
        return f"Store({self.database!r})"

    def bind(self, instance: M) -> M:
        """Attach *instance* to this store."""
        instance._store = self
        return instance

    def manager(self, cls: type[M]) -> Manager[M]:
        from rowmodel.manager import Manager

        return Manager(self, cls)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def ensure_schema(self, cls: type[Model]) -> list[str]:
        """Create or extend the table of *cls*. Returns the added columns."""
        with self.database.connection() as conn:
            return ensure_table(conn, self.registry.table_for(cls), self.registry.fields(cls))

    def sync(self, classes: Iterable[type[Model]] | None = None) -> dict[str, list[str]]:
        """Reconcile the tables of *classes* (every registered model by default)."""
        targets = list(classes) if classes is not None else self.registry.models()
        return {self.registry.table_for(cls): self.ensure_schema(cls) for cls in targets}

    def _reconciled(self, conn: sqlite3.Connection, cls: type[Model], op: Callable[[], T]) -> T:
        """Run *op*; on a schema mismatch reconcile the table and retry once."""
        table = self.registry.table_for(cls)
        try:
            return op()
        except sqlite3.OperationalError as exc:
            if not is_schema_mismatch(exc):
                raise
            log.info("schema.mismatch", table=table, error=str(exc))
            conn.rollback()
            ensure_table(conn, table, self.registry.fields(cls))

        try:
            return op()
        except sqlite3.OperationalError as exc:
            if is_schema_mismatch(exc):
                raise SchemaMismatchError(
                    f"Table {table} still does not match {cls.__name__} after reconciliation: {exc}"
                ) from exc
            raise

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def save(self, instance: M) -> M:
        """Insert or update *instance*, then save its has-many children.

        The instance's own row is committed before any child is written, so a
        failing child leaves the parent saved.
        """
        cls = type(instance)
        table = self.registry.table_for(cls)
        row = encode_row(instance, self.registry.fields(cls))

        with self.database.connection() as conn:
            identity = self._reconciled(
                conn, cls, lambda: _insert_or_update(conn, table, row, instance.id)
            )

        instance._id = identity
        self.bind(instance)
        log.debug("model.saved", table=table, id=identity)

        save_children(self, instance)
        return instance

    def load(self, cls: type[M], identity: int) -> M:
        """Return the stored instance of *cls* with *identity*."""
        if identity < 0:
            raise InvalidIdentityError(f"{cls.__name__} id can not be negative: {identity}")
        instance = self.registry.instantiate(cls)
        instance._id = identity
        return self.reload(instance)

    def reload(self, instance: M) -> M:
        """Overwrite every persisted field of *instance* with its stored row."""
        if not instance.is_saved:
            raise UnsavedModelError("This instance has not yet been saved.")
        cls = type(instance)
        rows = self.select_rows(cls, f"{ID_COLUMN} = ?", (instance.id,))
        if not rows:
            raise InstanceNotFoundError(self.registry.table_for(cls), instance.id)
        self.bind(instance)
        self._populate(instance, rows[0])
        log.debug("model.loaded", table=self.registry.table_for(cls), id=instance.id)
        return instance

    def delete(self, instance: Model) -> None:
        """Delete the row of *instance*. Children rows are left in place."""
        if not instance.is_saved:
            raise UnsavedModelError("No record in database to delete")
        cls = type(instance)
        table = self.registry.table_for(cls)

        def _delete() -> int:
            cur = conn.execute(f"DELETE FROM {table} WHERE {ID_COLUMN} = ?", (instance.id,))
            conn.commit()
            return cur.rowcount

        with self.database.connection() as conn:
            deleted = self._reconciled(conn, cls, _delete)
        log.debug("model.deleted", table=table, id=instance.id, rows=deleted)

    # ------------------------------------------------------------------
    # Queries shared with graph traversal and Manager
    # ------------------------------------------------------------------

    def select_rows(
        self,
        cls: type[Model],
        where: str = "",
        params: Sequence[Any] = (),
        *,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows of *cls*'s table as dicts, ordered by identity."""
        table = self.registry.table_for(cls)
        columns = [ID_COLUMN] + [spec.name for spec in self.registry.column_fields(cls)]
        sql = f"SELECT {', '.join(columns)} FROM {table}"
        if where:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {ID_COLUMN}{' DESC' if descending else ''}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"

        with self.database.connection() as conn:
            rows = self._reconciled(conn, cls, lambda: conn.execute(sql, tuple(params)).fetchall())
        return [dict(r) for r in rows]

    def materialize(self, cls: type[M], row: dict[str, Any]) -> M:
        """Build a bound instance of *cls* from a row, children included."""
        instance = self.registry.instantiate(cls)
        instance._id = row[ID_COLUMN]
        self.bind(instance)
        self._populate(instance, row)
        return instance

    def count(self, cls: type[Model]) -> int:
        table = self.registry.table_for(cls)
        with self.database.connection() as conn:
            return self._reconciled(
                conn, cls, lambda: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            )

    def delete_all(self, cls: type[Model]) -> int:
        """Delete every row of *cls*'s table. Returns the number deleted."""
        table = self.registry.table_for(cls)

        def _delete() -> int:
            cur = conn.execute(f"DELETE FROM {table}")
            conn.commit()
            return cur.rowcount

        with self.database.connection() as conn:
            deleted = self._reconciled(conn, cls, _delete)
        log.debug("model.deleted_all", table=table, rows=deleted)
        return deleted

    def _populate(self, instance: Model, row: dict[str, Any]) -> None:
        specs = self.registry.fields(type(instance))
        decode_row(instance, specs, row)
        for spec in specs:
            if spec.kind is FieldKind.HAS_MANY:
                load_children(self, instance, spec)


# ------------------------------------------------------------------
# Row writes
# ------------------------------------------------------------------


def _insert_or_update(
    conn: sqlite3.Connection, table: str, row: dict[str, Any], identity: int
) -> int:
    if identity == UNSAVED_ID:
        if row:
            columns = ", ".join(row)
            placeholders = ", ".join("?" * len(row))
            cur = conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(row.values())
            )
        else:
            cur = conn.execute(f"INSERT INTO {table} DEFAULT VALUES")
        conn.commit()
        return cur.lastrowid

    if row:
        assignments = ", ".join(f"{column} = ?" for column in row)
        cur = conn.execute(
            f"UPDATE {table} SET {assignments} WHERE {ID_COLUMN} = ?",
            (*row.values(), identity),
        )
        found = cur.rowcount > 0
    else:
        found = (
            conn.execute(f"SELECT 1 FROM {table} WHERE {ID_COLUMN} = ?", (identity,)).fetchone()
            is not None
        )
    if not found:
        conn.rollback()
        raise InstanceNotFoundError(table, identity)
    conn.commit()
    return identity
