"""rowmodel database layer."""

from rowmodel.db.connection import Database, is_schema_mismatch
from rowmodel.db.schema import ID_COLUMN, ensure_table, list_tables, table_columns
from rowmodel.db.types import StorageType, column_type, column_type_for

__all__ = [
    "Database",
    "is_schema_mismatch",
    "ID_COLUMN",
    "ensure_table",
    "list_tables",
    "table_columns",
    "StorageType",
    "column_type",
    "column_type_for",
]
