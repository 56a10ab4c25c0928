"""Mapping from Python field types to SQLite column storage types."""

from __future__ import annotations

import enum
import types
import typing
from typing import Any

from rowmodel.fields import FieldKind, FieldSpec


class StorageType(str, enum.Enum):
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    INTEGER = "INTEGER"
    REAL = "REAL"

    def __str__(self) -> str:
        return self.value


def unwrap_optional(field_type: Any) -> Any:
    """Return ``X`` for ``X | None`` / ``Optional[X]``; other types unchanged."""
    origin = typing.get_origin(field_type)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(field_type) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return field_type


def column_type(field_type: Any, is_relation_reference: bool = False) -> StorageType:
    """Return the column storage type for a field of *field_type*.

    Total over every input: types with no direct mapping are stored as
    generic-encoded TEXT.
    """
    if is_relation_reference:
        return StorageType.INTEGER

    t = unwrap_optional(field_type)
    if t is str:
        return StorageType.TEXT
    # bool before int: bool is an int subclass
    if t is bool:
        return StorageType.BOOLEAN
    if t is int:
        return StorageType.INTEGER
    if t is float:
        return StorageType.REAL
    if isinstance(t, type) and issubclass(t, enum.Enum):
        return StorageType.TEXT
    return StorageType.TEXT


def column_type_for(spec: FieldSpec) -> StorageType:
    """Return the column storage type for a persisted field descriptor."""
    return column_type(spec.type, spec.kind is FieldKind.BELONGS_TO)
