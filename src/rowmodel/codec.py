"""Conversion between model attributes and row values.

Every persisted field is handled by the branch for its FieldKind:

    PRIMITIVE   str / bool / int / float, stored as-is
    ENUM        stored as the member's name
    BELONGS_TO  stored as the referenced instance's identity
    HAS_MANY    not stored in the row (see rowmodel.graph)
    GENERIC     anything else, stored as JSON text

Belongs-to references are not rebuilt when a row is decoded; they are only
set while a parent saves or loads its children.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import typing
from collections.abc import Iterable, Mapping
from typing import Any

from rowmodel.db.types import unwrap_optional
from rowmodel.errors import (
    FieldAccessError,
    FieldValueError,
    UnsavedModelError,
    UnsupportedFieldTypeError,
)
from rowmodel.fields import FieldKind, FieldSpec
from rowmodel.model import UNSAVED_ID

# ---------------------------------------------------------------------------
# Attribute access
# ---------------------------------------------------------------------------


def get_value(instance: Any, spec: FieldSpec) -> Any:
    try:
        return getattr(instance, spec.name)
    except AttributeError as exc:
        raise FieldAccessError(
            f"Field {spec.name} is not accessible on {type(instance).__name__}"
        ) from exc


def set_value(instance: Any, spec: FieldSpec, value: Any) -> None:
    try:
        setattr(instance, spec.name, value)
    except (AttributeError, TypeError) as exc:
        raise FieldAccessError(
            f"Field {spec.name} cannot be set on {type(instance).__name__}"
        ) from exc


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def encode_field(instance: Any, spec: FieldSpec) -> Any:
    """Return the column value for *spec* on *instance*."""
    if spec.kind is FieldKind.HAS_MANY:
        raise ValueError(f"{spec.name} is a has_many field and has no column")

    value = get_value(instance, spec)

    if spec.kind is FieldKind.PRIMITIVE:
        if value is not None and not _is_primitive_of(value, spec.type):
            raise FieldValueError(
                f"Field {spec.name} expects {spec.type.__name__}, got {value!r}"
            )
        return value

    if spec.kind is FieldKind.ENUM:
        if value is None:
            return None
        if not isinstance(value, enum.Enum):
            raise FieldValueError(
                f"Field {spec.name} expects {spec.type.__name__}, got {value!r}"
            )
        return value.name

    if spec.kind is FieldKind.BELONGS_TO:
        if value is None:
            return None
        identity = getattr(value, "id", UNSAVED_ID)
        if identity == UNSAVED_ID:
            raise UnsavedModelError(
                f"{type(instance).__name__}.{spec.name} references an unsaved "
                f"{type(value).__name__}; save the parent first."
            )
        return identity

    return encode_generic(spec, value)


def _is_primitive_of(value: Any, tp: type) -> bool:
    # bool is an int subclass but has its own column type
    if isinstance(value, bool):
        return tp is bool
    if tp is float:
        return isinstance(value, (int, float))
    return isinstance(value, tp)


def encode_row(instance: Any, fields: Iterable[FieldSpec]) -> dict[str, Any]:
    """Build the row representation (column → value) for *instance*."""
    return {spec.name: encode_field(instance, spec) for spec in fields if spec.is_column}


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, enum.Enum):
        return value.name
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_generic(spec: FieldSpec, value: Any) -> str:
    """Encode *value* as JSON text."""
    try:
        return json.dumps(value, default=_jsonable)
    except (TypeError, ValueError) as exc:
        raise UnsupportedFieldTypeError(spec.name, spec.type, str(exc)) from exc


def to_plain(spec: FieldSpec, value: Any) -> Any:
    """Return *value* as JSON-compatible data (lists, dicts and scalars)."""
    if spec.kind is FieldKind.ENUM:
        return value.name if isinstance(value, enum.Enum) else value
    if spec.kind is FieldKind.GENERIC:
        return json.loads(encode_generic(spec, value))
    return value


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def decode_field(instance: Any, spec: FieldSpec, row: Mapping[str, Any]) -> None:
    """Set *spec* on *instance* from *row*.

    Has-many and belongs-to fields are left untouched. A missing or NULL column
    reads as the field's default (None for ``X | None`` fields); an empty enum
    name leaves the current value in place.
    """
    if spec.kind in (FieldKind.HAS_MANY, FieldKind.BELONGS_TO):
        return

    raw = row.get(spec.name)

    if spec.kind is FieldKind.ENUM:
        if raw is None or raw == "":
            return
        set_value(instance, spec, enum_member(spec, raw))
        return

    if raw is None:
        set_value(instance, spec, None if spec.nullable else spec.default())
        return

    if spec.kind is FieldKind.PRIMITIVE:
        set_value(instance, spec, _primitive(spec, raw))
    else:
        set_value(instance, spec, decode_generic(spec, raw))


def decode_row(instance: Any, fields: Iterable[FieldSpec], row: Mapping[str, Any]) -> None:
    for spec in fields:
        decode_field(instance, spec, row)


def _primitive(spec: FieldSpec, raw: Any) -> Any:
    try:
        if spec.type is bool:
            return bool(raw)
        return spec.type(raw)
    except (TypeError, ValueError) as exc:
        raise FieldValueError(
            f"Field {spec.name} expects {spec.type.__name__}, got {raw!r}"
        ) from exc


def enum_member(spec: FieldSpec, name: Any) -> enum.Enum:
    if isinstance(name, spec.type):
        return name
    try:
        return spec.type[name]
    except KeyError:
        raise FieldValueError(
            f"'{name}' is not a member of {spec.type.__name__} (field {spec.name})"
        ) from None


def decode_generic(spec: FieldSpec, text: str) -> Any:
    """Decode JSON *text* into the declared type of *spec*."""
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise UnsupportedFieldTypeError(spec.name, spec.type, str(exc)) from exc
    return from_plain(spec, data)


def from_plain(spec: FieldSpec, data: Any) -> Any:
    """Rebuild the declared type of *spec* from JSON-compatible data."""
    try:
        return _rebuild(spec.type, data)
    except (TypeError, ValueError, KeyError, NameError) as exc:
        raise UnsupportedFieldTypeError(spec.name, spec.type, str(exc)) from exc


def _rebuild(tp: Any, data: Any) -> Any:
    if data is None:
        return None
    tp = unwrap_optional(tp)
    if tp is Any:
        return data

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        if not isinstance(data, dict):
            raise TypeError(f"expected an object for {tp.__name__}, got {type(data).__name__}")
        hints = typing.get_type_hints(tp)
        return tp(**{k: _rebuild(hints.get(k, Any), v) for k, v in data.items()})

    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return tp[data]

    origin = typing.get_origin(tp) or tp
    args = typing.get_args(tp)

    if origin in (list, set, frozenset, tuple):
        if not isinstance(data, list):
            raise TypeError(f"expected an array, got {type(data).__name__}")
        if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
            return tuple(_rebuild(t, v) for t, v in zip(args, data))
        item = args[0] if args else Any
        return origin(_rebuild(item, v) for v in data)

    if origin is dict:
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        key_t, val_t = args if len(args) == 2 else (Any, Any)
        convert_key = key_t if key_t in (int, float) else (lambda k: k)
        return {convert_key(k): _rebuild(val_t, v) for k, v in data.items()}

    if tp is float and isinstance(data, int) and not isinstance(data, bool):
        return float(data)
    if tp in (str, int, float, bool) and not isinstance(data, tp):
        raise TypeError(f"expected {tp.__name__}, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Loose input (structured payloads)
# ---------------------------------------------------------------------------


def coerce(spec: FieldSpec, value: Any) -> Any:
    """Convert a loosely-typed payload value to the type of *spec*."""
    if value is None:
        return None if spec.nullable or spec.kind is not FieldKind.PRIMITIVE else spec.default()
    if spec.kind is FieldKind.PRIMITIVE:
        if spec.type is bool and not isinstance(value, bool):
            raise FieldValueError(f"Field {spec.name} expects bool, got {value!r}")
        return _primitive(spec, value)
    if spec.kind is FieldKind.ENUM:
        return enum_member(spec, value) if value != "" else spec.default()
    return from_plain(spec, value)
