"""Building models from structured data and serializing them back.

Input is loosely typed: keys that are not persisted fields are ignored,
absent fields keep their defaults, and nested has-many sections become child
instances. Output includes only fields declared with ``expose=True``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, TypeVar

import yaml

from rowmodel.codec import coerce, get_value, set_value, to_plain
from rowmodel.errors import PayloadError, RowModelError
from rowmodel.fields import FieldKind
from rowmodel.model import Model
from rowmodel.registry import Registry, registry

M = TypeVar("M", bound=Model)


def parse(text: str) -> Any:
    """Parse JSON text, accepting the relaxed form (unquoted keys) as YAML flow.

    Raises:
        PayloadError: If the text is neither valid JSON nor valid YAML.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as strict_exc:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError:
            raise PayloadError(f"Malformed structured data: {strict_exc}") from strict_exc


def from_payload(cls: type[M], data: Any, *, models: Registry | None = None) -> M:
    """Build an unsaved *cls* instance from a mapping of field names to values."""
    reg = models if models is not None else registry
    if not isinstance(data, Mapping):
        raise PayloadError(
            f"{cls.__name__} must be built from an object, got {type(data).__name__}"
        )

    instance = reg.instantiate(cls)
    for spec in reg.fields(cls):
        if spec.name not in data or spec.kind is FieldKind.BELONGS_TO:
            continue
        raw = data[spec.name]
        if spec.kind is FieldKind.HAS_MANY:
            if raw is None:
                raw = []
            if not isinstance(raw, list):
                raise PayloadError(f"{cls.__name__}.{spec.name} must be an array of objects")
            value: Any = [from_payload(spec.target, item, models=reg) for item in raw]
        else:
            try:
                value = coerce(spec, raw)
            except RowModelError as exc:
                raise PayloadError(f"{cls.__name__}.{spec.name}: {exc}") from exc
        set_value(instance, spec, value)
    return instance


def from_json(cls: type[M], text: str, *, models: Registry | None = None) -> M:
    """Build an unsaved *cls* instance (and its children) from JSON text."""
    return from_payload(cls, parse(text), models=models)


def to_payload(instance: Model, *, models: Registry | None = None) -> dict[str, Any]:
    """Return the exposed fields of *instance* as JSON-compatible data."""
    reg = models if models is not None else registry
    out: dict[str, Any] = {}
    for spec in reg.fields(type(instance)):
        if not spec.exposed:
            continue
        value = get_value(instance, spec)
        if spec.kind is FieldKind.HAS_MANY:
            out[spec.name] = [to_payload(child, models=reg) for child in value or []]
        else:
            out[spec.name] = to_plain(spec, value)
    return out


def to_json(instance: Model, *, models: Registry | None = None, **kwargs: Any) -> str:
    """Serialize the exposed fields of *instance*; kwargs go to json.dumps."""
    return json.dumps(to_payload(instance, models=models), **kwargs)
