"""Field declarations and the persisted-field descriptors built from them.

Model attributes are ordinary dataclass fields. The helpers below attach
rowmodel metadata to a field so the registry can classify it:

    @model
    class Album(Model):
        title: str = column("", expose=True)
        tracks: list[Track] = has_many("Track", expose=True)

    @model
    class Track(Model):
        name: str = ""
        album: Album | None = belongs_to(Album)

Fields declared without a helper are persisted with their plain default.
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import MISSING
from typing import Any, Callable

METADATA_KEY = "rowmodel"


class FieldKind(enum.Enum):
    PRIMITIVE = "primitive"
    ENUM = "enum"
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    GENERIC = "generic"


@dataclasses.dataclass(frozen=True)
class FieldOptions:
    """rowmodel metadata stored on a dataclass field."""

    relation: FieldKind | None = None
    target: type | str | None = None
    expose: bool = False
    transient: bool = False


@dataclasses.dataclass(frozen=True)
class FieldSpec:
    """Persisted-field descriptor, built once per model type by the registry.

    Attributes:
        name: Attribute name, also the column name.
        kind: Variant tag the codec dispatches on.
        type: Declared type with any ``| None`` removed.
        target: Related model class (relation kinds only).
        nullable: Declared as ``X | None``.
        exposed: Included in structured-data output.
        default_factory: Produces the value used when a column is NULL or a
            payload omits the field.
    """

    name: str
    kind: FieldKind
    type: Any
    target: type | None = None
    nullable: bool = False
    exposed: bool = False
    default_factory: Callable[[], Any] = lambda: None

    @property
    def is_column(self) -> bool:
        """True unless the field lives in another table (has-many)."""
        return self.kind is not FieldKind.HAS_MANY

    def default(self) -> Any:
        return self.default_factory()


def options_of(f: dataclasses.Field) -> FieldOptions:
    return f.metadata.get(METADATA_KEY) or FieldOptions()


def _field(options: FieldOptions, **kwargs: Any) -> Any:
    return dataclasses.field(metadata={METADATA_KEY: options}, **kwargs)


def column(
    default: Any = MISSING,
    *,
    default_factory: Any = MISSING,
    expose: bool = False,
) -> Any:
    """Declare a persisted field, optionally exposed in structured-data output."""
    return _field(
        FieldOptions(expose=expose), default=default, default_factory=default_factory
    )


def has_many(target: type | str, *, expose: bool = False) -> Any:
    """Declare an ordered collection of owned child models.

    The child type must declare a ``belongs_to`` pointing back at this type;
    that field is the foreign-key column children are stored and found by.
    """
    return _field(
        FieldOptions(relation=FieldKind.HAS_MANY, target=target, expose=expose),
        default_factory=list,
        compare=False,
        repr=False,
    )


def belongs_to(target: type | str) -> Any:
    """Declare a nullable reference to the owning parent model."""
    return _field(
        FieldOptions(relation=FieldKind.BELONGS_TO, target=target),
        default=None,
        compare=False,
        repr=False,
    )


def transient(default: Any = MISSING, *, default_factory: Any = MISSING) -> Any:
    """Declare an in-memory attribute that is never persisted."""
    return _field(
        FieldOptions(transient=True),
        default=default,
        default_factory=default_factory,
        compare=False,
    )
