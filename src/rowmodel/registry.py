"""Process-wide registry of model types, their field descriptors and relations."""

from __future__ import annotations

import dataclasses
import enum
import typing
from dataclasses import MISSING
from typing import Any

from rowmodel.db.types import unwrap_optional
from rowmodel.errors import ModelDefinitionError, RelationError
from rowmodel.fields import FieldKind, FieldSpec, options_of
from rowmodel.logging import get_logger

log = get_logger(__name__)

_PRIMITIVES: tuple[type, ...] = (str, bool, int, float)


@dataclasses.dataclass(frozen=True)
class Relation:
    """A has-many edge from *parent* to *child*.

    Attributes:
        parent: Owning model type.
        child: Owned model type.
        field: Name of the has-many field on the parent.
        foreign_key: Name of the child's belongs-to field (and column).
    """

    parent: type
    child: type
    field: str
    foreign_key: str


class Registry:
    """Model types known to rowmodel.

    Field descriptors are built on first use and cached, so relation targets
    may name types that are registered later in the same module.
    """

    def __init__(self) -> None:
        self._tables: dict[type, str] = {}
        self._by_name: dict[str, type] = {}
        self._fields: dict[type, tuple[FieldSpec, ...]] = {}
        self._relations: dict[tuple[type, str], Relation] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, cls: type, table: str | None = None) -> type:
        if not dataclasses.is_dataclass(cls):
            raise ModelDefinitionError(f"{cls.__name__} must be a dataclass to be registered.")
        previous = self._by_name.get(cls.__name__)
        if previous is not None and previous is not cls:
            self._forget(previous)
        self._tables[cls] = table or cls.__name__
        self._by_name[cls.__name__] = cls
        log.debug("model.registered", model=cls.__name__, table=self._tables[cls])
        return cls

    def _forget(self, cls: type) -> None:
        self._tables.pop(cls, None)
        self._fields.pop(cls, None)
        # descriptors of other models may still target the old class
        stale = {c for c, specs in self._fields.items() if any(s.target is cls for s in specs)}
        for c in stale:
            del self._fields[c]
        stale.add(cls)
        for key in [k for k, r in self._relations.items() if stale & {r.parent, r.child}]:
            del self._relations[key]

    def clear(self) -> None:
        self._tables.clear()
        self._by_name.clear()
        self._fields.clear()
        self._relations.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def is_model(self, cls: Any) -> bool:
        return isinstance(cls, type) and cls in self._tables

    def models(self) -> list[type]:
        return list(self._tables)

    def table_for(self, cls: type) -> str:
        try:
            return self._tables[cls]
        except KeyError:
            raise ModelDefinitionError(
                f"{cls.__name__} is not a registered model; decorate it with @model."
            ) from None

    def resolve(self, target: type | str) -> type:
        """Return the registered class for a class or class name."""
        if isinstance(target, str):
            try:
                return self._by_name[target]
            except KeyError:
                raise ModelDefinitionError(f"No registered model named '{target}'.") from None
        self.table_for(target)
        return target

    def fields(self, cls: type) -> tuple[FieldSpec, ...]:
        """Return the persisted-field descriptors of *cls* in declaration order."""
        specs = self._fields.get(cls)
        if specs is None:
            specs = self._build_fields(cls)
            self._fields[cls] = specs
        return specs

    def field(self, cls: type, name: str) -> FieldSpec:
        for spec in self.fields(cls):
            if spec.name == name:
                return spec
        raise KeyError(f"{cls.__name__} has no persisted field '{name}'")

    def column_fields(self, cls: type) -> list[FieldSpec]:
        return [spec for spec in self.fields(cls) if spec.is_column]

    def parent_field(self, child: type, parent: type) -> FieldSpec | None:
        """Return the child's first belongs-to field that can hold a *parent*."""
        for spec in self.fields(child):
            if spec.kind is FieldKind.BELONGS_TO and issubclass(parent, spec.target):
                return spec
        return None

    def relation(self, parent: type, field_name: str) -> Relation:
        """Return the has-many relation declared by *parent*.*field_name*."""
        key = (parent, field_name)
        rel = self._relations.get(key)
        if rel is not None:
            return rel

        spec = self.field(parent, field_name)
        if spec.kind is not FieldKind.HAS_MANY:
            raise RelationError(f"{parent.__name__}.{field_name} is not a has_many field.")
        back = self.parent_field(spec.target, parent)
        if back is None:
            raise RelationError(
                f"{parent.__name__}.{field_name} has many {spec.target.__name__}, but "
                f"{spec.target.__name__} declares no belongs_to({parent.__name__}) field."
            )
        rel = Relation(parent=parent, child=spec.target, field=field_name, foreign_key=back.name)
        self._relations[key] = rel
        return rel

    def instantiate(self, cls: type, **values: Any) -> Any:
        """Create an instance of *cls*; required fields not in *values* get their default."""
        kwargs: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if f.name in values:
                continue
            if f.init and f.default is MISSING and f.default_factory is MISSING:
                spec = next((s for s in self.fields(cls) if s.name == f.name), None)
                kwargs[f.name] = spec.default() if spec is not None else None
        kwargs.update(values)
        return cls(**kwargs)

    # ------------------------------------------------------------------
    # Descriptor construction
    # ------------------------------------------------------------------

    def _build_fields(self, cls: type) -> tuple[FieldSpec, ...]:
        self.table_for(cls)
        try:
            hints = typing.get_type_hints(cls, localns=dict(self._by_name))
        except (NameError, TypeError) as exc:
            raise ModelDefinitionError(
                f"Cannot resolve the annotations of {cls.__name__}: {exc}"
            ) from exc

        specs: list[FieldSpec] = []
        for f in dataclasses.fields(cls):
            opts = options_of(f)
            if opts.transient or f.name.startswith("_"):
                continue
            declared = hints.get(f.name, f.type)
            base = unwrap_optional(declared)
            nullable = base is not declared
            target: type | None = None

            if opts.relation is not None:
                kind = opts.relation
                target = self.resolve(opts.target)
            elif base in _PRIMITIVES:
                kind = FieldKind.PRIMITIVE
            elif isinstance(base, type) and issubclass(base, enum.Enum):
                kind = FieldKind.ENUM
            elif self.is_model(base):
                raise ModelDefinitionError(
                    f"{cls.__name__}.{f.name} references model {base.__name__}; "
                    f"declare it with belongs_to({base.__name__})."
                )
            else:
                kind = FieldKind.GENERIC

            specs.append(
                FieldSpec(
                    name=f.name,
                    kind=kind,
                    type=base,
                    target=target,
                    nullable=nullable,
                    exposed=opts.expose,
                    default_factory=_default_factory(f, kind, base, nullable),
                )
            )
        return tuple(specs)


def _default_factory(f: dataclasses.Field, kind: FieldKind, base: Any, nullable: bool):
    if f.default is not MISSING:
        value = f.default
        return lambda: value
    if f.default_factory is not MISSING:
        return f.default_factory
    if kind is FieldKind.HAS_MANY:
        return list
    if kind is FieldKind.PRIMITIVE and not nullable:
        return base
    return lambda: None


registry = Registry()
