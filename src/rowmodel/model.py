"""Model base class and the @model registration decorator."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, TypeVar

from rowmodel.errors import ModelDefinitionError, UnboundModelError
from rowmodel.fields import FieldKind
from rowmodel.registry import registry

if TYPE_CHECKING:
    from rowmodel.engine import Store

UNSAVED_ID = -1

M = TypeVar("M", bound="Model")


class Model:
    """Base class for persisted models.

    Subclasses are dataclasses registered with @model. The identity is
    assigned by the Store on the first successful insert and never changes
    afterwards. Instances reach the database through the Store they are
    bound to; instances loaded or created by a Store are bound already.
    """

    _id = UNSAVED_ID
    _store = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def is_saved(self) -> bool:
        return self._id != UNSAVED_ID

    @property
    def store(self) -> Store | None:
        return self._store

    def _require_store(self) -> Store:
        if self._store is None:
            raise UnboundModelError(
                f"{type(self).__name__} instance is not bound to a Store; "
                "use Store.bind() or create it through a Manager."
            )
        return self._store

    def save(self: M) -> M:
        """Insert or update this instance, then save its has-many children."""
        self._require_store().save(self)
        return self

    def reload(self: M) -> M:
        """Overwrite every persisted field with the stored row."""
        self._require_store().reload(self)
        return self

    def delete(self) -> None:
        """Delete this instance's row. Children are not deleted."""
        self._require_store().delete(self)

    def to_json(self, **kwargs: Any) -> str:
        """Serialize the exposed fields (and exposed children) to JSON text."""
        from rowmodel.payload import to_json

        return to_json(self, **kwargs)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented
        return self.is_saved and self._id == other._id

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        parts = [f"id={self._id}"]
        for spec in registry.fields(type(self)):
            value = getattr(self, spec.name, None)
            if spec.kind is FieldKind.HAS_MANY:
                parts.append(f"{spec.name}=<{len(value) if value is not None else 0} children>")
            elif spec.kind is FieldKind.BELONGS_TO:
                parts.append(f"{spec.name}={value.id if value is not None else None}")
            else:
                parts.append(f"{spec.name}={value!r}")
        return f"{type(self).__name__}({', '.join(parts)})"


def model(
    cls: type | None = None,
    *,
    table: str | None = None,
) -> Any:
    """Register a Model subclass as a persisted dataclass.

    Usable bare (``@model``) or with arguments (``@model(table="albums")``).
    The table name defaults to the class name.
    """
    def wrap(c: type) -> type:
        if not issubclass(c, Model):
            raise ModelDefinitionError(f"{c.__name__} must subclass rowmodel.Model.")
        c = dataclasses.dataclass(eq=False, repr=False)(c)
        return registry.register(c, table)

    if cls is None:
        return wrap
    return wrap(cls)

