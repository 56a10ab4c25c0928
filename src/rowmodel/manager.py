"""Per-type access to stored instances."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from rowmodel.errors import RelationError
from rowmodel.fields import FieldKind
from rowmodel.model import Model
from rowmodel.payload import from_json, from_payload

if TYPE_CHECKING:
    from rowmodel.engine import Store

M = TypeVar("M", bound=Model)


class Manager(Generic[M]):
    """Creates and finds instances of one model type in one Store.

    Every instance a Manager returns is bound to its Store. Lookups are by
    identity or by a belongs-to foreign key; results are ordered by identity.
    """

    def __init__(self, store: Store, cls: type[M]) -> None:
        self.store = store
        self.model = cls
        self.table_name = store.registry.table_for(cls)

    def __repr__(self) -> str:
        return f"Manager({self.model.__name__}, {self.store!r})"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create(self, **values: Any) -> M:
        """Return a new, unsaved, bound instance."""
        return self.store.bind(self.store.registry.instantiate(self.model, **values))

    def create_from_payload(self, data: Any) -> M:
        """Return a new, unsaved instance (and children) built from a mapping."""
        return self.store.bind(from_payload(self.model, data, models=self.store.registry))

    def create_from_json(self, text: str) -> M:
        """Return a new, unsaved instance (and children) built from JSON text."""
        return self.store.bind(from_json(self.model, text, models=self.store.registry))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, identity: int) -> M:
        """Return the instance with *identity*; raises InstanceNotFoundError."""
        return self.store.load(self.model, identity)

    def all(self) -> list[M]:
        return [self.store.materialize(self.model, row) for row in self.store.select_rows(self.model)]

    def first(self) -> M | None:
        rows = self.store.select_rows(self.model, limit=1)
        return self.store.materialize(self.model, rows[0]) if rows else None

    def last(self) -> M | None:
        rows = self.store.select_rows(self.model, descending=True, limit=1)
        return self.store.materialize(self.model, rows[0]) if rows else None

    def count(self) -> int:
        return self.store.count(self.model)

    def find_all_by_parent(self, foreign_key: str, parent_id: int) -> list[M]:
        """Return the instances whose belongs-to *foreign_key* holds *parent_id*."""
        spec = next(
            (s for s in self.store.registry.fields(self.model) if s.name == foreign_key), None
        )
        if spec is None or spec.kind is not FieldKind.BELONGS_TO:
            raise RelationError(f"{self.model.__name__}.{foreign_key} is not a belongs_to field.")
        rows = self.store.select_rows(self.model, f"{foreign_key} = ?", (parent_id,))
        return [self.store.materialize(self.model, row) for row in rows]

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_all(self) -> int:
        """Delete every stored instance of this type. Returns the row count."""
        return self.store.delete_all(self.model)
