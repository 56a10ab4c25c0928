"""Saving and loading has-many children.

Children store their parent's identity in the column of their belongs-to
field, so a parent is always written before its children. Loading walks the
same edges the other way: children are selected by that column and ordered
by identity, which is the order they were first saved in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from rowmodel.codec import get_value, set_value
from rowmodel.errors import FieldValueError
from rowmodel.fields import FieldKind, FieldSpec
from rowmodel.logging import get_logger
from rowmodel.model import Model

if TYPE_CHECKING:
    from rowmodel.engine import Store

log = get_logger(__name__)


def set_parent_reference(store: Store, child: Model, parent: Model) -> None:
    """Point the child's belongs-to field for ``type(parent)`` at *parent*."""
    spec = store.registry.parent_field(type(child), type(parent))
    if spec is not None:
        set_value(child, spec, parent)


def save_children(store: Store, parent: Model) -> None:
    """Save every child of every has-many field of *parent*, in order.

    Must only be called once *parent* has an identity. Each child is bound to
    the parent's store, given its back-reference and saved, which recurses
    into its own children. A failing child propagates; rows already written
    stay written.
    """
    cls = type(parent)
    for spec in store.registry.fields(cls):
        if spec.kind is not FieldKind.HAS_MANY:
            continue
        children = get_value(parent, spec)
        if not _is_collection(children):
            log.debug("graph.skip_field", model=cls.__name__, field=spec.name)
            continue

        relation = store.registry.relation(cls, spec.name)
        for child in children:
            if not isinstance(child, relation.child):
                raise FieldValueError(
                    f"{cls.__name__}.{spec.name} holds {type(child).__name__}, "
                    f"expected {relation.child.__name__}"
                )
            store.bind(child)
            set_parent_reference(store, child, parent)
            store.save(child)


def load_children(store: Store, parent: Model, spec: FieldSpec) -> None:
    """Replace *parent*.*spec* with the children stored under its identity."""
    relation = store.registry.relation(type(parent), spec.name)
    rows = store.select_rows(relation.child, f"{relation.foreign_key} = ?", (parent.id,))

    children = []
    for row in rows:
        child = store.materialize(relation.child, row)
        set_parent_reference(store, child, parent)
        children.append(child)
    set_value(parent, spec, children)
    log.debug(
        "graph.loaded_children",
        model=type(parent).__name__,
        field=spec.name,
        count=len(children),
    )


def _is_collection(value: object) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))
