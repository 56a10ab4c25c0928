"""rowmodel: dataclass models persisted to SQLite.

Tables follow the models: a missing table is created and missing columns are
added the first time a statement needs them. Models linked with has_many /
belongs_to are saved and loaded as trees.
"""

from rowmodel.engine import Store
from rowmodel.errors import (
    FieldAccessError,
    FieldValueError,
    InstanceNotFoundError,
    InvalidIdentityError,
    ModelDefinitionError,
    PayloadError,
    RelationError,
    RowModelError,
    SchemaMismatchError,
    UnboundModelError,
    UnsavedModelError,
    UnsupportedFieldTypeError,
)
from rowmodel.fields import belongs_to, column, has_many, transient
from rowmodel.manager import Manager
from rowmodel.model import UNSAVED_ID, Model, model
from rowmodel.registry import registry

__all__ = [
    "Store",
    "Manager",
    "Model",
    "model",
    "registry",
    "UNSAVED_ID",
    "column",
    "has_many",
    "belongs_to",
    "transient",
    "RowModelError",
    "ModelDefinitionError",
    "RelationError",
    "UnsavedModelError",
    "UnboundModelError",
    "InvalidIdentityError",
    "SchemaMismatchError",
    "InstanceNotFoundError",
    "UnsupportedFieldTypeError",
    "FieldValueError",
    "FieldAccessError",
    "PayloadError",
]
