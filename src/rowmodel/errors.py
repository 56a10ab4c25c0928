"""Exception hierarchy for rowmodel.

Every error raised by the library derives from RowModelError. Several also
derive from the matching builtin (ValueError, TypeError, RuntimeError) so
callers can catch them the usual way.
"""

from __future__ import annotations


class RowModelError(Exception):
    """Base class for all rowmodel errors."""


# ---------------------------------------------------------------------------
# Model definition
# ---------------------------------------------------------------------------


class ModelDefinitionError(RowModelError, TypeError):
    """Raised when a model class is declared in a way rowmodel cannot map."""


class RelationError(ModelDefinitionError):
    """Raised when a has_many has no matching belongs_to on the child type."""


# ---------------------------------------------------------------------------
# Instance state
# ---------------------------------------------------------------------------


class UnsavedModelError(RowModelError, RuntimeError):
    """Raised when an operation needs an identity the instance does not have yet."""


class UnboundModelError(RowModelError, RuntimeError):
    """Raised when a model instance is used without being bound to a Store."""


class InvalidIdentityError(RowModelError, ValueError):
    """Raised for identities that can never exist (negative ids)."""


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class SchemaMismatchError(RowModelError):
    """Raised when a table still lacks a table or column after reconciliation."""


class InstanceNotFoundError(RowModelError, LookupError):
    """Raised when no row exists for a valid identity."""

    def __init__(self, table: str, identity: int) -> None:
        super().__init__(f"No entry in database with id {identity} for model {table}")
        self.table = table
        self.identity = identity


# ---------------------------------------------------------------------------
# Field marshaling
# ---------------------------------------------------------------------------


class UnsupportedFieldTypeError(RowModelError, TypeError):
    """Raised when a generic-encoded field cannot be encoded or decoded."""

    def __init__(self, field: str, field_type: object, reason: str = "") -> None:
        type_name = getattr(field_type, "__name__", None) or repr(field_type)
        message = f"Type {type_name} is not supported for field {field}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.field = field
        self.field_type = field_type


class FieldValueError(RowModelError, ValueError):
    """Raised when a stored value cannot be converted to the field's type."""


class FieldAccessError(RowModelError):
    """Raised when a persisted attribute cannot be read or written."""


class PayloadError(RowModelError, ValueError):
    """Raised when structured input data cannot be parsed into a model."""
