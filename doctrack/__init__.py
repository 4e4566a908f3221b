"""Attribute change tracking for document-mapped records."""

from doctrack.errors import (
    ConfigurationError,
    DocTrackError,
    DocumentNotFound,
    PersistenceError,
    TypeMismatchError,
)
from doctrack.models import (
    AppConfig,
    Attribute,
    Document,
    EmbeddedDocument,
    FieldDescriptor,
    FieldRegistry,
    OperationKind,
    UpdateOperation,
)
from doctrack.tracking import UNSPECIFIED, ChangeSet, Unspecified, build_update_ops

__all__ = [
    "AppConfig",
    "Attribute",
    "ChangeSet",
    "ConfigurationError",
    "DocTrackError",
    "Document",
    "DocumentNotFound",
    "EmbeddedDocument",
    "FieldDescriptor",
    "FieldRegistry",
    "OperationKind",
    "PersistenceError",
    "TypeMismatchError",
    "UNSPECIFIED",
    "Unspecified",
    "UpdateOperation",
    "build_update_ops",
]
