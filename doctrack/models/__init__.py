"""Data models for doctrack."""

from doctrack.models.operations import OperationKind, UpdateOperation
from doctrack.models.config import AppConfig, LoggingConfig, ScanConsistency, StorageConfig
from doctrack.models.field import FieldDescriptor, FieldRegistry, is_resizable_type
from doctrack.models.document import Attribute, Document, EmbeddedDocument

__all__ = [
    "AppConfig",
    "Attribute",
    "Document",
    "EmbeddedDocument",
    "FieldDescriptor",
    "FieldRegistry",
    "LoggingConfig",
    "OperationKind",
    "ScanConsistency",
    "StorageConfig",
    "UpdateOperation",
    "is_resizable_type",
]
