"""Storage boundary and the document repository."""

from doctrack.storage.client import InMemoryStorage, StorageClient
from doctrack.storage.repository import DocumentRepository

__all__ = ["DocumentRepository", "InMemoryStorage", "StorageClient"]
