"""Storage client interface and an in-memory implementation."""

import copy
from abc import ABC, abstractmethod
from typing import Any

import structlog

from doctrack.errors import DocumentNotFound, PersistenceError
from doctrack.models.config import ScanConsistency
from doctrack.models.operations import OperationKind, UpdateOperation

log = structlog.stdlib.get_logger()


class StorageClient(ABC):
    """Abstract interface for document storage.

    This interface defines the contract the repository relies on: full reads
    and inserts, partial updates from atomic operations, and removal.
    """

    @abstractmethod
    def get(self, doc_id: str, consistency: ScanConsistency = ScanConsistency.REQUEST_PLUS) -> dict[str, Any]:
        """Read a full document.

        Args:
            doc_id: Document id
            consistency: Read consistency requested by the caller

        Returns:
            Persisted mapping keyed by storage key

        Raises:
            DocumentNotFound: If the id does not exist
        """
        pass

    @abstractmethod
    def insert(self, doc_id: str, data: dict[str, Any]) -> None:
        """Store a new document.

        Raises:
            PersistenceError: If the id already exists or the write fails
        """
        pass

    @abstractmethod
    def mutate(
        self,
        doc_id: str,
        operations: dict[str, UpdateOperation],
        consistency: ScanConsistency = ScanConsistency.REQUEST_PLUS,
    ) -> None:
        """Apply atomic update operations to an existing document.

        Raises:
            DocumentNotFound: If the id does not exist
            PersistenceError: If an operation cannot be applied
        """
        pass

    @abstractmethod
    def remove(self, doc_id: str) -> None:
        """Delete a document.

        Raises:
            DocumentNotFound: If the id does not exist
        """
        pass

    @abstractmethod
    def exists(self, doc_id: str) -> bool:
        """Check whether a document id exists."""
        pass


class InMemoryStorage(StorageClient):
    """Dict-backed storage applying update operations in process."""

    def __init__(self, bucket: str = "default"):
        self.bucket = bucket
        self._documents: dict[str, dict[str, Any]] = {}
        log.info("in_memory_storage_initialized", bucket=bucket)

    def get(self, doc_id: str, consistency: ScanConsistency = ScanConsistency.REQUEST_PLUS) -> dict[str, Any]:
        if doc_id not in self._documents:
            raise DocumentNotFound(doc_id)
        return copy.deepcopy(self._documents[doc_id])

    def insert(self, doc_id: str, data: dict[str, Any]) -> None:
        if doc_id in self._documents:
            raise PersistenceError(f"Document already exists: {doc_id}")
        self._documents[doc_id] = copy.deepcopy(data)

    def mutate(
        self,
        doc_id: str,
        operations: dict[str, UpdateOperation],
        consistency: ScanConsistency = ScanConsistency.REQUEST_PLUS,
    ) -> None:
        if doc_id not in self._documents:
            raise DocumentNotFound(doc_id)

        # Apply to a copy so a failing operation leaves the stored document intact
        updated = copy.deepcopy(self._documents[doc_id])
        for key, operation in operations.items():
            self._apply(updated, key, operation)
        self._documents[doc_id] = updated

    def remove(self, doc_id: str) -> None:
        if doc_id not in self._documents:
            raise DocumentNotFound(doc_id)
        del self._documents[doc_id]

    def exists(self, doc_id: str) -> bool:
        return doc_id in self._documents

    def _apply(self, document: dict[str, Any], key: str, operation: UpdateOperation) -> None:
        if operation.kind is OperationKind.SET:
            document[key] = copy.deepcopy(operation.value)
        elif operation.kind is OperationKind.UNSET:
            document.pop(key, None)
        else:
            current = document.get(key)
            if current is None:
                current = []
            if not isinstance(current, list):
                raise PersistenceError(
                    f"Cannot apply {operation.kind.value} to non-list key {key!r}"
                )
            values = list(operation.value or [])
            if operation.kind is OperationKind.PUSH:
                document[key] = current + values
            elif operation.kind is OperationKind.ADD_TO_SET:
                merged = list(current)
                for value in values:
                    if value not in merged:
                        merged.append(value)
                document[key] = merged
            elif operation.kind is OperationKind.PULL:
                document[key] = [value for value in current if value not in values]

    def __len__(self) -> int:
        return len(self._documents)
