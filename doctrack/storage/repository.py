"""Document repository: drives storage writes and the change-set commit hook."""

import uuid
from typing import Iterable, Optional, TypeVar, Union

import structlog

from doctrack.errors import DocumentNotFound, PersistenceError, TypeMismatchError
from doctrack.models.config import StorageConfig
from doctrack.models.document import Document
from doctrack.storage.client import StorageClient
from doctrack.storage.timestamps import set_created_at, set_updated_at, unstamp

log = structlog.stdlib.get_logger()

D = TypeVar("D", bound=Document)


class DocumentRepository:
    """Persists documents through a storage client.

    A document's change set is committed exactly once per successful write,
    after the storage call returns. A failed write propagates and leaves
    the change set untouched, so the operation can be retried.
    """

    def __init__(self, storage: StorageClient, config: Optional[StorageConfig] = None):
        """
        Initialize the repository.

        Args:
            storage: Storage client executing reads and writes
            config: Storage configuration (consistency is passed to every call)
        """
        self._storage = storage
        self._config = config or StorageConfig()
        log.info(
            "document_repository_initialized",
            bucket=self._config.bucket,
            scan_consistency=self._config.scan_consistency.value,
        )

    @property
    def config(self) -> StorageConfig:
        return self._config

    def save(self, document: Document) -> bool:
        """Create a new document or update a persisted one.

        An unchanged persisted document is not written.

        Returns:
            True once the document is stored
        """
        if document.is_new_record:
            self.create(document)
            return True
        return self.update(document)

    def create(self, document: Document) -> Document:
        """Insert a new document and commit its changes.

        Raises:
            PersistenceError: If the insert fails
        """
        stamped = set_created_at(document)
        doc_id = document.id or self._generate_id(document)
        data = document.to_storage()

        try:
            self._storage.insert(doc_id, data)
        except Exception as e:
            log.error(
                "document_create_failed",
                document_type=document.design_document(),
                document_id=doc_id,
                error=str(e),
            )
            unstamp(document, stamped)
            raise

        document.mark_persisted(doc_id)
        document.changes_applied()
        log.info("document_created", document_type=document.design_document(), document_id=doc_id)
        return document

    def update(self, document: Document) -> bool:
        """Write the pending changes of a persisted document as atomic operations.

        Returns:
            True (also when there was nothing to write)

        Raises:
            PersistenceError: If the document is new or destroyed
            DocumentNotFound: If the document no longer exists in storage
        """
        if document.is_new_record or document.id is None:
            raise PersistenceError("Cannot update a document that was never created")
        if document.is_destroyed:
            raise PersistenceError(f"Cannot update destroyed document {document.id}")
        if not document.subtree_changed() and not document.atomic_unsets:
            log.debug("document_update_skipped", document_id=document.id, reason="no_changes")
            return True

        stamped = set_updated_at(document)
        operations = document.setters()

        try:
            self._storage.mutate(document.id, operations, self._config.scan_consistency)
        except Exception as e:
            log.error(
                "document_update_failed",
                document_type=document.design_document(),
                document_id=document.id,
                keys=sorted(operations),
                error=str(e),
            )
            unstamp(document, stamped)
            raise

        document.changes_applied()
        log.info(
            "document_updated",
            document_type=document.design_document(),
            document_id=document.id,
            keys=sorted(operations),
        )
        return True

    def find(self, cls: type[D], doc_id: str) -> D:
        """Load a document of a known kind.

        Raises:
            DocumentNotFound: If the id does not exist
            TypeMismatchError: If the stored document is another kind
        """
        data = self._storage.get(doc_id, self._config.scan_consistency)
        document = cls.from_storage(doc_id, data)
        log.info("document_loaded", document_type=cls.design_document(), document_id=doc_id)
        return document  # type: ignore[return-value]

    def find_by_id(self, cls: type[D], doc_id: str) -> Optional[D]:
        """Like :meth:`find`, but returns None for a missing id."""
        try:
            return self.find(cls, doc_id)
        except DocumentNotFound:
            log.info("document_not_found", document_type=cls.design_document(), document_id=doc_id)
            return None

    def try_load(
        self, ids: Union[str, Iterable[str]]
    ) -> Union[Optional[Document], list[Document]]:
        """Load documents of any registered kind from their type tag.

        Args:
            ids: One id or several ids

        Returns:
            The document (or None) for a single id; the documents found for several
        """
        if isinstance(ids, str):
            return self._load_any(ids)
        documents = [self._load_any(doc_id) for doc_id in ids]
        return [document for document in documents if document is not None]

    def reload(self, document: Document) -> Document:
        """Rehydrate all attributes from storage and drop every change."""
        if document.id is None:
            raise PersistenceError("Cannot reload a document without an id")
        data = self._storage.get(document.id, self._config.scan_consistency)
        tag = data.get(document.type_key)
        if tag is not None and tag != document.design_document():
            raise TypeMismatchError(document.design_document(), tag, document.id)
        document.load_attributes(data)
        document.reset_object()
        log.info(
            "document_reloaded",
            document_type=document.design_document(),
            document_id=document.id,
        )
        return document

    def delete(self, document: Document) -> None:
        """Remove a persisted document."""
        if document.id is None:
            raise PersistenceError("Cannot delete a document without an id")
        try:
            self._storage.remove(document.id)
        except Exception as e:
            log.error("document_delete_failed", document_id=document.id, error=str(e))
            raise
        document.mark_destroyed()
        log.info("document_deleted", document_type=document.design_document(), document_id=document.id)

    def exists(self, doc_id: str) -> bool:
        return self._storage.exists(doc_id)

    def _load_any(self, doc_id: str) -> Optional[Document]:
        try:
            data = self._storage.get(doc_id, self._config.scan_consistency)
        except DocumentNotFound:
            log.info("document_not_found", document_id=doc_id)
            return None
        tag = data.get(Document.type_key)
        kind = Document.kind_for(tag) if tag is not None else None
        if kind is None:
            log.warning("unknown_document_type", document_id=doc_id, document_type=tag)
            return None
        return kind.from_storage(doc_id, data)

    def _generate_id(self, document: Document) -> str:
        return f"{document.design_document()}-{uuid.uuid4().hex}"
