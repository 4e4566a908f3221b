"""Exception hierarchy for the document change-tracking layer."""


class DocTrackError(Exception):
    """Base class for all doctrack errors."""

    pass


class TypeMismatchError(DocTrackError):
    """Raised when hydrated data is tagged as a different document kind."""

    def __init__(self, expected: str, actual: str | None, doc_id: str | None = None):
        self.expected = expected
        self.actual = actual
        self.doc_id = doc_id
        super().__init__(
            f"Document {doc_id!r} has type {actual!r}, expected {expected!r}"
        )


class DocumentNotFound(DocTrackError):
    """Raised when a document id does not exist in storage."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Document not found: {doc_id}")


class PersistenceError(DocTrackError):
    """Raised when a storage write fails."""

    pass


class ConfigurationError(DocTrackError):
    """Raised when configuration is invalid or missing."""

    pass
