"""Adapter-specific exceptions."""


class AdapterError(Exception):
    """Base exception for adapter errors."""


class ConfigurationError(AdapterError):
    """Raised when adapter or owning-service configuration is invalid."""


class NotConnectedError(AdapterError):
    """Raised when an operation runs while the adapter holds no collection handle."""


class DocumentNotFoundError(AdapterError):
    """Raised when a requested document does not exist."""

    def __init__(self, doc_id: str, collection: str | None = None) -> None:
        self.doc_id = doc_id
        self.collection = collection
        where = f" in collection '{collection}'" if collection else ""
        super().__init__(f"Document '{doc_id}' not found{where}.")


class InvalidDocumentError(AdapterError):
    """Raised when a document is missing its ``_id``."""


class QueryError(AdapterError):
    """Raised when a query cannot be built from the given parameters."""


class InvalidCursorError(AdapterError):
    """Raised when a continuation token cannot be decoded."""
