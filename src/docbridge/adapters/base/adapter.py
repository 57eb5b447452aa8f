"""Base collection adapter — Abstract interface for all document-store connectors.

Every document-store backend implements this interface to serve a
service's collection. The adapter is responsible for:
  1. Validating the owning service's configuration and acquiring a backend client
  2. Holding one collection handle between ``connect`` and ``disconnect``
  3. Forwarding CRUD, query and pagination calls to the backend
  4. Flattening backend results into mappings keyed by document ``_id``
  5. Reporting health status
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

from docbridge.models.cursor import Cursor
from docbridge.models.query import Condition, FindQuery
from docbridge.models.result import Document, DocumentMap, ListResult
from docbridge.models.service import Service


class AdapterHealth(BaseModel):
    """Health status of a collection adapter."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")


class CollectionAdapter(ABC):
    """Abstract base class for collection adapters.

    Lifecycle: construct (no side effects) → ``init(broker, service)`` →
    ``await connect()`` → operations → ``await disconnect()``. Data
    operations are only valid while connected.

    Multi-document reads return a mapping from document id to document
    body. ``list`` returns a tagged result: ``Page`` when ordering or a
    continuation was requested, ``Listing`` for the whole collection.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique adapter name (e.g., 'firestore')."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether a collection handle is currently held."""

    @abstractmethod
    def init(self, broker: Any, service: Service) -> None:
        """Validate the owning service and set up the backend client.

        Raises:
            ConfigurationError: If the service declares no collection.
        """

    @abstractmethod
    async def connect(self) -> None:
        """Acquire the collection handle."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the collection handle. No error if already disconnected."""

    @abstractmethod
    async def list(
        self,
        limit: int,
        order_by: str | None = None,
        continuation: Cursor | str | None = None,
    ) -> ListResult:
        """List documents, paginated when ``order_by`` or ``continuation`` is given."""

    @abstractmethod
    async def get_all(self) -> DocumentMap:
        """Return every document of the collection."""

    @abstractmethod
    async def find(
        self,
        conditions: Sequence[Condition | Sequence[Any]] | None = None,
        limit: int | None = None,
        order_by: Sequence[str] | str | None = None,
    ) -> DocumentMap:
        """Return the documents matching ``conditions``."""

    @abstractmethod
    async def find_by_id(self, doc_id: str) -> Document:
        """Return one document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """

    @abstractmethod
    async def find_by_ids(self, ids: Sequence[str]) -> DocumentMap:
        """Return the existing documents among ``ids``."""

    @abstractmethod
    async def create(self, entity: Document) -> Document:
        """Write ``entity`` at its ``_id``, overwriting, and return it as stored."""

    @abstractmethod
    async def update(self, doc_id: str, values: dict[str, Any]) -> Document:
        """Merge ``values`` into an existing document and return the result."""

    @abstractmethod
    async def delete(self, doc_id: str) -> Document:
        """Delete a document and return its body as it was before deletion."""

    @abstractmethod
    async def health_check(self) -> AdapterHealth:
        """Check the health of the backend.

        Returns:
            Current health status of the adapter.
        """

    async def find_query(self, query: FindQuery) -> DocumentMap:
        """Run ``find`` from a prepared ``FindQuery``."""
        return await self.find(query.conditions, query.limit, query.order_by)
