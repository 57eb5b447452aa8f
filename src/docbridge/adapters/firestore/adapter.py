"""Cloud Firestore adapter — Collection CRUD and pagination over Firestore.

Talks to Firestore through the Firebase Admin SDK and the asynchronous
``google-cloud-firestore`` client. One Firebase app per ``app_name`` is
shared by every adapter of the process through ``firebase_apps``.

Usage::

    adapter = FirestoreAdapter(project_id="my-project")
    adapter.init(broker, Service.from_schema("users", collection="users"))
    await adapter.connect()
    page = await adapter.list(20, order_by="name")
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core import exceptions as gcp_exceptions
from google.auth.credentials import AnonymousCredentials
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath
from pydantic import ValidationError

from docbridge.adapters.base.adapter import AdapterHealth, CollectionAdapter
from docbridge.adapters.base.exceptions import (
    ConfigurationError,
    DocumentNotFoundError,
    InvalidDocumentError,
    NotConnectedError,
    QueryError,
)
from docbridge.adapters.base.registry import ClientRegistry
from docbridge.config.settings import FirestoreSettings
from docbridge.models.cursor import Cursor, DocumentPath
from docbridge.models.query import Condition, FindQuery
from docbridge.models.result import Document, DocumentMap, ListResult, Listing, Page
from docbridge.models.service import Service

logger = logging.getLogger(__name__)

# Operators accepted by Query.where()
OPERATORS = frozenset(
    {"<", "<=", "==", "!=", ">=", ">", "array_contains", "array_contains_any", "in", "not-in"}
)

# Maximum number of values in a single "in" filter
IN_QUERY_LIMIT = 30

DOCUMENT_ID = FieldPath.document_id()

firebase_apps = ClientRegistry(closer=firebase_admin.delete_app)


def initialize_app(settings: FirestoreSettings) -> firebase_admin.App:
    """Return the Firebase app named ``settings.app_name``, creating it if needed.

    An app created elsewhere in the process (by another library) is reused.
    """
    try:
        return firebase_admin.get_app(settings.app_name)
    except ValueError:
        pass

    credential = credentials.Certificate(settings.credentials_path) if settings.credentials_path else None
    options = {"projectId": settings.project_id} if settings.project_id else None
    return firebase_admin.initialize_app(credential, options, name=settings.app_name)


def open_database(app: firebase_admin.App, settings: FirestoreSettings) -> firestore.AsyncClient:
    """Open the async Firestore client of ``app``.

    With ``emulator_host`` set, an anonymous client pointed at the emulator
    is returned instead.
    """
    if settings.emulator_host:
        os.environ.setdefault("FIRESTORE_EMULATOR_HOST", settings.emulator_host)
        return firestore.AsyncClient(
            project=settings.project_id or app.project_id or "demo-docbridge",
            credentials=AnonymousCredentials(),
            database=settings.database_id,
        )
    return firestore_async.client(app=app, database_id=settings.database_id)


class FirestoreAdapter(CollectionAdapter):
    """Collection adapter for Cloud Firestore.

    Documents are stored at the Firestore document whose id equals their
    ``_id`` field. Multi-document reads are keyed by ``_id``.

    Args:
        project_id: Google Cloud project id.
        credentials_path: Service-account JSON key; Application Default
            Credentials are used when unset.
        database_id: Firestore database id.
        app_name: Firebase app name; adapters with the same name share one app.
        emulator_host: Firestore emulator ``host:port``.
        registry: Client registry holding the Firebase apps. Defaults to the
            process-wide ``firebase_apps``.
        **kwargs: Extra keyword arguments stored for future use.
    """

    def __init__(
        self,
        project_id: str | None = None,
        credentials_path: str | None = None,
        database_id: str = "(default)",
        app_name: str = "[DEFAULT]",
        emulator_host: str | None = None,
        registry: ClientRegistry | None = None,
        **kwargs: Any,
    ) -> None:
        self._settings = FirestoreSettings(
            project_id=project_id,
            credentials_path=credentials_path,
            database_id=database_id,
            app_name=app_name,
            emulator_host=emulator_host,
        )
        self._registry = registry if registry is not None else firebase_apps
        self._extra_kwargs = kwargs
        self.broker: Any = None
        self.service: Service | None = None
        self._app: Any = None
        self._db: Any = None
        self._collection: Any = None

    @classmethod
    def from_settings(cls, settings: FirestoreSettings, **kwargs: Any) -> FirestoreAdapter:
        """Create an adapter from ``FirestoreSettings``."""
        return cls(**settings.model_dump(), **kwargs)

    @property
    def name(self) -> str:
        return "firestore"

    @property
    def connected(self) -> bool:
        return self._collection is not None

    @property
    def collection_name(self) -> str | None:
        if self.service is None:
            return None
        return self.service.schema.collection

    # ── Lifecycle ────────────────────────────────────────────────────────

    def init(self, broker: Any, service: Service) -> None:
        """Validate the service schema and get or create the Firebase app."""
        self.broker = broker
        self.service = service

        collection = getattr(service.schema, "collection", None)
        if not collection or not str(collection).strip():
            raise ConfigurationError("Missing 'collection' definition in schema of service!")

        self._app = self._registry.get_or_create(
            self._settings.app_name,
            lambda: initialize_app(self._settings),
        )

    async def connect(self) -> None:
        """Open the database and acquire the collection handle."""
        if self._app is None:
            raise NotConnectedError("Firestore adapter not initialized. Call init() first.")

        self._db = open_database(self._app, self._settings)
        self._collection = self._db.collection(self.collection_name)
        logger.info(
            "Connected to Firestore (database: %s, collection: %s)",
            self._settings.database_id,
            self.collection_name,
        )

    async def disconnect(self) -> None:
        """Drop the database and collection handles."""
        if self._collection is not None:
            logger.info("Disconnected from Firestore collection: %s", self.collection_name)
        self._db = None
        self._collection = None

    # ── Listing ──────────────────────────────────────────────────────────

    async def list(
        self,
        limit: int,
        order_by: str | None = None,
        continuation: Cursor | str | None = None,
    ) -> ListResult:
        """List documents.

        With ``continuation``, the page it points at is fetched and the next
        cursor is built with this call's ``order_by`` (or the cursor's) and
        ``limit``. With ``order_by`` alone, the first ordered page is fetched.
        Without either, the whole collection comes back as a ``Listing``.
        """
        collection = self._require_collection()

        if continuation is not None:
            cursor = Cursor.decode(continuation) if isinstance(continuation, str) else continuation
            self._check_limit(limit)
            snapshots = await self._page_query(cursor.order_by, cursor.limit, after=cursor).get()
            return self._to_page(snapshots, cursor.limit, order_by or cursor.order_by, limit)

        if order_by:
            self._check_limit(limit)
            snapshots = await self._page_query(order_by, limit).get()
            return self._to_page(snapshots, limit, order_by, limit)

        snapshots = await collection.get()
        return Listing(docs=self._parse_query_snapshot(snapshots))

    async def get_all(self) -> DocumentMap:
        """Fetch the whole collection. Meant for small collections."""
        collection = self._require_collection()
        snapshots = await collection.get()
        return self._parse_query_snapshot(snapshots)

    # ── Queries ──────────────────────────────────────────────────────────

    async def find(
        self,
        conditions: Sequence[Condition | Sequence[Any]] | None = None,
        limit: int | None = None,
        order_by: Sequence[str] | str | None = None,
    ) -> DocumentMap:
        """Find documents by filters.

        Filters, then the limit, then ascending sort fields are added to the
        query in that order. Firestore evaluates the query as filter, sort,
        limit, so the limit always applies to the sorted result.

        Raises:
            QueryError: If an operator is unsupported or a parameter is invalid.
        """
        self._require_collection()
        try:
            params = FindQuery(conditions=conditions, limit=limit or None, order_by=order_by)
        except ValidationError as e:
            raise QueryError(f"Invalid find parameters: {e}") from e

        query = self._build_query(params)
        snapshots = await query.get()
        return self._parse_query_snapshot(snapshots)

    async def find_by_id(self, doc_id: str) -> Document:
        """Fetch one document by id."""
        collection = self._require_collection()
        snapshot = await collection.document(doc_id).get()
        data = self._parse_doc_snapshot(snapshot)
        if data is None:
            raise DocumentNotFoundError(doc_id, self.collection_name)
        return data

    async def find_by_ids(self, ids: Sequence[str]) -> DocumentMap:
        """Fetch the documents whose ``_id`` is among ``ids``.

        Ids are queried in chunks of ``IN_QUERY_LIMIT``.
        """
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return {}

        docs: DocumentMap = {}
        for start in range(0, len(unique_ids), IN_QUERY_LIMIT):
            chunk = unique_ids[start : start + IN_QUERY_LIMIT]
            docs.update(await self.find([("_id", "in", chunk)]))
        return docs

    # ── Writes ───────────────────────────────────────────────────────────

    async def create(self, entity: Document) -> Document:
        """Write ``entity`` at its ``_id`` (overwriting) and read it back."""
        collection = self._require_collection()
        doc_id = entity.get("_id")
        if not isinstance(doc_id, str) or not doc_id.strip():
            raise InvalidDocumentError("Document must have a non-empty string '_id'.")

        await collection.document(doc_id).set(entity)
        return await self.find_by_id(doc_id)

    async def update(self, doc_id: str, values: dict[str, Any]) -> Document:
        """Merge ``values`` into the document and read it back."""
        collection = self._require_collection()
        try:
            await collection.document(doc_id).update(values)
        except gcp_exceptions.NotFound as e:
            raise DocumentNotFoundError(doc_id, self.collection_name) from e
        return await self.find_by_id(doc_id)

    async def delete(self, doc_id: str) -> Document:
        """Delete the document and return its body from before the deletion."""
        collection = self._require_collection()
        doc_ref = collection.document(doc_id)
        data = self._parse_doc_snapshot(await doc_ref.get())
        if data is None:
            raise DocumentNotFoundError(doc_id, self.collection_name)

        await doc_ref.delete()
        return data

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> AdapterHealth:
        """Read a single document to check Firestore reachability."""
        if self._collection is None:
            return AdapterHealth(status="unhealthy", message="Adapter not connected")

        try:
            start = time.monotonic()
            await self._collection.limit(1).get()
            latency_ms = int((time.monotonic() - start) * 1000)
            return AdapterHealth(
                status="healthy",
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Collection: {self.collection_name}",
            )
        except Exception as e:
            return AdapterHealth(status="unhealthy", message=str(e))

    # ── Helpers ──────────────────────────────────────────────────────────

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise NotConnectedError("Firestore adapter not connected.")
        return self._collection

    def _build_query(self, params: FindQuery) -> Any:
        query = self._require_collection()

        for condition in params.conditions:
            if condition.op not in OPERATORS:
                raise QueryError(f"Unsupported operator '{condition.op}' on field '{condition.field}'.")
            query = query.where(filter=FieldFilter(condition.field, condition.op, condition.value))

        if params.limit:
            query = query.limit(params.limit)

        for key in params.order_by:
            query = query.order_by(key)

        logger.debug(
            "Firestore query on %s: conditions=%s limit=%s order_by=%s",
            self.collection_name,
            [c.as_tuple() for c in params.conditions],
            params.limit,
            params.order_by,
        )
        return query

    def _page_query(self, order_by: str | None, limit: int, after: Cursor | None = None) -> Any:
        """Ordered, limited query, optionally starting after a cursor.

        The document id is the final sort key, so pages are stable when
        several documents share a sort value.
        """
        query = self._require_collection()
        if order_by:
            query = query.order_by(order_by)
        query = query.order_by(DOCUMENT_ID)

        if after is not None:
            anchor: dict[str, Any] = {DOCUMENT_ID: after.last_id}
            if order_by:
                anchor[order_by] = self._anchor_value(after.last_value)
            query = query.start_after(anchor)

        return query.limit(limit)

    def _anchor_value(self, value: Any) -> Any:
        """Turn decoded reference paths back into references of this client."""
        if isinstance(value, DocumentPath):
            return self._db.document(value)
        if isinstance(value, list):
            return [self._anchor_value(item) for item in value]
        if isinstance(value, dict):
            return {k: self._anchor_value(v) for k, v in value.items()}
        return value

    def _to_page(self, snapshots: Sequence[Any], page_limit: int, order_by: str | None, limit: int) -> Page:
        docs = self._parse_query_snapshot(snapshots)
        if len(snapshots) < page_limit:
            return Page(docs=docs, next=None)

        last = snapshots[-1]
        next_cursor = Cursor.after(last.to_dict() or {}, last.id, order_by, limit)
        return Page(docs=docs, next=next_cursor)

    @staticmethod
    def _check_limit(limit: int) -> None:
        if limit < 1:
            raise QueryError(f"Page limit must be at least 1, got {limit}.")

    @staticmethod
    def _parse_doc_snapshot(snapshot: Any) -> Document | None:
        """Document body of a snapshot, or None when the document does not exist."""
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    @staticmethod
    def _parse_query_snapshot(snapshots: Iterable[Any]) -> DocumentMap:
        """Mapping of ``_id`` to body for every snapshot of a query result."""
        docs: DocumentMap = {}
        for snapshot in snapshots:
            data = snapshot.to_dict() or {}
            docs[str(data.get("_id", snapshot.id))] = data
        return docs
