"""Shared test fixtures and configuration.

Unit tests run against ``FakeFirestore``, an in-memory stand-in for the
subset of the async Firestore API the adapter uses. Queries evaluate like
Firestore: filters, then sort (document id last), then cursor, then limit,
whatever order the builder methods were called in.
"""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
from google.api_core import exceptions as gcp_exceptions

from docbridge.adapters.base.registry import ClientRegistry
from docbridge.adapters.firestore import adapter as firestore_module
from docbridge.adapters.firestore.adapter import FirestoreAdapter
from docbridge.config.settings import Settings
from docbridge.models.service import Service

DOCUMENT_ID = "__name__"


# ── Fake Firestore ───────────────────────────────────────────────────────────


class FakeSnapshot:
    def __init__(self, doc_id: str, data: dict[str, Any] | None) -> None:
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, store: dict[str, dict[str, Any]], doc_id: str) -> None:
        self._store = store
        self.id = doc_id

    async def get(self) -> FakeSnapshot:
        return FakeSnapshot(self.id, self._store.get(self.id))

    async def set(self, data: dict[str, Any]) -> None:
        self._store[self.id] = copy.deepcopy(data)

    async def update(self, values: dict[str, Any]) -> None:
        if self.id not in self._store:
            raise gcp_exceptions.NotFound(f"No document to update: {self.id}")
        self._store[self.id].update(copy.deepcopy(values))

    async def delete(self) -> None:
        self._store.pop(self.id, None)


def _field(doc_id: str, data: dict[str, Any], path: str) -> tuple[bool, Any]:
    if path == DOCUMENT_ID:
        return True, doc_id
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return False, None
        value = value[part]
    return True, value


def _matches(op: str, actual: Any, expected: Any) -> bool:
    if op == "==":
        return actual == expected
    if op == "!=":
        return actual != expected
    if op == "<":
        return actual < expected
    if op == "<=":
        return actual <= expected
    if op == ">":
        return actual > expected
    if op == ">=":
        return actual >= expected
    if op == "in":
        return actual in expected
    if op == "not-in":
        return actual not in expected
    if op == "array_contains":
        return isinstance(actual, list) and expected in actual
    if op == "array_contains_any":
        return isinstance(actual, list) and any(v in actual for v in expected)
    raise ValueError(f"Unsupported operator: {op}")


class FakeQuery:
    def __init__(
        self,
        store: dict[str, dict[str, Any]],
        filters: tuple = (),
        orders: tuple = (),
        limit: int | None = None,
        start_after: dict[str, Any] | None = None,
    ) -> None:
        self._store = store
        self._filters = filters
        self._orders = orders
        self._limit = limit
        self._start_after = start_after

    def _copy(self, **changes: Any) -> FakeQuery:
        params = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
            "start_after": self._start_after,
        }
        params.update(changes)
        return FakeQuery(self._store, **params)

    def where(self, *, filter: Any) -> FakeQuery:  # noqa: A002
        return self._copy(filters=(*self._filters, (filter.field_path, filter.op_string, filter.value)))

    def order_by(self, field_path: str) -> FakeQuery:
        return self._copy(orders=(*self._orders, field_path))

    def limit(self, count: int) -> FakeQuery:
        return self._copy(limit=count)

    def start_after(self, document_fields: dict[str, Any]) -> FakeQuery:
        return self._copy(start_after=dict(document_fields))

    async def get(self) -> list[FakeSnapshot]:
        rows = list(self._store.items())

        for field, op, expected in self._filters:
            kept = []
            for doc_id, data in rows:
                present, actual = _field(doc_id, data, field)
                if present and _matches(op, actual, expected):
                    kept.append((doc_id, data))
            rows = kept

        orders = list(self._orders)
        if DOCUMENT_ID not in orders:
            orders.append(DOCUMENT_ID)
        rows = [row for row in rows if all(_field(row[0], row[1], key)[0] for key in orders)]

        def sort_key(row: tuple[str, dict[str, Any]]) -> tuple:
            return tuple(_field(row[0], row[1], key)[1] for key in orders)

        rows.sort(key=sort_key)

        if self._start_after is not None:
            anchor = tuple(self._start_after[key] for key in orders if key in self._start_after)
            width = len(anchor)
            rows = [row for row in rows if sort_key(row)[:width] > anchor]

        if self._limit is not None:
            rows = rows[: self._limit]

        return [FakeSnapshot(doc_id, data) for doc_id, data in rows]


class FakeCollection(FakeQuery):
    def __init__(self, name: str, store: dict[str, dict[str, Any]]) -> None:
        super().__init__(store)
        self.id = name

    def document(self, doc_id: str) -> FakeDocumentReference:
        return FakeDocumentReference(self._store, doc_id)


class FakeFirestore:
    """In-memory database shared by every collection handle it hands out."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(name, self.collections.setdefault(name, {}))

    def seed(self, name: str, documents: list[dict[str, Any]]) -> None:
        store = self.collections.setdefault(name, {})
        for doc in documents:
            store[doc["_id"]] = copy.deepcopy(doc)


class FakeApp:
    def __init__(self, name: str) -> None:
        self.name = name
        self.project_id = "demo-project"


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        firestore={"project_id": "demo-project"},
    )


@pytest.fixture
def fake_db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def client_registry() -> Iterator[ClientRegistry]:
    """A registry private to one test, torn down afterwards."""
    registry = ClientRegistry()
    yield registry
    registry.teardown_all()


@pytest.fixture
def app_factory_calls(monkeypatch: pytest.MonkeyPatch, fake_db: FakeFirestore) -> list[str]:
    """Route app creation and database opening to the fakes; records created app names."""
    calls: list[str] = []

    def fake_initialize_app(settings: Any) -> FakeApp:
        calls.append(settings.app_name)
        return FakeApp(settings.app_name)

    monkeypatch.setattr(firestore_module, "initialize_app", fake_initialize_app)
    monkeypatch.setattr(firestore_module, "open_database", lambda app, settings: fake_db)
    return calls


@pytest.fixture
def users_service() -> Service:
    return Service.from_schema("users", collection="users")


@pytest.fixture
async def adapter(
    app_factory_calls: list[str],
    client_registry: ClientRegistry,
    users_service: Service,
) -> AsyncIterator[FirestoreAdapter]:
    """A connected adapter on the ``users`` collection of ``fake_db``."""
    a = FirestoreAdapter(project_id="demo-project", registry=client_registry)
    a.init(None, users_service)
    await a.connect()
    yield a
    await a.disconnect()


@pytest.fixture
def sample_users() -> list[dict[str, Any]]:
    """Five active and three inactive users."""
    return [
        {"_id": "u1", "name": "erin", "status": "active", "age": 41},
        {"_id": "u2", "name": "alice", "status": "active", "age": 30},
        {"_id": "u3", "name": "bob", "status": "inactive", "age": 25},
        {"_id": "u4", "name": "dave", "status": "active", "age": 35},
        {"_id": "u5", "name": "aaron", "status": "inactive", "age": 52},
        {"_id": "u6", "name": "carol", "status": "active", "age": 28},
        {"_id": "u7", "name": "frank", "status": "active", "age": 47},
        {"_id": "u8", "name": "abby", "status": "banned", "age": 19},
    ]
