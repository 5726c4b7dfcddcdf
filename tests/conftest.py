"""Shared fixtures: an in-memory document store and request/app factories."""

import copy
import datetime
from collections.abc import Callable, Mapping
from typing import Any

import pytest
from bson import ObjectId
from kida import DictLoader, Environment

from veneer.app import App
from veneer.config import AppConfig
from veneer.http.headers import Headers
from veneer.http.query import QueryParams
from veneer.http.request import Request

ORDER_IDS = (
    ObjectId("65a000000000000000000001"),
    ObjectId("65a000000000000000000002"),
    ObjectId("65a000000000000000000003"),
)


class MemoryStore:
    """``DocumentStore`` over nested dicts: database -> collection -> documents.

    Filters match on top-level equality, projections include the listed
    keys plus ``_id``. Every call is recorded in ``calls``.
    """

    def __init__(self, data: dict[str, dict[str, list[dict[str, Any]]]]) -> None:
        self.data = data
        self.calls: list[tuple[str, ...]] = []

    def list_database_names(self) -> list[str]:
        self.calls.append(("list_database_names",))
        return list(self.data)

    def list_collection_names(self, database: str) -> list[str]:
        self.calls.append(("list_collection_names", database))
        return list(self.data.get(database, {}))

    def count_documents(self, database: str, collection: str, filter: Mapping[str, Any]) -> int:
        self.calls.append(("count_documents", database, collection))
        return len(self._matching(database, collection, filter))

    def estimated_document_count(self, database: str, collection: str) -> int:
        self.calls.append(("estimated_document_count", database, collection))
        return len(self.data[database][collection])

    def find(
        self,
        database: str,
        collection: str,
        filter: Mapping[str, Any] | None = None,
        *,
        projection: Mapping[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        self.calls.append(("find", database, collection))
        docs = self._matching(database, collection, filter)
        for key, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        if projection:
            keep = {k for k, v in projection.items() if v} | {"_id"}
            docs = [{k: v for k, v in d.items() if k in keep} for d in docs]
        return docs

    def find_one(
        self, database: str, collection: str, filter: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        self.calls.append(("find_one", database, collection))
        docs = self._matching(database, collection, filter)
        return docs[0] if docs else None

    def _matching(
        self, database: str, collection: str, filter: Mapping[str, Any] | None
    ) -> list[dict[str, Any]]:
        docs = self.data.get(database, {}).get(collection, [])
        return [
            copy.deepcopy(d)
            for d in docs
            if all(d.get(k) == v for k, v in (filter or {}).items())
        ]


def sample_data() -> dict[str, dict[str, list[dict[str, Any]]]]:
    return {
        "shop": {
            "orders": [
                {"_id": ORDER_IDS[0], "item": "lamp", "qty": 2, "status": "open"},
                {"_id": ORDER_IDS[1], "item": "desk", "qty": 1, "status": "shipped"},
                {"_id": ORDER_IDS[2], "item": "chair", "qty": 4, "status": "open"},
            ],
            "customers": [
                {"_id": "ada", "name": "Ada"},
                {"_id": 7, "name": "Grace"},
                {"_id": datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC), "name": "Dated"},
            ],
            "system.views": [],
            "_meta": [{"_id": "schema", "version": 3}],
        },
        "acme": {"widgets": [{"_id": "w1", "name": "Widget"}]},
        "globex": {"gadgets": []},
        "admin": {"system.version": [{"_id": "featureCompatibilityVersion"}]},
        "local": {"startup_log": []},
    }


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(sample_data())


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a ``Request`` from a path, a header dict and a query string."""

    def factory(
        path: str = "/",
        *,
        headers: dict[str, str] | None = None,
        query: str = "",
        method: str = "GET",
    ) -> Request:
        return Request(
            method=method,
            path=path,
            headers=Headers.from_pairs(headers or {}),
            query=QueryParams(query.encode("latin-1")),
        )

    return factory


@pytest.fixture
def make_app() -> Callable[..., App]:
    """Build an ``App`` rendering from in-memory templates.

    Template names are given without the ``.html`` suffix.
    """

    def factory(
        templates: dict[str, str] | None = None,
        *,
        store: Any = None,
        **config: Any,
    ) -> App:
        loader = DictLoader({f"{name}.html": body for name, body in (templates or {}).items()})
        env = Environment(loader=loader, autoescape=True)
        return App(AppConfig(**config), store=store, kida_env=env)

    return factory


@pytest.fixture
def order_ids() -> tuple[ObjectId, ...]:
    return ORDER_IDS
