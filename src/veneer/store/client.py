"""Document store access.

``DocumentStore`` is the narrow, synchronous surface veneer needs from a
store: list databases and collections, count documents and read them.
``MongoDocumentStore`` implements it over ``pymongo``. ``AsyncDocumentStore``
wraps any implementation and runs every blocking call in a worker thread
via ``anyio.to_thread``, so request handlers never block the event loop.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

import anyio
from pymongo import MongoClient

type Document = Mapping[str, Any]
type SortSpec = Sequence[tuple[str, int]]


def _run_sync(func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking call in anyio worker thread."""
    return anyio.to_thread.run_sync(func, *args)  # type: ignore[union-attr]


class DocumentStore(Protocol):
    """What veneer reads from a document store."""

    def list_database_names(self) -> list[str]: ...

    def list_collection_names(self, database: str) -> list[str]: ...

    def count_documents(self, database: str, collection: str, filter: Document) -> int: ...

    def estimated_document_count(self, database: str, collection: str) -> int: ...

    def find(
        self,
        database: str,
        collection: str,
        filter: Document | None = None,
        *,
        projection: Document | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]: ...

    def find_one(self, database: str, collection: str, filter: Document) -> dict[str, Any] | None: ...


class MongoDocumentStore:
    """``DocumentStore`` backed by a ``pymongo.MongoClient``.

    Usage::

        store = MongoDocumentStore.connect("mongodb://localhost:27017")
        app = App(store=store)
    """

    __slots__ = ("_client",)

    def __init__(self, client: MongoClient) -> None:
        self._client = client

    @classmethod
    def connect(cls, uri: str, **kwargs: Any) -> MongoDocumentStore:
        """Create a store from a connection string. Connects lazily."""
        return cls(MongoClient(uri, **kwargs))

    @property
    def client(self) -> MongoClient:
        return self._client

    def list_database_names(self) -> list[str]:
        return self._client.list_database_names()

    def list_collection_names(self, database: str) -> list[str]:
        return self._client[database].list_collection_names()

    def count_documents(self, database: str, collection: str, filter: Document) -> int:
        return self._client[database][collection].count_documents(dict(filter))

    def estimated_document_count(self, database: str, collection: str) -> int:
        return self._client[database][collection].estimated_document_count()

    def find(
        self,
        database: str,
        collection: str,
        filter: Document | None = None,
        *,
        projection: Document | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self._client[database][collection].find(
            dict(filter or {}),
            projection=dict(projection) if projection else None,
            skip=skip,
            limit=limit,
        )
        if sort:
            cursor = cursor.sort(list(sort))
        return list(cursor)

    def find_one(self, database: str, collection: str, filter: Document) -> dict[str, Any] | None:
        return self._client[database][collection].find_one(dict(filter))

    def close(self) -> None:
        self._client.close()


class AsyncDocumentStore:
    """Async wrapper around a ``DocumentStore``."""

    __slots__ = ("_store",)

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    @property
    def sync(self) -> DocumentStore:
        """The wrapped synchronous store."""
        return self._store

    async def list_database_names(self) -> list[str]:
        return await _run_sync(self._store.list_database_names)

    async def list_collection_names(self, database: str) -> list[str]:
        return await _run_sync(self._store.list_collection_names, database)

    async def count_documents(self, database: str, collection: str, filter: Document) -> int:
        return await _run_sync(self._store.count_documents, database, collection, filter)

    async def estimated_document_count(self, database: str, collection: str) -> int:
        return await _run_sync(self._store.estimated_document_count, database, collection)

    async def find(
        self,
        database: str,
        collection: str,
        filter: Document | None = None,
        *,
        projection: Document | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        return await _run_sync(
            lambda: self._store.find(
                database,
                collection,
                filter,
                projection=projection,
                sort=sort,
                skip=skip,
                limit=limit,
            )
        )

    async def find_one(self, database: str, collection: str, filter: Document) -> dict[str, Any] | None:
        return await _run_sync(self._store.find_one, database, collection, filter)
