"""The document API: read-only JSON over the document store.

``DocumentService`` is the handler ``App`` routes every mount to. It
resolves the request against the mounts, reads from the store, and
answers with relaxed extended JSON. The response also carries a
``StoreResult`` (the native documents plus the addressing context) so
the HTML pipeline can build template context without decoding JSON.

Query parameters:

    filter    JSON query document, e.g. ``{"status": "open"}``
    sort      JSON sort document or ``name,-created`` shorthand
    keys      JSON projection, repeatable
    page      1-based page number (default 1)
    pagesize  items per page (default and maximum from AppConfig)
    id_type   how to read the document id segment (see ``store.values``)
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from bson import json_util
from bson.errors import InvalidBSON

from veneer.errors import HTTPError, NotFound
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.store.client import AsyncDocumentStore
from veneer.store.mounts import MountResolver, ResolvedContext, StoreResourceType
from veneer.store.values import parse_id

logger = logging.getLogger("veneer.store")

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True, slots=True)
class StoreResult:
    """Native payload of a document API response.

    ``content`` is a list of database or collection names for ROOT and
    DATABASE requests, a list of documents for COLLECTION requests, and
    a single document for DOCUMENT requests.
    """

    context: ResolvedContext
    content: Any
    page: int = 1
    pagesize: int = 100
    filter: dict[str, Any] | None = None
    query: dict[str, str] = field(default_factory=dict)

    @property
    def is_listing(self) -> bool:
        return isinstance(self.content, list)


@dataclass(frozen=True, slots=True)
class ListingQuery:
    """Parsed listing parameters."""

    page: int = 1
    pagesize: int = 100
    filter: dict[str, Any] | None = None
    sort: list[tuple[str, int]] | None = None
    projection: dict[str, Any] | None = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.pagesize


def _parse_json_document(raw: str, name: str) -> dict[str, Any]:
    try:
        value = json_util.loads(raw)
    except (ValueError, InvalidBSON) as exc:
        raise HTTPError(status=400, detail=f"Invalid {name}: {exc}") from exc
    if not isinstance(value, dict):
        raise HTTPError(status=400, detail=f"Invalid {name}: expected a JSON object")
    return value


def parse_sort(raw: str | None) -> list[tuple[str, int]] | None:
    """``{"a": 1, "b": -1}`` or ``a,-b`` to a pymongo sort list."""
    if not raw or not raw.strip():
        return None
    raw = raw.strip()
    if raw.startswith("{"):
        order = _parse_json_document(raw, "sort")
        try:
            return [(str(k), -1 if int(v) < 0 else 1) for k, v in order.items()]
        except (TypeError, ValueError) as exc:
            raise HTTPError(status=400, detail=f"Invalid sort: {raw}") from exc
    sort = []
    for name in raw.split(","):
        name = name.strip()
        if not name:
            continue
        if name.startswith("-"):
            sort.append((name[1:], -1))
        else:
            sort.append((name.removeprefix("+"), 1))
    return sort or None


def parse_listing_query(request: Request, default_pagesize: int, max_pagesize: int) -> ListingQuery:
    """Read paging, filter, sort and projection from the query string.

    Raises:
        HTTPError: 400 for malformed JSON or a non-positive page size.
    """
    page = max(1, request.query.get_int("page", 1) or 1)
    pagesize = request.query.get_int("pagesize", default_pagesize)
    if pagesize is None or pagesize < 1:
        raise HTTPError(status=400, detail="pagesize must be a positive integer")
    pagesize = min(pagesize, max_pagesize)

    raw_filter = request.query.get("filter")
    filter_ = _parse_json_document(raw_filter, "filter") if raw_filter and raw_filter.strip() else None

    projection: dict[str, Any] = {}
    for raw_keys in request.query.get_list("keys"):
        if raw_keys.strip():
            projection.update(_parse_json_document(raw_keys, "keys"))

    return ListingQuery(
        page=page,
        pagesize=pagesize,
        filter=filter_ or None,
        sort=parse_sort(request.query.get("sort")),
        projection=projection or None,
    )


def to_json(content: Any) -> str:
    """Relaxed extended JSON for a store payload."""
    return json_util.dumps(content, json_options=json_util.RELAXED_JSON_OPTIONS)


class DocumentService:
    """GET handler for every store mount."""

    __slots__ = ("_default_pagesize", "_max_pagesize", "_resolver", "_store")

    def __init__(
        self,
        store: AsyncDocumentStore,
        resolver: MountResolver,
        *,
        default_pagesize: int = 100,
        max_pagesize: int = 1000,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._default_pagesize = default_pagesize
        self._max_pagesize = max_pagesize

    @property
    def store(self) -> AsyncDocumentStore:
        return self._store

    @property
    def resolver(self) -> MountResolver:
        return self._resolver

    async def __call__(self, request: Request) -> Response:
        context = self._resolver.resolve(request)
        if context is None:
            raise NotFound(f"No store mount for {request.path}")

        query = parse_listing_query(request, self._default_pagesize, self._max_pagesize)
        content = await self._read(context, query, request)

        result = StoreResult(
            context=context,
            content=content,
            page=query.page,
            pagesize=query.pagesize,
            filter=query.filter,
            query={k: request.query.get(k) or "" for k in ("filter", "sort", "keys")},
        )
        logger.debug(
            "%s %s -> %s (page %d, pagesize %d)",
            request.method,
            request.path,
            context.resource_type.value,
            query.page,
            query.pagesize,
        )
        return Response(body=to_json(content), content_type=JSON_CONTENT_TYPE).with_store(result)

    async def _read(self, context: ResolvedContext, query: ListingQuery, request: Request) -> Any:
        match context.resource_type:
            case StoreResourceType.ROOT:
                names = sorted(await self._store.list_database_names())
                return names[query.skip : query.skip + query.pagesize]

            case StoreResourceType.DATABASE:
                database = context.database
                await self._require_database(database)
                names = sorted(await self._store.list_collection_names(database))
                return names[query.skip : query.skip + query.pagesize]

            case StoreResourceType.COLLECTION:
                await self._require_collection(context.database, context.collection)
                return await self._store.find(
                    context.database,
                    context.collection,
                    query.filter,
                    projection=query.projection,
                    sort=query.sort,
                    skip=query.skip,
                    limit=query.pagesize,
                )

            case StoreResourceType.DOCUMENT:
                await self._require_collection(context.database, context.collection)
                doc_id = parse_id(context.document_id, request.query.get("id_type"))
                document = await self._store.find_one(
                    context.database, context.collection, {"_id": doc_id}
                )
                if document is None:
                    raise NotFound(f"Document {context.document_id} does not exist")
                return document

    async def _require_database(self, database: str) -> None:
        if database not in await self._store.list_database_names():
            raise NotFound(f"Database {database} does not exist")

    async def _require_collection(self, database: str, collection: str) -> None:
        await self._require_database(database)
        if collection not in await self._store.list_collection_names(database):
            raise NotFound(f"Collection {database}/{collection} does not exist")
