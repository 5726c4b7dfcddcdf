"""Document store context builder.

Applies to responses produced by ``DocumentService``. Works from the
native documents rather than the JSON body, so templates see plain
Python values, typed ``_id`` descriptors for building links, pagination
totals and the create/delete flags for the current level.

Context keys added on top of the base context:

    store_path       path below the mount, e.g. ``/shop/orders``
    resource_kind    ``root`` / ``database`` / ``collection`` / ``document``
    items            one entry per listed element (see ``make_item``)
    data             each element as indented extended JSON
    filter, sort, keys          raw query parameters
    page, pagesize, total_items, total_pages
    db, coll
    can_create_databases, can_create_collections, can_create_documents
    can_delete_database, can_delete_collection
    resource_url, collection_url
    tenant_id, is_multi_tenant, host_params
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from bson import json_util

from veneer.html.handlers.base import base_context
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.store.client import AsyncDocumentStore
from veneer.store.mounts import (
    StoreResourceType,
    host_params,
    is_system_collection,
    is_system_database,
)
from veneer.store.service import StoreResult
from veneer.store.values import detect_id_type, id_descriptor, unwrap

logger = logging.getLogger("veneer.html")


def total_pages(total_items: int, pagesize: int) -> int:
    """Number of pages for *total_items*; never less than 1."""
    if pagesize < 1:
        return 1
    return max(1, math.ceil(total_items / pagesize))


def filter_databases_by_tenant(content: Any, tenant_id: str | None) -> Any:
    """Keep the tenant's database and the system databases in a name listing."""
    if tenant_id is None or not isinstance(content, list):
        return content
    return [
        name
        for name in content
        if not isinstance(name, str) or name == tenant_id or is_system_database(name)
    ]


def make_item(element: Any) -> dict[str, Any]:
    """One entry of ``items``.

    Documents become ``{"data": {...}, "is_string": False, "_id": {...}}``;
    names and other scalars become ``{"value": "...", "is_string": True}``.
    """
    if isinstance(element, Mapping):
        item: dict[str, Any] = {"data": unwrap(element), "is_string": False}
        if "_id" in element:
            item["_id"] = id_descriptor(element["_id"])
        return item
    return {"value": element if isinstance(element, str) else str(unwrap(element)), "is_string": True}


def element_json(element: Any) -> str:
    """Indented extended JSON for one element, tagging non-ObjectId ids."""
    if isinstance(element, Mapping):
        doc = dict(element)
        if "_id" in doc:
            id_type = detect_id_type(doc["_id"])
            if id_type is not None:
                doc["__id_type__"] = id_type
        return json_util.dumps(doc, indent=2, json_options=json_util.RELAXED_JSON_OPTIONS)
    return json_util.dumps(element, json_options=json_util.RELAXED_JSON_OPTIONS)


class StoreContextBuilder:
    """Context for document API responses.

    Totals come from the store: a filtered count or the collection's
    estimated count for document listings, the number of non-system
    collections for a database and of non-system databases for the root.
    Store calls run in worker threads; a failing call propagates so the
    pipeline leaves the API response untouched.
    """

    __slots__ = ("_globals", "_store")

    def __init__(self, store: AsyncDocumentStore, globals_: Mapping[str, Any]) -> None:
        self._store = store
        self._globals = globals_

    def can_handle(self, response: Response) -> bool:
        return response.store is not None

    async def build_context(self, request: Request, response: Response) -> dict[str, Any]:
        result = response.store
        assert result is not None
        ctx = result.context

        content = result.content
        if ctx.resource_type is StoreResourceType.ROOT:
            content = filter_databases_by_tenant(content, ctx.tenant_id)

        elements = content if isinstance(content, list) else [content]
        total = await self.count(result)

        context = base_context(request, self._globals)
        context.update(
            {
                "store_path": ctx.store_path,
                "resource_kind": ctx.resource_type.value,
                "items": [make_item(e) for e in elements],
                "data": [element_json(e) for e in elements],
                "filter": result.query.get("filter", ""),
                "sort": result.query.get("sort", ""),
                "keys": result.query.get("keys", ""),
                "page": result.page,
                "pagesize": result.pagesize,
                "total_items": total,
                "total_pages": total_pages(total, result.pagesize),
                "db": ctx.database,
                "coll": ctx.collection,
                "can_create_databases": ctx.can_create_databases,
                "can_create_collections": ctx.can_create_collections,
                "can_create_documents": ctx.can_create_documents,
                "can_delete_database": ctx.can_delete_database,
                "can_delete_collection": ctx.can_delete_collection,
                "resource_url": ctx.resource_path,
                "collection_url": ctx.collection_url,
                "tenant_id": ctx.tenant_id,
                "is_multi_tenant": ctx.is_multi_tenant,
                "host_params": host_params(request),
            }
        )
        logger.debug(
            "Store context for %s: page %d of %d (%d items)",
            request.path,
            result.page,
            context["total_pages"],
            total,
        )
        return context

    async def count(self, result: StoreResult) -> int:
        """Total number of elements across all pages of *result*."""
        ctx = result.context
        if not result.is_listing:
            return 1
        match ctx.resource_type:
            case StoreResourceType.COLLECTION:
                if result.filter:
                    return await self._store.count_documents(ctx.database, ctx.collection, result.filter)
                return await self._store.estimated_document_count(ctx.database, ctx.collection)
            case StoreResourceType.DATABASE:
                names = await self._store.list_collection_names(ctx.database)
                return sum(1 for name in names if not is_system_collection(name))
            case StoreResourceType.ROOT:
                names = await self._store.list_database_names()
                return sum(1 for name in names if not is_system_database(name))
            case _:
                return 1
