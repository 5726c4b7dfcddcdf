"""Tests for veneer.html.handlers: building template context."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from veneer.config import Mount
from veneer.html.handlers import JsonContextBuilder, StoreContextBuilder, default_builders
from veneer.html.handlers.json import decode_object
from veneer.html.handlers.store import (
    element_json,
    filter_databases_by_tenant,
    make_item,
    total_pages,
)
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.identity import Identity, _identity_var
from veneer.store.client import AsyncDocumentStore
from veneer.store.mounts import MountResolver
from veneer.store.service import DocumentService

type RequestFactory = Callable[..., Request]

GLOBALS = {"version": "1.2.3"}


async def store_context(
    store: Any,
    request: Request,
    mounts: tuple[Mount, ...] = (Mount("/", "*"),),
) -> dict[str, Any]:
    """Run *request* through the document API, then the store builder."""
    async_store = AsyncDocumentStore(store)
    response = await DocumentService(async_store, MountResolver(mounts), default_pagesize=2)(request)
    builder = StoreContextBuilder(async_store, GLOBALS)
    assert builder.can_handle(response)
    return await builder.build_context(request, response)


class TestDecodeObject:
    def test_object(self) -> None:
        assert decode_object('{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "  ", "not json", "[1, 2]", '"text"'])
    def test_not_an_object(self, text: str) -> None:
        assert decode_object(text) == {}


class TestJsonContextBuilder:
    async def test_flattens_top_level_keys(self, make_request: RequestFactory) -> None:
        request = make_request("/profile", headers={"accept": "text/html"})
        response = Response(body='{"name": "Ada", "langs": ["en"]}', content_type="application/json")
        builder = JsonContextBuilder(GLOBALS)
        assert builder.can_handle(response)
        context = await builder.build_context(request, response)
        assert context["name"] == "Ada"
        assert context["langs"] == ["en"]
        assert json.loads(context["json"]) == {"name": "Ada", "langs": ["en"]}
        assert context["version"] == "1.2.3"
        assert context["path"] == "/profile"

    async def test_anonymous(self, make_request: RequestFactory) -> None:
        context = await JsonContextBuilder({}).build_context(make_request(), Response(body="[]"))
        assert context["is_authenticated"] is False
        assert context["username"] is None
        assert context["roles"] == []
        assert context["json"] == "[]"

    async def test_identity(self, make_request: RequestFactory) -> None:
        token = _identity_var.set(Identity("ada", frozenset({"writer", "admin"})))
        try:
            context = await JsonContextBuilder({}).build_context(make_request(), Response(body="{}"))
        finally:
            _identity_var.reset(token)
        assert context["is_authenticated"] is True
        assert context["username"] == "ada"
        assert context["roles"] == ["admin", "writer"]

    async def test_htmx_keys(self, make_request: RequestFactory) -> None:
        request = make_request(headers={"accept": "*/*", "hx-request": "true", "hx-target": "#rows"})
        context = await JsonContextBuilder({}).build_context(request, Response(body="{}"))
        assert context["is_fragment_request"] is True
        assert context["fragment_target"] == "rows"


class TestStoreHelpers:
    @pytest.mark.parametrize(
        ("items", "pagesize", "pages"),
        [(0, 10, 1), (10, 10, 1), (25, 10, 3), (30, 10, 3), (5, 0, 1)],
    )
    def test_total_pages(self, items: int, pagesize: int, pages: int) -> None:
        assert total_pages(items, pagesize) == pages

    def test_make_item_document(self, order_ids: tuple) -> None:
        item = make_item({"_id": order_ids[0], "item": "lamp"})
        assert item["is_string"] is False
        assert item["data"] == {"_id": str(order_ids[0]), "item": "lamp"}
        assert item["_id"] == {"value": str(order_ids[0]), "type": None, "needs_param": False}

    def test_make_item_typed_id(self) -> None:
        item = make_item({"_id": 7, "name": "Grace"})
        assert item["_id"] == {"value": "7", "type": "NUMBER", "needs_param": True}

    def test_make_item_name(self) -> None:
        assert make_item("orders") == {"value": "orders", "is_string": True}

    def test_element_json_tags_non_object_ids(self, order_ids: tuple) -> None:
        assert json.loads(element_json({"_id": "ada"}))["__id_type__"] == "STRING"
        assert "__id_type__" not in json.loads(element_json({"_id": order_ids[0]}))

    def test_element_json_name(self) -> None:
        assert element_json("orders") == '"orders"'

    def test_tenant_filter(self) -> None:
        names = ["acme", "admin", "globex", "local"]
        assert filter_databases_by_tenant(names, "acme") == ["acme", "admin", "local"]
        assert filter_databases_by_tenant(names, None) == names


class TestStoreContextBuilder:
    async def test_collection_listing(
        self, store: Any, make_request: RequestFactory, order_ids: tuple
    ) -> None:
        context = await store_context(store, make_request("/shop/orders"))
        assert context["store_path"] == "/shop/orders"
        assert context["resource_kind"] == "collection"
        assert context["db"] == "shop"
        assert context["coll"] == "orders"
        assert context["page"] == 1
        assert context["pagesize"] == 2
        assert context["total_items"] == 3
        assert context["total_pages"] == 2
        assert [i["data"]["item"] for i in context["items"]] == ["lamp", "desk"]
        assert context["items"][0]["_id"]["value"] == str(order_ids[0])
        assert len(context["data"]) == 2
        assert context["can_create_documents"] is True
        assert context["can_delete_collection"] is True
        assert context["can_create_databases"] is False
        assert context["resource_url"] == "/shop/orders"
        assert context["collection_url"] == "/shop/orders"
        assert context["version"] == "1.2.3"

    async def test_unfiltered_count_is_estimated(
        self, store: Any, make_request: RequestFactory
    ) -> None:
        await store_context(store, make_request("/shop/orders"))
        assert ("estimated_document_count", "shop", "orders") in store.calls
        assert not any(call[0] == "count_documents" for call in store.calls)

    async def test_filtered_count(self, store: Any, make_request: RequestFactory) -> None:
        request = make_request("/shop/orders", query='filter={"status":"open"}')
        context = await store_context(store, request)
        assert context["total_items"] == 2
        assert context["filter"] == '{"status":"open"}'
        assert ("count_documents", "shop", "orders") in store.calls

    async def test_database_count_skips_system_collections(
        self, store: Any, make_request: RequestFactory
    ) -> None:
        context = await store_context(store, make_request("/shop"))
        assert context["total_items"] == 2
        assert context["items"][0] == {"value": "_meta", "is_string": True}
        assert context["can_create_collections"] is True

    async def test_root_count_skips_system_databases(
        self, store: Any, make_request: RequestFactory
    ) -> None:
        context = await store_context(store, make_request("/"))
        assert context["total_items"] == 3
        assert context["can_create_databases"] is True

    async def test_document(self, store: Any, make_request: RequestFactory) -> None:
        request = make_request("/shop/customers/7", query="id_type=NUMBER")
        context = await store_context(store, request)
        assert context["total_items"] == 1
        assert context["total_pages"] == 1
        assert context["items"] == [
            {
                "data": {"_id": 7, "name": "Grace"},
                "is_string": False,
                "_id": {"value": "7", "type": "NUMBER", "needs_param": True},
            }
        ]
        assert context["resource_url"] == "/shop/customers/7"
        assert context["collection_url"] == "/shop/customers"

    async def test_tenant_root(self, store: Any, make_request: RequestFactory) -> None:
        request = make_request("/", headers={"host": "acme.example.com"}, query="pagesize=10")
        context = await store_context(store, request, mounts=(Mount("/", "*"), Mount("/t", "{host[0]}")))
        assert [i["value"] for i in context["items"]] == ["acme", "admin", "local"]
        assert context["tenant_id"] == "acme"
        assert context["is_multi_tenant"] is True
        assert context["host_params"]["host[0]"] == "acme"

    def test_default_builders(self, store: Any) -> None:
        builders = default_builders(GLOBALS, AsyncDocumentStore(store))
        assert isinstance(builders[0], StoreContextBuilder)
        assert isinstance(builders[-1], JsonContextBuilder)
        assert len(default_builders(GLOBALS)) == 1
