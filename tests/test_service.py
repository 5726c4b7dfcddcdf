"""Tests for veneer.store.service: the read-only JSON document API."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from veneer.config import Mount
from veneer.errors import HTTPError, NotFound
from veneer.http.request import Request
from veneer.store.client import AsyncDocumentStore
from veneer.store.mounts import MountResolver, StoreResourceType
from veneer.store.service import DocumentService, parse_listing_query, parse_sort

type RequestFactory = Callable[..., Request]


@pytest.fixture
def service(store: Any) -> DocumentService:
    return DocumentService(
        AsyncDocumentStore(store),
        MountResolver((Mount("/", "*"),)),
        default_pagesize=2,
        max_pagesize=10,
    )


class TestParseSort:
    def test_shorthand(self) -> None:
        assert parse_sort("qty,-item") == [("qty", 1), ("item", -1)]

    def test_json(self) -> None:
        assert parse_sort('{"qty": -1, "item": 1}') == [("qty", -1), ("item", 1)]

    def test_empty(self) -> None:
        assert parse_sort(None) is None
        assert parse_sort("  ") is None

    def test_invalid_json(self) -> None:
        with pytest.raises(HTTPError) as info:
            parse_sort("{nope")
        assert info.value.status == 400


class TestParseListingQuery:
    def test_defaults(self, make_request: RequestFactory) -> None:
        query = parse_listing_query(make_request("/shop/orders"), 100, 1000)
        assert (query.page, query.pagesize, query.skip) == (1, 100, 0)
        assert query.filter is None
        assert query.projection is None

    def test_paging(self, make_request: RequestFactory) -> None:
        query = parse_listing_query(make_request(query="page=3&pagesize=20"), 100, 1000)
        assert (query.page, query.pagesize, query.skip) == (3, 20, 40)

    def test_page_below_one(self, make_request: RequestFactory) -> None:
        assert parse_listing_query(make_request(query="page=0"), 100, 1000).page == 1

    def test_pagesize_is_clamped(self, make_request: RequestFactory) -> None:
        assert parse_listing_query(make_request(query="pagesize=5000"), 100, 1000).pagesize == 1000

    @pytest.mark.parametrize("raw", ["0", "-1"])
    def test_non_positive_pagesize(self, make_request: RequestFactory, raw: str) -> None:
        with pytest.raises(HTTPError) as info:
            parse_listing_query(make_request(query=f"pagesize={raw}"), 100, 1000)
        assert info.value.status == 400

    def test_filter_and_keys(self, make_request: RequestFactory) -> None:
        request = make_request(
            query='filter={"status":"open"}&keys={"item":1}&keys={"qty":1}'
        )
        query = parse_listing_query(request, 100, 1000)
        assert query.filter == {"status": "open"}
        assert query.projection == {"item": 1, "qty": 1}

    @pytest.mark.parametrize("raw", ["{bad", "[1, 2]"])
    def test_invalid_filter(self, make_request: RequestFactory, raw: str) -> None:
        with pytest.raises(HTTPError) as info:
            parse_listing_query(make_request(query=f"filter={raw}"), 100, 1000)
        assert info.value.status == 400


class TestDocumentService:
    async def test_root_lists_databases(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        response = await service(make_request("/", query="pagesize=10"))
        assert response.content_type == "application/json"
        assert json.loads(response.text) == ["acme", "admin", "globex", "local", "shop"]
        assert response.store is not None
        assert response.store.context.resource_type is StoreResourceType.ROOT

    async def test_database_lists_collections(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        response = await service(make_request("/shop", query="pagesize=10"))
        assert json.loads(response.text) == ["_meta", "customers", "orders", "system.views"]

    async def test_unknown_database(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        with pytest.raises(NotFound):
            await service(make_request("/nope"))

    async def test_unknown_collection(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        with pytest.raises(NotFound):
            await service(make_request("/shop/nope"))

    async def test_collection_first_page(
        self, service: DocumentService, make_request: RequestFactory, order_ids: tuple
    ) -> None:
        response = await service(make_request("/shop/orders"))
        docs = json.loads(response.text)
        assert [d["item"] for d in docs] == ["lamp", "desk"]
        assert docs[0]["_id"] == {"$oid": str(order_ids[0])}
        assert response.store is not None
        assert response.store.page == 1
        assert response.store.pagesize == 2
        assert response.store.is_listing

    async def test_collection_second_page(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        response = await service(make_request("/shop/orders", query="page=2"))
        assert [d["item"] for d in json.loads(response.text)] == ["chair"]

    async def test_filter_sort_and_keys(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        request = make_request(
            "/shop/orders",
            query='filter={"status":"open"}&sort=-qty&keys={"item":1}',
        )
        response = await service(request)
        docs = json.loads(response.text)
        assert [d["item"] for d in docs] == ["chair", "lamp"]
        assert all(set(d) == {"_id", "item"} for d in docs)
        assert response.store is not None
        assert response.store.filter == {"status": "open"}
        assert response.store.query["sort"] == "-qty"

    async def test_document_by_object_id(
        self, service: DocumentService, make_request: RequestFactory, order_ids: tuple
    ) -> None:
        response = await service(make_request(f"/shop/orders/{order_ids[1]}"))
        doc = json.loads(response.text)
        assert doc["item"] == "desk"
        assert response.store is not None
        assert response.store.is_listing is False

    async def test_document_by_typed_id(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        response = await service(make_request("/shop/customers/7", query="id_type=NUMBER"))
        assert json.loads(response.text)["name"] == "Grace"

    async def test_document_by_string_id(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        response = await service(make_request("/shop/customers/ada"))
        assert json.loads(response.text)["name"] == "Ada"

    async def test_missing_document(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        with pytest.raises(NotFound):
            await service(make_request("/shop/customers/7"))

    async def test_bad_id_type(
        self, service: DocumentService, make_request: RequestFactory
    ) -> None:
        with pytest.raises(HTTPError) as info:
            await service(make_request("/shop/customers/x", query="id_type=NUMBER"))
        assert info.value.status == 400

    async def test_no_mount(self, store: Any, make_request: RequestFactory) -> None:
        service = DocumentService(AsyncDocumentStore(store), MountResolver((Mount("/api", "*"),)))
        with pytest.raises(NotFound):
            await service(make_request("/elsewhere"))
