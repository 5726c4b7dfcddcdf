"""Tests for veneer.identity: the per-request identity ContextVar."""

from typing import Any

from veneer.http.response import Response
from veneer.identity import Identity, IdentityMiddleware, get_identity


class TestIdentityMiddleware:
    async def test_sync_loader(self, make_request: Any) -> None:
        seen: list[Identity | None] = []

        async def next(request):
            seen.append(get_identity())
            return Response(body="ok")

        mw = IdentityMiddleware(lambda request: Identity("ada", frozenset({"admin"})))
        await mw(make_request(), next)
        assert seen == [Identity("ada", frozenset({"admin"}))]

    async def test_async_loader_from_header(self, make_request: Any) -> None:
        async def load(request):
            name = request.headers.get("x-user")
            return Identity(name) if name else None

        seen: list[Identity | None] = []

        async def next(request):
            seen.append(get_identity())
            return Response(body="ok")

        mw = IdentityMiddleware(load)
        await mw(make_request(headers={"x-user": "grace"}), next)
        await mw(make_request(), next)
        assert seen == [Identity("grace"), None]

    async def test_reset_after_request(self, make_request: Any) -> None:
        async def next(request):
            return Response(body="ok")

        await IdentityMiddleware(lambda request: Identity("ada"))(make_request(), next)
        assert get_identity() is None
