"""The request as the pipeline sees it.

Everything is read from the ASGI scope once and frozen. The body is
the only lazy part: the document API never reads it, user routes may.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any

from veneer._internal.asgi import Receive, Scope
from veneer.http.headers import Headers
from veneer.http.query import QueryParams


async def _no_body() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path_params`` is empty until the router has matched; the handler
    receives a copy made with ``with_path_params``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str] = field(default_factory=dict)
    client: tuple[str, int] | None = None
    _receive: Receive = _no_body
    _body: list[bytes] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            client=tuple(client) if client else None,
            _receive=receive,
        )

    @property
    def is_htmx(self) -> bool:
        return "hx-request" in self.headers

    @property
    def htmx_target(self) -> str | None:
        """``HX-Target`` as sent, ``#`` included."""
        return self.headers.get("hx-target")

    @property
    def url(self) -> str:
        """Path plus query string."""
        if not self.query.raw:
            return self.path
        return f"{self.path}?{self.query.raw.decode('latin-1')}"

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        return replace(self, path_params=path_params)

    async def body(self) -> bytes:
        """The whole body. ASGI ``receive`` is drained on the first call only."""
        if not self._body:
            chunks: list[bytes] = []
            more = True
            while more:
                message = await self._receive()
                chunks.append(message.get("body", b""))
                more = message.get("more_body", False)
            self._body.append(b"".join(chunks))
        return self._body[0]

    async def json(self) -> Any:
        return json.loads(await self.body())
