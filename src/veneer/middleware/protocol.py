"""The middleware contract.

Middleware wraps everything below it in the chain: it receives the
request and ``next``, and returns whatever response it decides on::

    async def mw(request: Request, next: Next) -> AnyResponse: ...

Functions and objects with ``__call__`` both qualify.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from veneer.http.request import Request
from veneer.http.response import Response

type AnyResponse = Response

type Next = Callable[[Request], Awaitable[AnyResponse]]


class Middleware(Protocol):
    """Structural type of a middleware.

    Example, tagging rendered pages with the app version::

        async def stamp(request: Request, next: Next) -> AnyResponse:
            response = await next(request)
            if response.content_type.startswith("text/html"):
                return response.with_header("X-App-Version", VERSION)
            return response

    Middleware added with ``App.add_middleware`` runs outside the HTML
    pipeline, so it sees the rendered page rather than the JSON.
    """

    async def __call__(self, request: Request, next: Next) -> AnyResponse: ...
