"""Authenticated identity: who is making the current request.

veneer does not authenticate anyone. The host (or ``IdentityMiddleware``
with a user-supplied loader) puts an ``Identity`` in a ContextVar, and the
HTML pipeline reads it to fill ``is_authenticated``, ``username`` and
``roles`` in template context.

Usage::

    from veneer.identity import Identity, IdentityMiddleware

    async def load(request):
        token = request.headers.get("authorization")
        return await sessions.lookup(token)  # Identity | None

    app.add_middleware(IdentityMiddleware(load))
"""

from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass

from veneer._internal.invoke import invoke
from veneer.http.request import Request
from veneer.middleware.protocol import AnyResponse, Next


@dataclass(frozen=True, slots=True)
class Identity:
    """An authenticated principal and its roles."""

    name: str
    roles: frozenset[str] = frozenset()


_identity_var: ContextVar[Identity | None] = ContextVar("veneer_identity", default=None)


def get_identity() -> Identity | None:
    """Return the identity for the current request, or ``None``."""
    return _identity_var.get()


type IdentityLoader = Callable[[Request], Identity | None | Awaitable[Identity | None]]


class IdentityMiddleware:
    """Resolve the request's identity once and expose it via ``get_identity()``.

    The loader may be sync or async and returns ``None`` for anonymous
    requests. Add this middleware before anything that reads the identity.
    """

    __slots__ = ("_load",)

    def __init__(self, load: IdentityLoader) -> None:
        self._load = load

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        identity = await invoke(self._load, request)
        token = _identity_var.set(identity)
        try:
            return await next(request)
        finally:
            _identity_var.reset(token)
