"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable by convention,
built incrementally by design.

Immutability is what lets the HTML pipeline promise that a failed render
leaves the API response untouched: it only ever swaps in a new object
once every decision has been made.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from veneer.store.service import StoreResult


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.

    ``store`` carries the native document-store payload and addressing
    context when the response was produced by the document API. It is
    never serialized; the HTML pipeline reads it to build template
    context.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    store: StoreResult | None = None

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_body(self, body: str | bytes) -> Response:
        """Return a new Response with a different body."""
        return replace(self, body=body)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_replaced_header(self, name: str, value: str) -> Response:
        """Return a new Response where *name* has exactly one value."""
        return self.without_header(name).with_header(name, value)

    def without_header(self, name: str) -> Response:
        """Return a new Response with every *name* header removed."""
        lower = name.lower()
        return replace(
            self,
            headers=tuple((k, v) for k, v in self.headers if k.lower() != lower),
        )

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_store(self, store: StoreResult) -> Response:
        """Return a new Response carrying a document-store payload."""
        return replace(self, store=store)

    # -- Header lookup --

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of a response header (case-insensitive)."""
        lower = name.lower()
        for key, value in self.headers:
            if key.lower() == lower:
                return value
        return default

    def header_list(self, name: str) -> list[str]:
        """Return every value of a response header (case-insensitive)."""
        lower = name.lower()
        return [value for key, value in self.headers if key.lower() == lower]

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class Redirect:
    """A redirect response."""

    url: str
    status: int = 302
    headers: tuple[tuple[str, str], ...] = ()
