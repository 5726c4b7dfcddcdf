"""Conditional caching of rendered HTML.

With caching on, each render gets a strong ETag derived from its bytes;
a request whose ``If-None-Match`` already names that ETag gets a bodiless
304. With caching off, every render carries directives that forbid
storing it.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from veneer.http.response import Response

NO_CACHE_HEADERS = (
    ("Cache-Control", "no-cache, no-store, must-revalidate"),
    ("Pragma", "no-cache"),
    ("Expires", "0"),
)


@dataclass(frozen=True, slots=True)
class CacheValidator:
    """Fingerprint of a rendered body plus its freshness lifetime."""

    fingerprint: str
    max_age: int

    @classmethod
    def for_body(cls, body: bytes, max_age: int) -> CacheValidator:
        digest = hashlib.blake2b(body, digest_size=8).hexdigest()
        return cls(fingerprint=digest, max_age=max_age)

    @property
    def etag(self) -> str:
        return f'"{self.fingerprint}"'

    @property
    def cache_control(self) -> str:
        return f"private, max-age={self.max_age}, must-revalidate"


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """True when an ``If-None-Match`` header value names *etag*.

    Accepts comma-separated lists, ``*`` and weak ``W/`` forms.
    """
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.removeprefix("W/") == etag:
            return True
    return False


def merge_vary(existing: list[str], value: str) -> str:
    """Add *value* to a ``Vary`` header, keeping what is already there."""
    tokens: list[str] = []
    for header in existing:
        tokens.extend(t.strip() for t in header.split(",") if t.strip())
    if not any(t.lower() == value.lower() for t in tokens):
        tokens.append(value)
    return ", ".join(tokens)


def negotiate(
    response: Response,
    body: bytes,
    *,
    if_none_match: str | None,
    enabled: bool,
    max_age: int,
) -> Response:
    """Attach cache headers to a rendered *response*, or turn it into a 304.

    *body* is the rendered document; *response* already carries it along
    with the status and content type of the render.
    """
    if not enabled:
        for name, value in NO_CACHE_HEADERS:
            response = response.with_replaced_header(name, value)
        return response

    validator = CacheValidator.for_body(body, max_age)

    if etag_matches(if_none_match, validator.etag):
        return (
            response.with_status(304)
            .with_body(b"")
            .with_replaced_header("ETag", validator.etag)
            .with_replaced_header("Cache-Control", validator.cache_control)
        )

    vary = merge_vary(response.header_list("Vary"), "Accept-Encoding")
    return (
        response.with_replaced_header("ETag", validator.etag)
        .with_replaced_header("Cache-Control", validator.cache_control)
        .with_replaced_header("Vary", vary)
    )
