"""Hierarchical template resolution.

Maps a request path onto a template id by probing the template source,
most specific candidate first. Full pages walk from the addressed level
up to the root; htmx fragments get exactly two strict candidates.

Given templates ``a/index`` and ``a/b/c/list``:

    resolve_full_page("/a/b/c", CONTAINER)  -> "a/b/c/list"
    resolve_full_page("/a/b/c", ITEM)       -> "a/index"
    resolve_full_page("/a/b", OTHER)        -> "a/index"
    resolve_full_page("/x", OTHER)          -> None

Existence is checked live on every call. Nothing is cached, so templates
added or removed while the app runs are picked up by the next request.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from veneer.errors import FragmentNotFound

logger = logging.getLogger("veneer.templating")

INDEX = "index"
FRAGMENTS_DIR = "_fragments"


class ResourceKind(Enum):
    """What a request path addresses, for template lookup purposes."""

    ROOT = "root"
    CONTAINER = "container"  # a listing: databases, collections, documents
    ITEM = "item"  # a single document
    OTHER = "other"  # anything not addressed through the store

    @property
    def action(self) -> str | None:
        """Template name tried before ``index`` at each level."""
        match self:
            case ResourceKind.ROOT | ResourceKind.CONTAINER:
                return "list"
            case ResourceKind.ITEM:
                return "view"
            case _:
                return None


class TemplateSource(Protocol):
    """Anything that can say whether a template id exists."""

    def exists(self, name: str) -> bool: ...


@dataclass(frozen=True, slots=True)
class ResolutionRequest:
    """What to resolve: a path, its kind, and an optional fragment target."""

    path: str
    kind: ResourceKind = ResourceKind.OTHER
    target: str | None = None


def _segments(path: str) -> list[str]:
    return [seg for seg in path.split("/") if seg]


def _join(*parts: str) -> str:
    return "/".join(p for p in parts if p)


def full_page_candidates(path: str, kind: ResourceKind) -> Iterator[str]:
    """Yield full-page template ids for *path*, most specific first."""
    segments = _segments(path)
    action = kind.action
    while True:
        level = "/".join(segments)
        if action is not None:
            yield _join(level, action)
        yield _join(level, INDEX)
        if not segments:
            return
        segments.pop()


def fragment_candidates(path: str, target: str) -> Iterator[str]:
    """Yield the (at most two) fragment template ids for *target*."""
    level = "/".join(_segments(path))
    first = _join(level, FRAGMENTS_DIR, target)
    yield first
    root = _join(FRAGMENTS_DIR, target)
    if root != first:
        yield root


class TemplateResolver:
    """Resolve request paths to template ids against a ``TemplateSource``.

    Stateless apart from the source it probes; safe to share across
    concurrent requests.
    """

    __slots__ = ("_source",)

    def __init__(self, source: TemplateSource) -> None:
        self._source = source

    def resolve(self, request: ResolutionRequest) -> str | None:
        """Resolve a fragment when *request* has a target, else a full page."""
        if request.target is not None:
            return self.resolve_fragment(request.path, request.target)
        return self.resolve_full_page(request.path, request.kind)

    def resolve_full_page(self, path: str, kind: ResourceKind = ResourceKind.OTHER) -> str | None:
        """First existing template from *path* up to the root, or ``None``."""
        for candidate in full_page_candidates(path, kind):
            if self._probe(candidate):
                logger.debug("Resolved %s (%s) to template %r", path, kind.value, candidate)
                return candidate
        logger.debug("No template for %s (%s)", path, kind.value)
        return None

    def resolve_fragment(self, path: str, target: str | None) -> str | None:
        """Strict fragment lookup: ``{path}/_fragments/{target}``, then root.

        A blank target resolves to ``None`` without touching the source.
        Ancestors are never searched.
        """
        if target is None or not target.strip():
            return None
        target = target.strip()
        for candidate in fragment_candidates(path, target):
            if self._probe(candidate):
                logger.debug("Resolved fragment %r at %s to %r", target, path, candidate)
                return candidate
        logger.debug("No fragment template for %r at %s", target, path)
        return None

    def require_fragment(self, path: str, target: str | None) -> str:
        """Like ``resolve_fragment`` but a miss is an error.

        Raises:
            FragmentNotFound: neither fragment candidate exists.
        """
        fragment = self.resolve_fragment(path, target)
        if fragment is None:
            raise FragmentNotFound(path, target or "")
        return fragment

    def _probe(self, name: str) -> bool:
        try:
            return bool(self._source.exists(name))
        except Exception:
            logger.warning("Template existence check failed for %r", name, exc_info=True)
            return False
