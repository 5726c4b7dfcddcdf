"""Context builders for the HTML pipeline.

Tried in order; the first whose ``can_handle`` accepts the response
builds the template context. The generic JSON builder is always last.
"""

from collections.abc import Mapping
from typing import Any

from veneer.html.handlers.base import ContextBuilder, base_context
from veneer.html.handlers.json import JsonContextBuilder
from veneer.html.handlers.store import StoreContextBuilder
from veneer.store.client import AsyncDocumentStore


def default_builders(
    globals_: Mapping[str, Any],
    store: AsyncDocumentStore | None = None,
) -> tuple[ContextBuilder, ...]:
    """The standard chain: store builder (when a store is configured), then JSON."""
    builders: list[ContextBuilder] = []
    if store is not None:
        builders.append(StoreContextBuilder(store, globals_))
    builders.append(JsonContextBuilder(globals_))
    return tuple(builders)


__all__ = [
    "ContextBuilder",
    "JsonContextBuilder",
    "StoreContextBuilder",
    "base_context",
    "default_builders",
]
