"""Built-in veneer template filters.

Auto-registered on every veneer kida Environment. They cover the path
arithmetic and JSON display that document-browsing templates need.
"""

import base64
import datetime
import decimal
import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from veneer.store.values import build_document_url


def build_path(base: Any, segment: Any = "") -> str:
    """Append one segment to a path.

    Example:
        {{ path | build_path(coll) }}  → "/shop/orders"   (path "/shop")
        {{ "/" | build_path(db) }}     → "/shop"

    """
    base = "" if base is None else str(base)
    segment = "" if segment is None else str(segment)
    if not base or base == "/":
        return f"/{segment}"
    return f"{base}/{segment}"


def parent_path(path: Any) -> str | None:
    """Drop the last segment of a path; the root is its own parent.

    Example:
        {{ "/shop/orders/42" | parent_path }}  → "/shop/orders"

    """
    if path is None:
        return None
    path = str(path)
    if not path or path == "/":
        return "/"
    path = path.removesuffix("/")
    last = path.rfind("/")
    if last <= 0:
        return "/"
    return path[:last]


def strip_trailing_slash(path: Any) -> str | None:
    """Remove a single trailing slash, keeping ``/`` itself."""
    if path is None:
        return None
    path = str(path)
    if len(path) <= 1:
        return path
    return path.removesuffix("/")


def _json_default(value: Any) -> Any:
    match value:
        case datetime.datetime() | datetime.date():
            return value.isoformat()
        case decimal.Decimal():
            return str(value)
        case bytes():
            return base64.b64encode(value).decode("ascii")
        case set() | frozenset():
            return sorted(value, key=str)
        case _:
            return str(value)


def to_json(value: Any, pretty: bool = True) -> str:
    """Serialize a context value as JSON for display.

    Values the ``json`` module cannot encode (dates, decimals, binary)
    are written as strings. The result is a plain string, so autoescape
    still applies.

    Example:
        <pre>{{ item.data | to_json }}</pre>

    """
    return json.dumps(
        value,
        indent=2 if pretty else None,
        ensure_ascii=False,
        default=_json_default,
    )


def doc_url(base: Any, item_id: Any) -> str:
    """Link to a document under a collection path.

    Accepts either a raw ``_id`` value or the ``{value, type, needs_param}``
    descriptor placed on each listed item, and appends ``id_type`` when
    the id is not an ObjectId.

    Example:
        <a href="{{ resource_url | doc_url(item._id) }}">open</a>

    """
    base = "" if base is None else str(base)
    if isinstance(item_id, Mapping) and "value" in item_id:
        url = f"{base.rstrip('/')}/{quote(str(item_id['value']), safe='')}"
        if item_id.get("needs_param") and item_id.get("type"):
            url += f"?id_type={item_id['type']}"
        return url
    return build_document_url(base, item_id)


BUILTIN_FILTERS: dict[str, Any] = {
    "build_path": build_path,
    "parent_path": parent_path,
    "strip_trailing_slash": strip_trailing_slash,
    "to_json": to_json,
    "doc_url": doc_url,
}
