"""Client capability detection.

Decides from request headers alone whether the client wants an HTML
document and whether it is an htmx partial-update call.
"""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Capabilities:
    """What the client can consume."""

    render_as_document: bool
    is_fragment_call: bool = False
    target_id: str | None = None


def _accept_values(headers: Mapping[str, str]) -> str:
    getter = getattr(headers, "get_list", None)
    if getter is not None:
        return ",".join(getter("accept"))
    return headers.get("accept", "") or ""


def detect_capabilities(headers: Mapping[str, str]) -> Capabilities:
    """Inspect ``Accept``, ``HX-Request`` and ``HX-Target``.

    A fragment call is an ``HX-Request`` whose ``Accept`` includes ``*/*``
    (htmx's default). A client wants a document when ``Accept`` lists
    ``text/html`` or when it is a fragment call. The htmx target is
    reported without its leading ``#``.
    """
    accept = _accept_values(headers)
    is_fragment = headers.get("hx-request") is not None and "*/*" in accept
    render = "text/html" in accept or is_fragment

    target = headers.get("hx-target")
    if target is not None:
        target = target.strip().removeprefix("#") or None

    return Capabilities(
        render_as_document=render,
        is_fragment_call=is_fragment,
        target_id=target,
    )
