"""Context builder protocol and the context every builder starts from."""

from collections.abc import Mapping
from typing import Any, Protocol

from veneer.html.detect import detect_capabilities
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.identity import get_identity


class ContextBuilder(Protocol):
    """Turns an API response into template context.

    Builders are tried in order and the first whose ``can_handle``
    returns True builds the context.
    """

    def can_handle(self, response: Response) -> bool: ...

    async def build_context(self, request: Request, response: Response) -> dict[str, Any]: ...


def base_context(request: Request, globals_: Mapping[str, Any]) -> dict[str, Any]:
    """Globals, then identity, request path and htmx state.

    Builders add their own keys on top; later keys win.
    """
    identity = get_identity()
    capabilities = detect_capabilities(request.headers)
    return {
        **globals_,
        "is_authenticated": identity is not None,
        "username": identity.name if identity is not None else None,
        "roles": sorted(identity.roles) if identity is not None else [],
        "path": request.path,
        "is_fragment_request": capabilities.is_fragment_call,
        "fragment_target": capabilities.target_id,
    }
