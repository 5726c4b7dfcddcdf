"""Return value negotiation: whatever a handler returns becomes a Response.

isinstance-based dispatch, checked in order:

1. ``Response``          -> unchanged
2. ``Redirect``          -> empty body, Location header
3. ``str``               -> 200 text/html
4. ``bytes``             -> 200 application/octet-stream
5. ``dict`` / ``list``   -> 200 application/json
6. ``(value, status)``   -> negotiate value, override status
7. ``(value, status, headers)`` -> also add headers
"""

import json as json_module
from typing import Any

from veneer.errors import ConfigurationError
from veneer.http.response import Redirect, Response


def negotiate(value: Any) -> Response:
    """Convert a route handler's return value to a Response."""
    match value:
        case Response():
            return value
        case Redirect():
            return (
                Response(body="")
                .with_status(value.status)
                .with_header("Location", value.url)
                .with_headers(dict(value.headers))
            )
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response(
                body=json_module.dumps(value, default=str),
                content_type="application/json",
            )
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case (inner, int() as status, dict() as headers):
            return negotiate(inner).with_status(status).with_headers(headers)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return a Response, Redirect, str, bytes, dict, list or (value, status) tuple."
            )
            raise ConfigurationError(msg)
