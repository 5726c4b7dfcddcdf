"""ASGI response sending: a veneer Response becomes two ASGI messages."""

import logging

from veneer._internal.asgi import Send
from veneer.http.response import Response

logger = logging.getLogger("veneer.server")


def body_allowed(status: int) -> bool:
    """Whether *status* may carry a message body (not 1xx, 204 or 304)."""
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Send *response* through ASGI ``send``.

    A 304 (or any bodiless status) goes out with an empty body and
    ``content-length: 0``. For ``HEAD`` the length of the body that GET
    would have sent is kept and the body itself is dropped.
    """
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", response.content_type.encode("latin-1")),
    ]
    for name, value in response.headers:
        if name.lower() in ("content-type", "content-length"):
            continue
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    body = response.body_bytes if body_allowed(response.status) else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    if head:
        body = b""

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
