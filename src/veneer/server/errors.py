"""Error handling for API responses.

Maps HTTPError exceptions and unexpected failures to JSON Responses,
using handlers registered with ``@app.error()`` when there is one. HTML
clients never see these bodies for 4xx/5xx: the HTML pipeline renders
an error page instead (401/403 excepted).
"""

import inspect
import json
import logging
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

from veneer.errors import HTTPError
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.server.negotiation import negotiate

logger = logging.getLogger("veneer.server")


def error_body(status: int, detail: str) -> str:
    """JSON error document: ``{"status", "error", "message"}``."""
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        phrase = "Error"
    return json.dumps({"status": status, "error": phrase, "message": detail or phrase})


def json_error(status: int, detail: str, headers: tuple[tuple[str, str], ...] = ()) -> Response:
    return Response(
        body=error_body(status, detail),
        status=status,
        content_type="application/json",
        headers=headers,
    )


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Invoke a user-registered error handler.

    Error handlers may accept zero, one (request), or two (request, exc)
    arguments, and may be sync or async.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result

    return negotiate(result)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
) -> Response:
    """Map an HTTPError to a Response."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the error status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    return json_error(exc.status, exc.detail, exc.headers)


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(500) or error_handlers.get(type(exc))
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        if response.status == 200:
            response = response.with_status(500)
        return response

    detail = f"{type(exc).__name__}: {exc}" if debug else "Internal Server Error"
    return json_error(500, detail)
