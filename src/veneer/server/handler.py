"""ASGI handler: translates ASGI scope/messages to veneer types.

The only component that touches raw ASGI directly. Builds a typed
Request from the scope, runs it through the middleware chain and the
router, and sends the resulting Response.
"""

from collections.abc import Callable
from typing import Any

from veneer._internal.asgi import Receive, Scope, Send
from veneer._internal.invoke import invoke
from veneer.errors import HTTPError
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.middleware.protocol import AnyResponse, Next
from veneer.routing.router import Router
from veneer.server.errors import handle_http_error, handle_internal_error
from veneer.server.negotiation import negotiate
from veneer.server.sender import send_response


def build_chain(
    dispatch: Next,
    middleware: tuple[Callable[..., Any], ...],
) -> Next:
    """Wrap *dispatch* so that ``middleware[0]`` runs first."""
    handler = dispatch
    for mw in reversed(middleware):

        async def step(req: Request, _mw: Any = mw, _next: Next = handler) -> Response:
            return await _mw(req, _next)

        handler = step
    return handler


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    async def dispatch(req: Request) -> AnyResponse:
        match = router.match(req.method, req.path)
        result = await invoke(match.route.handler, req.with_path_params(match.path_params))
        return negotiate(result)

    try:
        response = await build_chain(dispatch, middleware)(request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    await send_response(response, send, head=request.method == "HEAD")
