"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    LoginRedirect -- Send browsers that hit a 401 to the login page
    IdentityMiddleware -- Populate the request identity (see veneer.identity)

The HTML rendering pipeline itself lives in ``veneer.html`` and is
installed by ``App`` when ``AppConfig.html_enabled`` is set.
"""

from veneer.middleware.auth_redirect import LoginRedirect
from veneer.middleware.protocol import AnyResponse, Middleware, Next

__all__ = [
    "AnyResponse",
    "LoginRedirect",
    "Middleware",
    "Next",
]
