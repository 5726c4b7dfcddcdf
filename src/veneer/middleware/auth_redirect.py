"""Send browsers that fail authentication to the login page.

API clients keep getting the 401 challenge. Clients that want HTML get a
``302`` to the login URI with the original path in a query parameter,
the ``WWW-Authenticate`` header removed, and the auth cookie cleared so
a stale token cannot cause a redirect loop.
"""

import logging
from urllib.parse import quote

from veneer.errors import ConfigurationError, HTTPError
from veneer.html.detect import detect_capabilities
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.middleware.protocol import AnyResponse, Next

logger = logging.getLogger("veneer.html")


class LoginRedirect:
    """Middleware that turns 401s into login redirects for HTML clients.

    Usage::

        app.add_middleware(LoginRedirect("/login", exclude_paths=("/api/",)))

    Paths starting with any of *exclude_paths* keep their 401.
    """

    __slots__ = ("_cookie", "_exclude", "_login_uri", "_param")

    def __init__(
        self,
        login_uri: str,
        *,
        redirect_param: str = "redirect",
        auth_cookie: str = "auth_token",
        exclude_paths: tuple[str, ...] = (),
    ) -> None:
        if not login_uri:
            msg = "LoginRedirect requires a login_uri"
            raise ConfigurationError(msg)
        self._login_uri = login_uri
        self._param = redirect_param
        self._cookie = auth_cookie
        self._exclude = exclude_paths

    def location(self, path: str) -> str:
        separator = "&" if "?" in self._login_uri else "?"
        return f"{self._login_uri}{separator}{self._param}={quote(path, safe='/')}"

    def applies_to(self, request: Request) -> bool:
        if not detect_capabilities(request.headers).render_as_document:
            return False
        if any(request.path.startswith(prefix) for prefix in self._exclude):
            logger.debug("Not redirecting excluded path %s", request.path)
            return False
        return True

    def redirect(self, request: Request, headers: tuple[tuple[str, str], ...] = ()) -> Response:
        logger.debug("Redirecting %s to %s", request.path, self._login_uri)
        response = Response(body="", status=302, headers=headers)
        return (
            response.without_header("WWW-Authenticate")
            .with_replaced_header("Location", self.location(request.path))
            .with_header("Set-Cookie", f"{self._cookie}=; Max-Age=0; Path=/; HttpOnly; SameSite=Lax")
        )

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        try:
            response = await next(request)
        except HTTPError as exc:
            if exc.status == 401 and self.applies_to(request):
                return self.redirect(request, exc.headers)
            raise
        if response.status == 401 and self.applies_to(request):
            return self.redirect(request, response.headers)
        return response
