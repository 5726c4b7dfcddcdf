"""The HTML rendering pipeline.

``HtmlResponseMiddleware`` sits innermost in the middleware chain, right
above the route handler. For clients that want HTML it classifies each
API response and then does one of three things:

- passes it through untouched (API clients, auth challenges, paths with
  no template, 1xx/3xx)
- replaces it with an error page (4xx/5xx, malformed store paths)
- replaces it with a rendered template, honoring ``If-None-Match``

The replacement is built as a new ``Response`` only after every decision
has succeeded. A failed success-path render returns the API response
as it was.
"""

import logging
from collections.abc import Mapping
from typing import Any

from veneer.errors import FragmentNotFound, HTTPError, TemplateRenderError
from veneer.html.caching import negotiate
from veneer.html.classify import AUTH_STATUSES, Disposition, classify
from veneer.html.detect import Capabilities, detect_capabilities
from veneer.html.errors import render_error_page
from veneer.html.handlers.base import ContextBuilder
from veneer.http.request import Request
from veneer.http.response import Response
from veneer.identity import get_identity
from veneer.middleware.protocol import AnyResponse, Next
from veneer.templating.integration import TemplateEngine
from veneer.templating.resolver import ResourceKind, TemplateResolver

logger = logging.getLogger("veneer.html")

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

# API headers that describe the JSON body and would be wrong on the HTML one
_BODY_HEADERS = frozenset({"content-length", "content-encoding", "etag", "content-type"})


def resolution_target(request: Request, response: Response) -> tuple[str, ResourceKind]:
    """Path and kind to resolve full-page templates against.

    Store responses resolve against the canonical ``/db/coll/id`` path so
    templates do not depend on where the store is mounted.
    """
    if response.store is not None:
        ctx = response.store.context
        return ctx.resource_path, ctx.kind
    return request.path, ResourceKind.OTHER


class HtmlResponseMiddleware:
    """Render API responses as HTML for document clients.

    Usage (``App`` installs this automatically when ``html_enabled``)::

        engine = TemplateEngine(env)
        app.add_middleware(HtmlResponseMiddleware(
            engine,
            builders=default_builders(globals_),
            globals_=globals_,
        ))
    """

    __slots__ = ("_builders", "_engine", "_globals", "_max_age", "_resolver", "_response_caching")

    def __init__(
        self,
        engine: TemplateEngine,
        *,
        builders: tuple[ContextBuilder, ...],
        globals_: Mapping[str, Any],
        response_caching: bool = True,
        max_age: int = 5,
    ) -> None:
        if not builders:
            msg = "HtmlResponseMiddleware needs at least one context builder"
            raise ValueError(msg)
        self._engine = engine
        self._resolver = TemplateResolver(engine)
        self._builders = builders
        self._globals = globals_
        self._response_caching = response_caching
        self._max_age = max_age

    @property
    def resolver(self) -> TemplateResolver:
        return self._resolver

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        capabilities = detect_capabilities(request.headers)
        if not capabilities.render_as_document:
            return await next(request)

        try:
            response = await next(request)
        except HTTPError as exc:
            # Raised before a response existed; auth challenges stay with the API
            if exc.status in AUTH_STATUSES:
                raise
            logger.debug("Rendering early error %d for %s", exc.status, request.path)
            return self.error_response(request, exc.status, headers=exc.headers)
        except Exception:
            logger.exception("500 %s %s", request.method, request.path)
            return self.error_response(request, 500)

        return await self.process(request, response, capabilities)

    async def process(
        self,
        request: Request,
        response: Response,
        capabilities: Capabilities,
    ) -> Response:
        """Classify *response* and act on the outcome."""
        path, kind = resolution_target(request, response)
        has_extra = response.store is not None and response.store.context.has_extra_segments

        outcome = classify(
            capabilities,
            response.status,
            has_extra_segments=has_extra,
            find_template=lambda: self._resolver.resolve_full_page(path, kind),
        )

        match outcome.disposition:
            case Disposition.PASS_THROUGH:
                return response
            case Disposition.RENDER_ERROR:
                if has_extra:
                    logger.debug("Extra path segments in %s, rendering 404", request.path)
                return self.error_response(request, outcome.status, headers=_kept_headers(response))
            case Disposition.RENDER_SUCCESS:
                assert outcome.template is not None
                return await self.render_success(request, response, capabilities, outcome.template)

    async def render_success(
        self,
        request: Request,
        response: Response,
        capabilities: Capabilities,
        template: str,
    ) -> Response:
        """Render *template*, or the htmx fragment when a target is given.

        Full pages were resolved against the canonical store path; fragments
        are looked up under the path the client requested.
        """
        target = capabilities.target_id
        if capabilities.is_fragment_call and target:
            try:
                template = self._resolver.require_fragment(request.path, target)
            except FragmentNotFound as exc:
                logger.error("Fragment template not found for %s, target %r", request.path, target)
                return Response(
                    body=str(exc),
                    status=500,
                    content_type=TEXT_CONTENT_TYPE,
                )

        try:
            builder = self.select_builder(response)
            context = await builder.build_context(request, response)
            html = self._engine.render(template, context)
        except TemplateRenderError:
            logger.exception("Template %r failed for %s; sending API response", template, request.path)
            return response
        except Exception:
            logger.exception("Could not build HTML for %s; sending API response", request.path)
            return response

        logger.debug("Rendered %s with template %r", request.path, template)
        rendered = Response(
            body=html,
            status=response.status,
            content_type=HTML_CONTENT_TYPE,
            headers=_kept_headers(response),
        )
        return negotiate(
            rendered,
            rendered.body_bytes,
            if_none_match=request.headers.get("if-none-match"),
            enabled=self._response_caching,
            max_age=self._max_age,
        )

    def select_builder(self, response: Response) -> ContextBuilder:
        """First builder that accepts *response*."""
        for builder in self._builders:
            if builder.can_handle(response):
                return builder
        msg = f"No context builder accepts a {response.status} response"
        raise LookupError(msg)

    def error_response(
        self,
        request: Request,
        status: int,
        *,
        headers: tuple[tuple[str, str], ...] = (),
    ) -> Response:
        """HTML error page for *status*; never raises."""
        identity = get_identity()
        body = render_error_page(
            self._engine,
            status,
            request.path,
            username=identity.name if identity is not None else None,
            globals_=self._globals,
        )
        return Response(body=body, status=status, content_type=HTML_CONTENT_TYPE, headers=headers)


def _kept_headers(response: Response) -> tuple[tuple[str, str], ...]:
    return tuple((k, v) for k, v in response.headers if k.lower() not in _BODY_HEADERS)
