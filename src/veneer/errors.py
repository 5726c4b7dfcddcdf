"""Veneer exception hierarchy.

Shared across the router, the document API, the HTML pipeline and the
ASGI handler so every module raises and catches the same types.
"""

from dataclasses import dataclass


class VeneerError(Exception):
    """Base for all veneer-specific errors."""


class ConfigurationError(VeneerError):
    """Raised when app configuration is invalid.

    Typically caught during ``App._freeze()`` at startup.
    """


class TemplateRenderError(VeneerError):
    """A template could not be loaded or rendered.

    The template engine adapter wraps every kida failure in this type so
    the pipeline can tell rendering problems apart from its own bugs.
    """

    def __init__(self, template_name: str, cause: BaseException | None = None) -> None:
        self.template_name = template_name
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Error rendering template {template_name!r}{detail}")


class FragmentNotFound(VeneerError):  # noqa: N818
    """Strict fragment resolution found no template for an htmx target."""

    def __init__(self, path: str, target: str) -> None:
        self.path = path
        self.target = target
        super().__init__(f"Fragment template not found: {target}")


@dataclass(frozen=True, slots=True)
class HTTPError(VeneerError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, the document API or handlers. The ASGI handler
    turns it into a JSON error body; the HTML pipeline turns it into an
    error page for browsers.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route or resource matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method."""

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
