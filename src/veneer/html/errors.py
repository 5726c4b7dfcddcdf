"""HTML error pages for document clients.

Renders the ``error`` template with the status and request path. If that
template is missing or fails, a minimal built-in page is used instead, so
producing an error page never raises.
"""

import html
import logging
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from veneer.errors import TemplateRenderError
from veneer.templating.integration import TemplateEngine

logger = logging.getLogger("veneer.html")

ERROR_TEMPLATE = "error"


def status_message(status: int) -> str:
    """Standard reason phrase for *status*, or ``"Error"``."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def fallback_error_page(status: int, message: str) -> str:
    """Built-in error page used when the ``error`` template cannot render."""
    message = html.escape(message)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="UTF-8">\n'
        f"<title>Error {status}</title>\n"
        "</head>\n"
        "<body>\n"
        f"<h1>Error {status}</h1>\n"
        f"<p>{message}</p>\n"
        "<p>An error occurred while processing your request.</p>\n"
        "</body>\n"
        "</html>\n"
    )


def error_context(
    status: int,
    path: str,
    username: str | None,
    globals_: Mapping[str, Any],
) -> dict[str, Any]:
    return {
        **globals_,
        "status_code": status,
        "status_message": status_message(status),
        "path": path,
        "username": username,
    }


def render_error_page(
    engine: TemplateEngine,
    status: int,
    path: str,
    *,
    username: str | None = None,
    globals_: Mapping[str, Any] | None = None,
) -> str:
    """Render the error page for *status* at *path*."""
    context = error_context(status, path, username, globals_ or {})
    if engine.exists(ERROR_TEMPLATE):
        try:
            return engine.render(ERROR_TEMPLATE, context)
        except TemplateRenderError:
            logger.exception("Error template failed for %d %s", status, path)
    else:
        logger.debug("No %r template, using built-in page for %d", ERROR_TEMPLATE, status)
    return fallback_error_page(status, context["status_message"])
