"""Login page model.

veneer does not check credentials. It serves ``GET {login_uri}`` as a
small JSON model that a ``login`` template (or a client script) turns
into a sign-in form, and it puts the login endpoints into the global
template context so every page can link to them.

    GET /login?redirect=/shop/orders&error=expired

    {"redirect": "/shop/orders", "login_uri": "/login",
     "roles_endpoint": "/roles", "error": "expired"}
"""

import json
from collections.abc import Callable
from typing import Any

from veneer.config import AppConfig
from veneer.html.caching import NO_CACHE_HEADERS
from veneer.http.request import Request
from veneer.http.response import Response


def login_globals(config: AppConfig) -> dict[str, Any]:
    """Template globals describing the login endpoints."""
    if config.login_uri is None:
        return {}
    return {
        "login_uri": config.login_uri,
        "roles_endpoint": config.roles_endpoint,
    }


def login_model(request: Request, config: AppConfig) -> dict[str, Any]:
    redirect = request.query.get(config.login_redirect_param) or config.login_default_redirect
    model: dict[str, Any] = {
        "redirect": redirect,
        "login_uri": config.login_uri,
        "roles_endpoint": config.roles_endpoint,
    }
    error = request.query.get("error")
    if error:
        model["error"] = error
    return model


def login_page(config: AppConfig) -> Callable[[Request], Response]:
    """Build the ``GET {login_uri}`` handler for *config*."""

    def handler(request: Request) -> Response:
        response = Response(
            body=json.dumps(login_model(request, config)),
            content_type="application/json",
        )
        return response.with_headers(dict(NO_CACHE_HEADERS))

    return handler
