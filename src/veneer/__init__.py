"""veneer: a browsable HTML face for JSON document APIs.

Every API response can also be rendered as a web page. Browsers get a
template picked by walking the request path, htmx requests get the
matching fragment, and API clients get the JSON untouched.

Basic usage::

    from veneer import App, AppConfig, Mount
    from veneer.store import MongoDocumentStore

    store = MongoDocumentStore.connect("mongodb://localhost:27017")
    app = App(AppConfig(mounts=(Mount("/", "*"),)), store=store)

With ``templates/shop/orders/list.html`` in place, a browser visiting
``/shop/orders`` sees that template; ``curl`` sees the JSON.
"""

__version__ = "0.1.0"
__all__ = [
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "Identity",
    "MethodNotAllowed",
    "Middleware",
    "Mount",
    "Next",
    "NotFound",
    "Redirect",
    "Request",
    "Response",
    "VeneerError",
    "get_identity",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import veneer`` fast while providing a clean top-level API.
    """
    if name == "App":
        from veneer.app import App

        return App

    if name in ("AppConfig", "Mount"):
        from veneer import config as _config

        return getattr(_config, name)

    if name == "Request":
        from veneer.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from veneer.http import response as _resp

        return getattr(_resp, name)

    if name in ("AnyResponse", "Middleware", "Next"):
        from veneer.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("Identity", "get_identity"):
        from veneer import identity as _identity

        return getattr(_identity, name)

    if name in ("VeneerError", "ConfigurationError", "HTTPError", "MethodNotAllowed", "NotFound"):
        from veneer import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
