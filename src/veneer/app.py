"""veneer application class.

Mutable during setup (route registration, middleware, filters).
Frozen at runtime when ``__call__()`` is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from kida import Environment

from veneer._internal.asgi import Receive, Scope, Send
from veneer.config import AppConfig
from veneer.errors import ConfigurationError
from veneer.html.handlers import default_builders
from veneer.html.middleware import HtmlResponseMiddleware
from veneer.login import login_globals, login_page
from veneer.middleware.auth_redirect import LoginRedirect
from veneer.middleware.protocol import Middleware
from veneer.routing.route import Route
from veneer.routing.router import Router
from veneer.server.handler import handle_request
from veneer.store.client import AsyncDocumentStore, DocumentStore
from veneer.store.mounts import MountResolver
from veneer.store.service import DocumentService
from veneer.templating.integration import TemplateEngine, configure_environment, create_environment

logger = logging.getLogger("veneer.server")


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Callable[..., Any]
    methods: list[str] | None
    name: str | None


class App:
    """The veneer application.

    Serves the read-only document API for each configured mount plus any
    routes registered with ``@app.route``, and renders every response as
    HTML for browsers through the template pipeline.

    Usage::

        store = MongoDocumentStore.connect("mongodb://localhost:27017")
        app = App(AppConfig(template_dir="templates"), store=store)

        @app.route("/status")
        def status(request):
            return {"ok": True}

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so that exactly
        one thread compiles the app, even when several ASGI workers hit
        ``__call__()`` on first request.
    """

    __slots__ = (
        "_custom_kida_env",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_globals",
        "_kida_env",
        "_middleware",
        "_middleware_list",
        "_pending_routes",
        # Compiled state (populated by _freeze)
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "_store",
        "_template_filters",
        "_template_globals",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: DocumentStore | None = None,
        kida_env: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, Callable[..., Any]] = {}
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._custom_kida_env: Environment | None = kida_env
        self._store: AsyncDocumentStore | None = (
            AsyncDocumentStore(store) if store is not None else None
        )

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()
        self._kida_env: Environment | None = None
        self._globals: MappingProxyType[str, Any] = MappingProxyType({})

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters
                and ``{param:path}`` to capture the rest of the path.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._pending_routes.append(_PendingRoute(path, func, methods, name))
            return func

        return decorator

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register an API error handler via decorator.

        Browsers still get the HTML error page for 4xx/5xx statuses.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline.

        User middleware runs outside the HTML pipeline, so it sees the
        rendered response.
        """
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Compiled state --

    @property
    def store(self) -> AsyncDocumentStore | None:
        return self._store

    @property
    def template_globals(self) -> MappingProxyType[str, Any]:
        """The read-only global template context. Empty until frozen."""
        return self._globals

    @property
    def kida_env(self) -> Environment | None:
        return self._kida_env

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup so configuration errors surface before
        the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config
        self._validate_config()

        # 1. Global template context, read-only from here on
        globals_: dict[str, Any] = {
            "version": config.version,
            "build_time": config.build_time,
        }
        globals_.update(login_globals(config))
        globals_.update(config.template_globals)
        globals_.update(self._template_globals)
        self._globals = MappingProxyType(globals_)

        # 2. Route table: user routes, login page, then one catch-all per mount
        router = Router()
        for pending in self._pending_routes:
            methods = frozenset(m.upper() for m in (pending.methods or ["GET"]))
            router.add(Route(pending.path, pending.handler, methods, pending.name))

        if config.login_uri is not None and config.login_uri.startswith("/"):
            router.add(Route(config.login_uri, login_page(config), frozenset({"GET"}), "login"))

        if self._store is not None:
            resolver = MountResolver(config.mounts)
            service = DocumentService(
                self._store,
                resolver,
                default_pagesize=config.default_pagesize,
                max_pagesize=config.max_pagesize,
            )
            for mount in config.mounts:
                where = mount.where.rstrip("/")
                router.add(Route(f"{where}/{{rest:path}}", service, frozenset({"GET"})))
                logger.debug("Mounted %r at %s", mount.what, mount.where)
        router.compile()
        self._router = router

        # 3. kida environment, custom or built from config
        if self._custom_kida_env is not None:
            self._kida_env = self._custom_kida_env
            configure_environment(self._kida_env, self._template_filters, self._globals)
        else:
            self._kida_env = create_environment(config, self._template_filters, self._globals)

        # 4. Middleware: login redirect outermost, HTML pipeline innermost
        middleware_list: list[Callable[..., Any]] = []
        if config.login_uri is not None:
            middleware_list.append(
                LoginRedirect(
                    config.login_uri,
                    redirect_param=config.login_redirect_param,
                    auth_cookie=config.auth_cookie,
                    exclude_paths=config.login_exclude_paths,
                )
            )
        middleware_list.extend(self._middleware_list)
        if config.html_enabled:
            middleware_list.append(
                HtmlResponseMiddleware(
                    TemplateEngine(self._kida_env, suffix=config.template_suffix),
                    builders=default_builders(self._globals, self._store),
                    globals_=self._globals,
                    response_caching=config.response_caching,
                    max_age=config.max_age,
                )
            )
        self._middleware = tuple(middleware_list)

        self._frozen = True

    def _validate_config(self) -> None:
        config = self.config
        problems: list[str] = []
        if config.max_age < 0:
            problems.append(f"max_age must be >= 0, got {config.max_age}")
        if config.default_pagesize < 1:
            problems.append(f"default_pagesize must be >= 1, got {config.default_pagesize}")
        if config.max_pagesize < config.default_pagesize:
            problems.append(
                f"max_pagesize ({config.max_pagesize}) is smaller than "
                f"default_pagesize ({config.default_pagesize})"
            )
        if self._store is not None and not config.mounts:
            problems.append("a store is configured but no mounts are defined")
        for mount in config.mounts:
            if not mount.where.startswith("/"):
                problems.append(f"mount path {mount.where!r} must start with '/'")
        if problems:
            msg = "Invalid configuration: " + "; ".join(problems)
            raise ConfigurationError(msg)

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and filters before the first request."
            )
            raise RuntimeError(msg)
