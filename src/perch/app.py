"""Perch application class.

Mutable during setup (middleware, error handlers, hooks).
Frozen at runtime when app.run() or __call__() is first invoked: that is
when plugins run, routes are mounted from the registry, and the registry
and filter chain are frozen.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import ErrorHandler, RouteMiddleware
from perch.config import AppConfig
from perch.filters import ResponseFilterChain, get_filter_chain
from perch.middleware.access_log import AccessLogMiddleware
from perch.middleware.builtin import CORSMiddleware
from perch.middleware.protocol import Middleware
from perch.middleware.request_id import RequestIdMiddleware
from perch.plugins import AppHook, Plugin, PluginAPI, run_plugin
from perch.routing.registry import RouteRegistry, get_registry
from perch.routing.route import Route
from perch.routing.router import Router
from perch.server.handler import handle_request
from perch.server.pipeline import RequestCompleteEvent, wrap_handler

logger = logging.getLogger("perch.app")


class App:
    """The perch application.

    Mutable during setup (middleware, error handlers, hooks).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded (declarations at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the app, even when several server threads
        call ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_after_hooks",
        "_before_hooks",
        "_error_handlers",
        "_fallback_middleware",
        "_fallback_middleware_list",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_mounting_after",
        "_plugins",
        "_route_middlewares",
        # Compiled state (populated by _freeze)
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "filters",
        "on_exception",
        "on_request_complete",
        "registry",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        middlewares: Iterable[RouteMiddleware] = (),
        plugins: Iterable[Plugin] = (),
        on_exception: Callable[..., Any] | None = None,
        on_request_complete: Callable[[RequestCompleteEvent], Any] | None = None,
        use_before_routes: AppHook | None = None,
        use_after_routes: AppHook | None = None,
        registry: RouteRegistry | None = None,
        filters: ResponseFilterChain | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.registry: RouteRegistry = registry if registry is not None else get_registry()
        self.filters: ResponseFilterChain = filters if filters is not None else get_filter_chain()
        self.on_exception = on_exception
        self.on_request_complete = on_request_complete
        self._route_middlewares: list[RouteMiddleware] = list(middlewares)
        self._plugins: list[Plugin] = list(plugins)
        self._before_hooks: list[AppHook] = [use_before_routes] if use_before_routes else []
        self._after_hooks: list[AppHook] = [use_after_routes] if use_after_routes else []
        self._middleware_list: list[Middleware] = []
        self._fallback_middleware_list: list[Middleware] = []
        self._error_handlers: list[tuple[type[BaseException], ErrorHandler]] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._mounting_after: bool = False
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set by _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._fallback_middleware: tuple[Middleware, ...] = ()

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a transport middleware.

        Called during setup or from a ``use_before_routes`` hook, it wraps
        routing. Called from a ``use_after_routes`` hook, it only sees
        requests no route matched.
        """
        self._check_not_frozen()
        if self._mounting_after:
            self._fallback_middleware_list.append(middleware)
        else:
            self._middleware_list.append(middleware)

    def add_route_middleware(self, middleware: RouteMiddleware) -> None:
        """Append a route middleware that runs before every route's own."""
        self._check_not_frozen()
        self._route_middlewares.append(middleware)

    def use_before_routes(self, hook: AppHook) -> None:
        """Run *hook(app)* at compile time, before routes are mounted."""
        self._check_not_frozen()
        self._before_hooks.append(hook)

    def use_after_routes(self, hook: AppHook) -> None:
        """Run *hook(app)* at compile time, after routes are mounted."""
        self._check_not_frozen()
        self._after_hooks.append(hook)

    # -- Error handlers --

    def error(self, exc_type: type[BaseException]) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register a handler for uncaught exceptions of *exc_type*.

        Handlers run in registration order. The first to return something
        other than ``None`` (a value, an ``HttpError`` or a ``Response``)
        answers the request; otherwise the 500 envelope goes out::

            @app.error(LookupError)
            def missing(request, exc):
                return not_found(str(exc))
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers.append((exc_type, func))
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        """Mounted routes in mount order. Compiles the app if needed."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with the development server."""
        logging.basicConfig(level=self.config.log_level.upper())
        self._ensure_frozen()

        from perch.server.dev import run_dev_server

        run_dev_server(
            self,
            host or self.config.host,
            port or self.config.port,
            log_level=self.config.log_level,
        )

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
            fallback_middleware=self._fallback_middleware,
            error_handlers=tuple(self._error_handlers),
            on_exception=self.on_exception,
            is_dev=self.config.is_dev,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("startup failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

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

        MUST only be called while holding _freeze_lock. If compilation
        fails, everything plugins and hooks registered is rolled back so
        a later attempt starts from the same setup state.
        """
        routes_before = len(self.registry)
        filters_before = len(self.filters)
        saved = (
            list(self._route_middlewares),
            list(self._before_hooks),
            list(self._after_hooks),
            list(self._middleware_list),
            list(self._fallback_middleware_list),
        )
        try:
            self._compile()
        except Exception:
            self.registry.truncate(routes_before)
            self.filters.truncate(filters_before)
            (
                self._route_middlewares,
                self._before_hooks,
                self._after_hooks,
                self._middleware_list,
                self._fallback_middleware_list,
            ) = saved
            raise

    def _compile(self) -> None:
        # 1. Plugins, then before-routes hooks
        api = PluginAPI(self)
        for plugin in self._plugins:
            run_plugin(plugin, api)
        for hook in list(self._before_hooks):
            hook(self)

        # 2. Mount routes in registration order
        filters = tuple(self.filters.all())
        route_middlewares = tuple(self._route_middlewares)
        router = Router()
        for definition in self.registry.all():
            endpoint = wrap_handler(
                definition,
                middlewares=route_middlewares,
                filters=filters,
                on_request_complete=self.on_request_complete,
            )
            router.add(
                Route(
                    path=definition.path,
                    method=definition.method,
                    endpoint=endpoint,
                    definition=definition,
                )
            )
        router.compile()

        # 3. After-routes hooks; their middleware only wraps the 404 fallback
        self._mounting_after = True
        try:
            for hook in list(self._after_hooks):
                hook(self)
        finally:
            self._mounting_after = False

        # 4. Transport chain: access log, request id, CORS, then user middleware
        builtin: list[Middleware] = []
        if self.config.enable_http_logging:
            builtin.append(AccessLogMiddleware())
        builtin.append(RequestIdMiddleware(self.config.powered_by))
        builtin.append(CORSMiddleware(self.config.cors))
        self._middleware = (*builtin, *self._middleware_list)
        self._fallback_middleware = tuple(self._fallback_middleware_list)

        self.registry.freeze()
        self.filters.freeze()
        self._router = router
        self._frozen = True
        logger.debug("compiled %d route(s)", len(router.routes))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and filters before the first request."
            )
            raise RuntimeError(msg)


def create_app(
    config: AppConfig | None = None,
    *,
    middlewares: Iterable[RouteMiddleware] = (),
    plugins: Iterable[Plugin] = (),
    on_exception: Callable[..., Any] | None = None,
    on_request_complete: Callable[[RequestCompleteEvent], Any] | None = None,
    use_before_routes: AppHook | None = None,
    use_after_routes: AppHook | None = None,
) -> App:
    """Assemble an application from the process-wide route registry.

    *middlewares* are route middlewares applied to every route, before
    the route's own. Routes and filters are read when the app compiles,
    on its first request or lifespan startup, so declaration order
    relative to ``create_app()`` does not matter.
    """
    return App(
        config,
        middlewares=middlewares,
        plugins=plugins,
        on_exception=on_exception,
        on_request_complete=on_request_complete,
        use_before_routes=use_before_routes,
        use_after_routes=use_after_routes,
    )
