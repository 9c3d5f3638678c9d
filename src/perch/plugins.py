"""Plugins — bundles of routes, middlewares and filters.

A plugin is a plain function that receives a ``PluginAPI``::

    def health_plugin(api: PluginAPI) -> None:
        api.add_route("/health", lambda ctx: {"ok": True})
        api.add_response_filter(add_version)

    app = create_app(plugins=[health_plugin])

Plugins run when the app compiles, in list order, before routes are
mounted. They are synchronous; anything needing I/O belongs in an
``on_startup`` hook.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, TypeAlias

from perch._internal.types import Handler, ResponseFilter, RouteMiddleware
from perch.errors import ConfigurationError
from perch.routing.registry import RouteDefinition, RouteGroup

if TYPE_CHECKING:
    from perch.app import App

Plugin: TypeAlias = Callable[["PluginAPI"], Any]
AppHook: TypeAlias = Callable[["App"], Any]


class PluginAPI:
    """The capabilities a plugin gets. Nothing else of the app is exposed."""

    __slots__ = ("_app",)

    def __init__(self, app: App) -> None:
        self._app = app

    def add_route(
        self,
        path: str,
        handler: Handler,
        *,
        method: str = "GET",
        schema: Any = None,
        middlewares: Iterable[RouteMiddleware] = (),
        files: Any = None,
        name: str | None = None,
    ) -> RouteDefinition:
        """Register a route, exactly like ``define_route``."""
        definition = RouteDefinition(
            path=path,
            handler=handler,
            method=method,
            schema=schema,
            middlewares=tuple(middlewares),
            files=files,
            name=name,
        )
        return self._app.registry.register(definition)

    def add_group(self, prefix: str, middlewares: Iterable[RouteMiddleware] = ()) -> RouteGroup:
        """Start a route group, exactly like ``create_route_group``."""
        return RouteGroup(prefix=prefix, middlewares=tuple(middlewares), registry=self._app.registry)

    def add_global_middleware(self, middleware: RouteMiddleware) -> None:
        """Append a route middleware that runs for every route."""
        self._app.add_route_middleware(middleware)

    def add_response_filter(self, response_filter: ResponseFilter) -> None:
        self._app.filters.register(response_filter)

    def use_before_routes(self, hook: AppHook) -> None:
        """Run *hook(app)* before routes are mounted."""
        self._app.use_before_routes(hook)

    def use_after_routes(self, hook: AppHook) -> None:
        """Run *hook(app)* after routes are mounted."""
        self._app.use_after_routes(hook)


def run_plugin(plugin: Plugin, api: PluginAPI) -> None:
    """Call *plugin*. Raises ``ConfigurationError`` for coroutine plugins."""
    result = plugin(api)
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        msg = f"Plugin {plugin!r} is async; plugins run at compile time and must be synchronous."
        raise ConfigurationError(msg)
