"""Route registry and grouping.

Routes are declared at import time, before any app exists::

    from perch import define_route, create_route_group

    define_route("/health", health)

    api = create_route_group("/api", middlewares=[require_user])
    api.define_route("/members", create_member, method="POST", schema=member_schema)

The registry keeps definitions in registration order. When an app
compiles it snapshots the registry and freezes it; later registrations
raise ``RuntimeError`` until ``clear_routes()`` resets it.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from perch._internal.types import Handler, RouteMiddleware
from perch.errors import ConfigurationError

ROUTE_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH"})


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """One registered route.

    ``schema`` may be a ``ValidationSchema`` or a zero-argument factory
    returning one; factories are resolved once when the app compiles.
    ``files`` maps field names to ``FileRule`` values, or lists the
    fields that may carry uploads without constraints.
    """

    path: str
    handler: Handler
    method: str = "GET"
    schema: Any = None
    middlewares: tuple[RouteMiddleware, ...] = ()
    files: Any = None
    name: str | None = None

    def __post_init__(self) -> None:
        method = str(self.method).upper()
        if method not in ROUTE_METHODS:
            allowed = ", ".join(sorted(ROUTE_METHODS))
            msg = f"Unsupported method {self.method!r} for route {self.path!r} (allowed: {allowed})."
            raise ConfigurationError(msg)
        if not self.path.startswith("/"):
            msg = f"Route path {self.path!r} must start with '/'."
            raise ConfigurationError(msg)
        if not callable(self.handler):
            msg = f"Handler for route {method} {self.path!r} is not callable."
            raise ConfigurationError(msg)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "middlewares", tuple(self.middlewares))
        if self.files is not None and not isinstance(self.files, Mapping):
            object.__setattr__(self, "files", tuple(self.files))


class RouteRegistry:
    """Append-only, ordered collection of route definitions."""

    __slots__ = ("_frozen", "_routes")

    def __init__(self) -> None:
        self._routes: list[RouteDefinition] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, definition: RouteDefinition) -> RouteDefinition:
        """Append *definition*. Raises ``RuntimeError`` once frozen."""
        if self._frozen:
            msg = (
                f"Cannot register route {definition.method} {definition.path!r}: "
                "the route registry is frozen because an app has already compiled. "
                "Register routes before the first request, or call clear_routes()."
            )
            raise RuntimeError(msg)
        self._routes.append(definition)
        return definition

    def all(self) -> list[RouteDefinition]:
        """Every definition in registration order (a copy)."""
        return list(self._routes)

    def freeze(self) -> None:
        self._frozen = True

    def clear(self) -> None:
        """Drop every definition and unfreeze."""
        self._routes.clear()
        self._frozen = False

    def truncate(self, count: int) -> None:
        """Drop every definition registered after the first *count*."""
        del self._routes[count:]

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[RouteDefinition]:
        return iter(list(self._routes))


_registry = RouteRegistry()


def get_registry() -> RouteRegistry:
    """Return the process-wide default registry."""
    return _registry


def register_route(definition: RouteDefinition) -> RouteDefinition:
    """Append a pre-built ``RouteDefinition`` to the default registry."""
    return _registry.register(definition)


def define_route(
    path: str,
    handler: Handler,
    *,
    method: str = "GET",
    schema: Any = None,
    middlewares: Iterable[RouteMiddleware] = (),
    files: Any = None,
    name: str | None = None,
) -> RouteDefinition:
    """Declare a route on the default registry."""
    definition = RouteDefinition(
        path=path,
        handler=handler,
        method=method,
        schema=schema,
        middlewares=tuple(middlewares),
        files=files,
        name=name,
    )
    return _registry.register(definition)


def route(
    path: str,
    *,
    method: str = "GET",
    schema: Any = None,
    middlewares: Iterable[RouteMiddleware] = (),
    files: Any = None,
    name: str | None = None,
) -> Callable[[Handler], Handler]:
    """Decorator form of ``define_route``. Returns the function unchanged.

    Usage::

        @route("/members/{id}", schema=ValidationSchema(params=["id"]))
        async def get_member(ctx):
            ...
    """

    def decorator(func: Handler) -> Handler:
        define_route(
            path,
            func,
            method=method,
            schema=schema,
            middlewares=middlewares,
            files=files,
            name=name or getattr(func, "__name__", None),
        )
        return func

    return decorator


def get_all_routes() -> list[RouteDefinition]:
    """Every route on the default registry, in registration order."""
    return _registry.all()


def clear_routes() -> None:
    """Reset the default registry. Intended for test isolation."""
    _registry.clear()


# -- Groups --


@dataclass(frozen=True, slots=True)
class RouteGroup:
    """A shared path prefix and middleware list for a set of routes.

    Groups hold no runtime state: ``define_route`` rewrites the path and
    prepends the group's middlewares, then registers a plain
    ``RouteDefinition``. Nest with ``create_group``.
    """

    prefix: str
    middlewares: tuple[RouteMiddleware, ...] = ()
    registry: RouteRegistry = field(default_factory=get_registry, repr=False, compare=False)

    def define_route(
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
        definition = RouteDefinition(
            path=self.prefix + path,
            handler=handler,
            method=method,
            schema=schema,
            middlewares=(*self.middlewares, *middlewares),
            files=files,
            name=name,
        )
        return self.registry.register(definition)

    def route(
        self,
        path: str,
        *,
        method: str = "GET",
        schema: Any = None,
        middlewares: Iterable[RouteMiddleware] = (),
        files: Any = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of ``RouteGroup.define_route``."""

        def decorator(func: Handler) -> Handler:
            self.define_route(
                path,
                func,
                method=method,
                schema=schema,
                middlewares=middlewares,
                files=files,
                name=name or getattr(func, "__name__", None),
            )
            return func

        return decorator

    def create_group(
        self, prefix: str, middlewares: Iterable[RouteMiddleware] = ()
    ) -> "RouteGroup":
        """Nested group: prefixes concatenate, middlewares append."""
        return RouteGroup(
            prefix=self.prefix + prefix,
            middlewares=(*self.middlewares, *middlewares),
            registry=self.registry,
        )


def create_route_group(prefix: str, middlewares: Iterable[RouteMiddleware] = ()) -> RouteGroup:
    """Start a group on the default registry."""
    return RouteGroup(prefix=prefix, middlewares=tuple(middlewares))
