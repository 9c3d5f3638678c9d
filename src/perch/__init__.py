"""Perch — declarative routes and a deterministic request pipeline for ASGI.

Declare routes, then assemble them into an ASGI application::

    from pydantic import BaseModel
    from perch import ValidationSchema, create_app, define_route, not_found

    class NewMember(BaseModel):
        name: str
        age: int

    async def create_member(ctx):
        return {"id": 1, **ctx.body.model_dump()}

    define_route(
        "/members",
        create_member,
        method="POST",
        schema=ValidationSchema(body=NewMember),
    )

    app = create_app()
    app.run()

Handlers receive a ``RequestContext`` and return a value (sent as JSON),
``None`` (204), an ``HttpError`` (error envelope) or a ``Response``.
"""

__version__ = "0.1.0"
__all__ = [
    "NO_CONTENT",
    "App",
    "AppConfig",
    "CORSConfig",
    "ConfigurationError",
    "FileRule",
    "HttpError",
    "Middleware",
    "Next",
    "PerchError",
    "PluginAPI",
    "Request",
    "RequestCompleteEvent",
    "RequestContext",
    "Response",
    "RouteGroup",
    "SchemaError",
    "ValidationSchema",
    "bad_request",
    "clear_response_filters",
    "clear_routes",
    "conflict",
    "create_app",
    "create_route_group",
    "define_route",
    "error_response",
    "forbidden",
    "g",
    "get_all_routes",
    "get_request",
    "get_response_filters",
    "internal_error",
    "not_found",
    "register_response_filter",
    "route",
    "unauthorized",
    "unprocessable",
]

_ERRORS = (
    "ConfigurationError",
    "HttpError",
    "PerchError",
    "SchemaError",
    "bad_request",
    "conflict",
    "error_response",
    "forbidden",
    "internal_error",
    "not_found",
    "unauthorized",
    "unprocessable",
)
_ROUTING = (
    "RouteGroup",
    "clear_routes",
    "create_route_group",
    "define_route",
    "get_all_routes",
    "route",
)
_FILTERS = ("clear_response_filters", "get_response_filters", "register_response_filter")


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("App", "create_app"):
        from perch import app as _app

        return getattr(_app, name)

    if name in ("AppConfig", "CORSConfig"):
        from perch import config as _config

        return getattr(_config, name)

    if name in _ERRORS:
        from perch import errors as _errors

        return getattr(_errors, name)

    if name in _ROUTING:
        from perch.routing import registry as _registry

        return getattr(_registry, name)

    if name in _FILTERS:
        from perch import filters as _filters

        return getattr(_filters, name)

    if name in ("NO_CONTENT", "ValidationSchema"):
        from perch.validation import schema as _schema

        return getattr(_schema, name)

    if name == "FileRule":
        from perch.validation.files import FileRule

        return FileRule

    if name in ("RequestContext", "g", "get_request"):
        from perch import context as _ctx

        return getattr(_ctx, name)

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name in ("Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "PluginAPI":
        from perch.plugins import PluginAPI

        return PluginAPI

    if name == "RequestCompleteEvent":
        from perch.server.pipeline import RequestCompleteEvent

        return RequestCompleteEvent

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
