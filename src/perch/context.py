"""Request-scoped state.

Provides:
- ``RequestContext``: the per-request bundle handed to route middlewares,
  handlers and response filters.
- ``request_var`` / ``get_request()``: the current ``Request`` for this task.
- ``g``: a mutable namespace scoped to the current request. Transport
  middleware can stash the authenticated user as ``g.user``; the pipeline
  seeds ``RequestContext.user`` from it.
- ``on_response_sent()``: run a callback once the response has gone out.

Everything here is set by the ASGI handler and reset after each request.
``ContextVar`` is task-local under asyncio, so no locks are needed.
"""

import logging
from collections.abc import Callable, Mapping, MutableMapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from perch.http.forms import UploadFile
from perch.http.request import Request
from perch.http.response import Response

# -- Request context vars --

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the ASGI handler before dispatch."""

finish_callbacks_var: ContextVar[list[Callable[[int], Any]] | None] = ContextVar(
    "perch_finish_callbacks", default=None
)


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def on_response_sent(callback: Callable[[int], Any]) -> None:
    """Run *callback* once, after the response for this request is sent.

    The callback receives the final status code and may be async.
    Outside a request (no ASGI handler running) this is a no-op.
    """
    callbacks = finish_callbacks_var.get()
    if callbacks is not None:
        callbacks.append(callback)


# -- Request-scoped namespace --


class _RequestGlobals:
    """A mutable namespace scoped to the current request.

    Stores arbitrary attributes via a per-request dict held in a ContextVar.

    Usage::

        from perch.context import g

        # In transport middleware
        g.user = await authenticate(request)

        # Later, in a route middleware or handler
        ctx.user  # seeded from g.user
    """

    __slots__ = ("_store",)

    def __init__(self) -> None:
        object.__setattr__(self, "_store", ContextVar("perch_g", default=None))

    def _get_dict(self) -> dict[str, Any]:
        store: ContextVar[dict[str, Any] | None] = object.__getattribute__(self, "_store")
        d = store.get()
        if d is None:
            d = {}
            store.set(d)
        return d

    def _reset(self) -> None:
        store: ContextVar[dict[str, Any] | None] = object.__getattribute__(self, "_store")
        store.set(None)

    def __getattr__(self, name: str) -> Any:
        d = self._get_dict()
        try:
            return d[name]
        except KeyError:
            msg = f"'g' has no attribute {name!r} in the current request scope"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._get_dict()[name] = value

    def __delattr__(self, name: str) -> None:
        d = self._get_dict()
        try:
            del d[name]
        except KeyError:
            msg = f"'g' has no attribute {name!r} in the current request scope"
            raise AttributeError(msg) from None

    def __contains__(self, name: str) -> bool:
        return name in self._get_dict()

    def get(self, name: str, default: Any = None) -> Any:
        """Get an attribute with a default value."""
        return self._get_dict().get(name, default)

    def __repr__(self) -> str:
        return f"<g {self._get_dict()!r}>"


g = _RequestGlobals()
"""Request-scoped namespace. Stores arbitrary per-request data."""


# -- Per-request handles --


class RequestLogger(logging.LoggerAdapter):
    """Logger adapter that tags every record with the request id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[{extra.get('request_id', '-')}] {msg}", kwargs


def request_logger(request_id: str) -> RequestLogger:
    """Build the logger handed to a request's context."""
    return RequestLogger(logging.getLogger("perch.request"), {"request_id": request_id})


@dataclass(slots=True)
class ResponseHandle:
    """Outgoing response state a handler or middleware may touch.

    Headers set here are copied onto whatever response the pipeline
    emits for this request: success, error envelope or 204.
    """

    headers: dict[str, str] = field(default_factory=dict)

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def apply(self, response: Response) -> Response:
        """Return *response* with the collected headers added."""
        if not self.headers:
            return response
        return response.with_headers(self.headers)


@dataclass(slots=True)
class RequestContext:
    """Everything a route middleware, handler or filter sees about a request.

    Constructed fresh by the pipeline for each request and discarded once
    the response is sent.

    ``body``, ``query`` and ``params`` start as the raw request data
    (decoded JSON or form fields, the flattened query string, the matched
    path parameters). When the route declares a schema, each validated
    part is replaced by its parsed value before middlewares run.
    """

    request: Request
    response: ResponseHandle
    logger: logging.LoggerAdapter
    request_id: str
    user: Any = None
    body: Any = None
    query: Any = field(default_factory=dict)
    params: Any = field(default_factory=dict)
    files: Mapping[str, list[UploadFile]] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    def get_file(self, name: str) -> UploadFile | None:
        """Return the first file uploaded under *name*, or ``None``."""
        uploaded = self.files.get(name)
        if uploaded:
            return uploaded[0]
        return None
