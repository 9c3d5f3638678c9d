"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, dispatches through transport middleware and
routing, and sends the Response back through ASGI send().
"""

import logging
from collections.abc import Callable, Sequence
from contextvars import Token
from dataclasses import replace
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.context import finish_callbacks_var, g, request_var
from perch.errors import HttpError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Middleware, Next
from perch.routing.router import Router
from perch.server.errors import handle_internal_error, http_error_response, not_found_response
from perch.server.sender import send_response

logger = logging.getLogger("perch.app")


def build_chain(middleware: Sequence[Middleware], innermost: Next) -> Next:
    """Wrap *innermost* so *middleware* runs outermost-first."""
    handler = innermost
    for mw in reversed(middleware):
        outer = handler

        async def make_next(req: Request, _mw: Middleware = mw, _next: Next = outer) -> Response:
            return await _mw(req, _next)

        handler = make_next
    return handler


async def _not_found(request: Request) -> Response:
    return not_found_response()


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Middleware, ...],
    fallback_middleware: tuple[Middleware, ...] = (),
    error_handlers: Sequence[tuple[type[BaseException], Callable[..., Any]]] = (),
    on_exception: Callable[..., Any] | None = None,
    is_dev: bool = False,
) -> None:
    """Process a single HTTP request through the full pipeline.

    *fallback_middleware* only sees requests no route matched; it wraps
    the 404 envelope.
    """
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    # Set request context vars (reset after the response is sent)
    token: Token[Request] = request_var.set(request)
    callbacks: list[Callable[[int], Any]] = []
    callbacks_token = finish_callbacks_var.set(callbacks)

    async def internal_error(exc: Exception, req: Request) -> Response:
        return await handle_internal_error(
            exc,
            req,
            error_handlers=error_handlers,
            on_exception=on_exception,
            is_dev=is_dev,
        )

    fallback = build_chain(fallback_middleware, _not_found)

    async def dispatch(req: Request) -> Response:
        match = router.match(req.method, req.path)
        if match is None:
            return await fallback(req)
        req = replace(req, path_params=match.path_params)
        request_var.set(req)
        try:
            return await match.route.endpoint(req)
        except HttpError as exc:
            return http_error_response(exc, req)
        except Exception as exc:
            return await internal_error(exc, req)

    try:
        try:
            response = await build_chain(middleware, dispatch)(request)
        except HttpError as exc:
            response = http_error_response(exc, request)
        except Exception as exc:
            response = await internal_error(exc, request)

        # Once the response has started, failures belong to the server
        await send_response(response, send)
        await _run_finish_callbacks(callbacks, response.status)
    finally:
        finish_callbacks_var.reset(callbacks_token)
        g._reset()
        request_var.reset(token)


async def _run_finish_callbacks(callbacks: list[Callable[[int], Any]], status: int) -> None:
    for callback in callbacks:
        try:
            await invoke(callback, status)
        except Exception:
            logger.exception("response-sent callback %r failed", callback)
