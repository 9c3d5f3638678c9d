"""Error handling for perch requests.

Maps ``HttpError`` values and unexpected failures to JSON envelopes,
giving registered error handlers the first chance at the latter.
"""

import inspect
import logging
import traceback
from collections.abc import Callable, Sequence
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import HttpError
from perch.http.request import Request
from perch.http.response import Response, json_response

logger = logging.getLogger("perch.server")
app_logger = logging.getLogger("perch.app")

NOT_FOUND_ENVELOPE = {"status": 404, "code": "NOT_FOUND", "message": "No matching route."}


def http_error_response(exc: HttpError, request: Request | None = None) -> Response:
    """Envelope for a raised or returned ``HttpError``."""
    if request is not None:
        logger.debug("%d %s %s - %s", exc.status, request.method, request.path, exc.message)
    return json_response(exc.to_dict(), status=exc.status)


def not_found_response() -> Response:
    """Envelope for a request no route matched."""
    return json_response(NOT_FOUND_ENVELOPE, status=404)


def internal_error_envelope(exc: BaseException, *, is_dev: bool) -> dict[str, Any]:
    """The 500 body. Development mode adds the message and stack."""
    body: dict[str, Any] = {
        "status": 500,
        "code": "INTERNAL_ERROR",
        "message": "Internal Server Error",
    }
    if is_dev:
        data: dict[str, Any] = {"stack": "".join(traceback.format_exception(exc))}
        message = str(exc)
        if message:
            data = {"errorMessage": message, **data}
        body["data"] = data
    return body


async def call_error_handler(handler: Callable[..., Any], request: Request, exc: Exception) -> Any:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    Supports both sync and async error handlers.
    """
    params = list(inspect.signature(handler).parameters.values())
    if len(params) >= 2:
        return await invoke(handler, request, exc)
    if len(params) == 1:
        return await invoke(handler, request)
    return await invoke(handler)


def _to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if isinstance(result, HttpError):
        return json_response(result.to_dict(), status=result.status)
    return json_response(result, status=500)


async def handle_internal_error(
    exc: Exception,
    request: Request,
    *,
    error_handlers: Sequence[tuple[type[BaseException], Callable[..., Any]]] = (),
    on_exception: Callable[..., Any] | None = None,
    is_dev: bool = False,
) -> Response:
    """Turn an uncaught exception into a response.

    Registered handlers matching the exception type run in registration
    order; the first to return something other than ``None`` answers.
    Otherwise the ``on_exception`` observer is told and the generic 500
    envelope goes out.
    """
    for exc_type, handler in error_handlers:
        if not isinstance(exc, exc_type):
            continue
        try:
            result = await call_error_handler(handler, request, exc)
        except Exception:
            logger.exception("error handler %r failed for %s %s", handler, request.method, request.path)
            continue
        if result is not None:
            return _to_response(result)

    logger.exception("500 %s %s", request.method, request.path, exc_info=exc)

    if on_exception is not None:
        try:
            await invoke(on_exception, exc, request)
        except Exception:
            app_logger.exception("on_exception observer failed")

    return json_response(internal_error_envelope(exc, is_dev=is_dev), status=500)
