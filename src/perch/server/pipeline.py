"""Request pipeline — the per-route handler wrapper.

``wrap_handler()`` turns a ``RouteDefinition`` into the endpoint the
router calls. Each request runs strictly in order:

1. Build the ``RequestContext`` (body, query, params, uploads, logger)
2. Check upload rules, then the request schema (400 and stop on failure)
3. Run global then route middlewares (an ``HttpError`` stops the request)
4. Call the handler once
5. Classify the result and shape the response (filters, JSON)

``HttpError`` values are recovered here, whether raised or returned.
Everything else propagates to the global error handler.
"""

import json
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeAlias

from perch._internal.invoke import invoke
from perch._internal.types import ResponseFilter, RouteMiddleware
from perch.context import RequestContext, ResponseHandle, g, on_response_sent, request_logger
from perch.errors import HttpError, bad_request
from perch.filters import apply_filters
from perch.http.forms import is_form_content_type
from perch.http.request import Request
from perch.http.response import Response, empty_response, json_response
from perch.routing.registry import RouteDefinition
from perch.server.errors import http_error_response
from perch.validation.files import check_uploads, normalize_rules
from perch.validation.schema import compile_schema
from perch.validation.stage import validate_request

logger = logging.getLogger("perch.app")

Endpoint: TypeAlias = Callable[[Request], Awaitable[Response]]


@dataclass(frozen=True, slots=True)
class RequestCompleteEvent:
    """What the ``on_request_complete`` observer receives.

    ``body`` and ``query`` are the values the handler saw (parsed, when
    the route validates them). ``timestamp`` is when the request started.
    """

    request_id: str
    timestamp: str
    method: str
    path: str
    body: Any
    query: Any
    status_code: int
    duration_ms: float


async def build_context(request: Request) -> RequestContext:
    """Assemble the per-request context from the raw request.

    Raises ``HttpError`` (400) for a body that claims to be JSON or a
    form but cannot be parsed.
    """
    request_id = request.request_id or str(uuid.uuid4())
    body: Any = {}
    files: dict[str, Any] = {}

    if request.is_json:
        raw = await request.body()
        if raw.strip():
            try:
                body = json.loads(raw)
            except ValueError as exc:
                raise bad_request("Malformed JSON body") from exc
    elif is_form_content_type(request.content_type or ""):
        try:
            form = await request.form()
        except ValueError as exc:
            raise bad_request("Malformed form body") from exc
        body = form.to_dict()
        files = dict(form.files)

    return RequestContext(
        request=request,
        response=ResponseHandle(),
        logger=request_logger(request_id),
        request_id=request_id,
        user=g.get("user"),
        body=body,
        query=request.query.to_dict(),
        params=dict(request.path_params),
        files=files,
    )


def wrap_handler(
    definition: RouteDefinition,
    *,
    middlewares: Sequence[RouteMiddleware] = (),
    filters: Sequence[ResponseFilter] = (),
    on_request_complete: Callable[[RequestCompleteEvent], Any] | None = None,
) -> Endpoint:
    """Compile *definition* into a router endpoint.

    The schema (or schema factory) and upload rules are resolved here,
    once. *middlewares* are the app-wide route middlewares; the route's
    own run after them.
    """
    schema = compile_schema(definition.schema)
    rules = normalize_rules(definition.files)
    chain = (*middlewares, *definition.middlewares)
    filter_chain = tuple(filters)
    handler = definition.handler

    async def shape(ctx: RequestContext, result: Any) -> Response:
        if isinstance(result, HttpError):
            return http_error_response(result, ctx.request)
        if isinstance(result, Response):
            return result
        if result is None or (schema is not None and schema.no_content):
            return empty_response(204)
        if schema is not None and schema.response is not None:
            result = schema.response.dump(result)
        result = await apply_filters(filter_chain, ctx, result)
        return json_response(result, status=200)

    async def run(ctx: RequestContext) -> Response:
        if rules:
            rejected = check_uploads(rules, ctx.files)
            if rejected is not None:
                return rejected
        if schema is not None and schema.validates_request:
            rejected = validate_request(schema, ctx)
            if rejected is not None:
                return rejected

        for middleware in chain:
            outcome = await invoke(middleware, ctx)
            if isinstance(outcome, HttpError):
                return http_error_response(outcome, ctx.request)
            if isinstance(outcome, Response):
                return outcome

        return await shape(ctx, await invoke(handler, ctx))

    async def endpoint(request: Request) -> Response:
        started = time.perf_counter()
        timestamp = datetime.now(UTC).isoformat()
        ctx: RequestContext | None = None

        if on_request_complete is not None:

            async def report(status: int) -> None:
                event = RequestCompleteEvent(
                    request_id=ctx.request_id if ctx else request.request_id,
                    timestamp=timestamp,
                    method=request.method.upper(),
                    path=request.path,
                    body=ctx.body if ctx else None,
                    query=ctx.query if ctx else request.query.to_dict(),
                    status_code=status,
                    duration_ms=(time.perf_counter() - started) * 1000,
                )
                await invoke(on_request_complete, event)

            on_response_sent(report)

        try:
            ctx = await build_context(request)
            response = await run(ctx)
        except HttpError as exc:
            response = http_error_response(exc, request)

        if ctx is not None:
            response = ctx.response.apply(response)
        return response

    return endpoint
