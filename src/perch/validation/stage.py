"""Inbound validation stage.

Runs a route's compiled schema against the request context. Every
declared part is checked; issues are collected across parts rather
than stopping at the first failure.
"""

from typing import Any

from perch.context import RequestContext
from perch.errors import SchemaError
from perch.http.response import Response, json_response
from perch.validation.schema import CompiledSchema


def collect_issues(schema: CompiledSchema, ctx: RequestContext) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    """Validate ``ctx.body``, ``ctx.query`` and ``ctx.params``.

    Returns ``(details, parsed)``: one ``{source, issues}`` entry per
    failing source, and the parsed value for each source that passed.
    """
    details: list[dict[str, Any]] = []
    parsed: dict[str, Any] = {}

    for source, validator in (("body", schema.body), ("query", schema.query)):
        if validator is None:
            continue
        try:
            parsed[source] = validator.validate(getattr(ctx, source))
        except SchemaError as exc:
            details.append({"source": source, "issues": list(exc.issues)})

    if schema.required_params:
        issues = [
            {"code": "custom", "path": [key], "message": "Missing param"}
            for key in schema.required_params
            if key not in ctx.params
        ]
        if issues:
            details.append({"source": "params", "issues": issues})
    elif schema.params is not None:
        try:
            parsed["params"] = schema.params.validate(ctx.params)
        except SchemaError as exc:
            details.append({"source": "params", "issues": list(exc.issues)})

    return details, parsed


def validate_request(schema: CompiledSchema, ctx: RequestContext) -> Response | None:
    """Apply *schema* to *ctx*.

    On success the parsed values replace the raw ones on the context and
    ``None`` is returned. On failure the 400 response is returned and the
    context is left untouched.
    """
    details, parsed = collect_issues(schema, ctx)
    if details:
        ctx.logger.debug("validation failed: %s", [d["source"] for d in details])
        return validation_failed(details)
    for source, value in parsed.items():
        setattr(ctx, source, value)
    return None


def validation_failed(details: list[dict[str, Any]]) -> Response:
    """``{"error": "Validation failed", "details": [...]}`` with status 400."""
    return json_response({"error": "Validation failed", "details": details}, status=400)
