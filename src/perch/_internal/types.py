"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: receives a RequestContext, returns a value or an HttpError
Handler: TypeAlias = Callable[..., Any]

# Route middleware: receives a RequestContext, returns None or an HttpError
RouteMiddleware: TypeAlias = Callable[..., Any]

# Response filter: receives (RequestContext, value) and returns the new value
ResponseFilter: TypeAlias = Callable[..., Any]

# Error handler: receives (request, exc) and returns a response value or None
ErrorHandler: TypeAlias = Callable[..., Any]
