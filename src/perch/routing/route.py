"""Compiled route and match result frozen dataclasses."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.http.request import Request
    from perch.http.response import Response
    from perch.routing.registry import RouteDefinition


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/{id}``   (is_param=True, param_name="id")
    Typed:   ``/{id:int}`` (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A mounted route: one method, one path, one pipeline endpoint.

    ``endpoint`` is the request pipeline built for the definition at
    compile time. ``definition`` points back at what was registered.
    """

    path: str
    method: str
    endpoint: Callable[[Request], Awaitable[Response]]
    definition: RouteDefinition | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, Any]
