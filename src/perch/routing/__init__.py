"""Routing — declarative route registry and compiled route table.

Routes are registered during setup, snapshotted into an immutable
lookup structure when the app freezes, and matched in registration order.
"""

from perch.routing.registry import (
    RouteDefinition,
    RouteGroup,
    RouteRegistry,
    clear_routes,
    create_route_group,
    define_route,
    get_all_routes,
    route,
)

__all__ = [
    "RouteDefinition",
    "RouteGroup",
    "RouteRegistry",
    "clear_routes",
    "create_route_group",
    "define_route",
    "get_all_routes",
    "route",
]
