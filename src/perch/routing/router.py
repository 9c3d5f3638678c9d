"""Compiled router with ordered pattern matching.

Routes are added during app compilation, in registration order, and
compiled into an immutable lookup table when the app freezes. The first
route whose method and pattern match wins, so registration order decides
precedence between overlapping patterns and between duplicates.
"""

import re
from dataclasses import dataclass

from perch.errors import ConfigurationError
from perch.routing.params import CONVERTERS, convert_param
from perch.routing.route import PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"          -> [PathSegment("users")]
        "/users/{id}"     -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}" -> [PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{rest:path}" -> [PathSegment("{rest:path}", is_param=True, param_type="path")]

    Raises ``ConfigurationError`` for unknown converters, malformed
    parameter names, or ``<param>`` / ``:param`` syntax.
    """
    segments: list[PathSegment] = []
    parts = [part for part in path.strip("/").split("/") if part]
    for index, part in enumerate(parts):
        if part.startswith("<") and part.endswith(">"):
            msg = f"Route path {path!r} uses <param> syntax. Use {{{part[1:-1]}}} instead."
            raise ConfigurationError(msg)
        if part.startswith(":"):
            msg = f"Route path {path!r} uses :param syntax. Use {{{part[1:]}}} instead."
            raise ConfigurationError(msg)
        if part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            if ":" in inner:
                param_name, param_type = inner.split(":", 1)
            else:
                param_name = inner
                param_type = "str"
            if not param_name.isidentifier():
                msg = f"Invalid parameter name {param_name!r} in route path {path!r}."
                raise ConfigurationError(msg)
            if any(seg.param_name == param_name for seg in segments):
                msg = f"Duplicate parameter {param_name!r} in route path {path!r}."
                raise ConfigurationError(msg)
            if param_type not in CONVERTERS:
                known = ", ".join(sorted(CONVERTERS))
                msg = f"Unknown converter {param_type!r} in route path {path!r} (known: {known})."
                raise ConfigurationError(msg)
            if param_type == "path" and index != len(parts) - 1:
                msg = f"A path converter must be the last segment of {path!r}."
                raise ConfigurationError(msg)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=param_name,
                    param_type=param_type,
                )
            )
        else:
            segments.append(PathSegment(value=part))
    return segments


def compile_pattern(segments: list[PathSegment]) -> re.Pattern[str]:
    """Build the anchored regex for a parsed path.

    A trailing slash on the request path is tolerated.
    """
    pieces: list[str] = []
    for seg in segments:
        if seg.is_param:
            pattern, _ = CONVERTERS[seg.param_type]
            pieces.append(f"/(?P<{seg.param_name}>{pattern})")
        else:
            pieces.append("/" + re.escape(seg.value))
    return re.compile("^" + "".join(pieces) + "/?$")


@dataclass(frozen=True, slots=True)
class _CompiledRoute:
    route: Route
    regex: re.Pattern[str]
    converters: tuple[tuple[str, str], ...]


class Router:
    """Compiled router.

    Usage::

        router = Router()
        router.add(Route("/users", "GET", endpoint))
        router.add(Route("/users/{id:int}", "GET", endpoint))
        router.compile()
        match = router.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_entries")

    def __init__(self) -> None:
        self._entries: list[_CompiledRoute] = []
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route to the router. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        segments = parse_path(route.path)
        converters = tuple(
            (seg.param_name or "", seg.param_type)
            for seg in segments
            if seg.is_param and seg.param_type in ("int", "float")
        )
        self._entries.append(
            _CompiledRoute(route=route, regex=compile_pattern(segments), converters=converters)
        )

    @property
    def routes(self) -> list[Route]:
        """Return all mounted routes in mount order."""
        return [entry.route for entry in self._entries]

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Match a request method and path against the mounted routes.

        Returns the first ``RouteMatch`` in mount order, or ``None``.
        A known path requested with an undeclared method does not match.
        """
        method = method.upper()
        for entry in self._entries:
            if entry.route.method != method:
                continue
            found = entry.regex.match(path)
            if found is None:
                continue
            params: dict[str, object] = dict(found.groupdict())
            for name, param_type in entry.converters:
                params[name] = convert_param(found.group(name), param_type)
            return RouteMatch(route=entry.route, path_params=params)
        return None
