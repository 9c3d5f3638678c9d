"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable by convention,
built incrementally by design. Perch speaks JSON: ``json_response()``
is how the pipeline turns handler results and error envelopes into
responses.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from pydantic_core import to_jsonable_python

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = JSON_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    # -- Accessors --

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first header value for *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return default

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    @property
    def json(self) -> Any:
        """Body parsed as JSON. ``None`` for an empty body."""
        raw = self.body_bytes
        if not raw:
            return None
        return json_module.loads(raw)


def dump_json(value: Any) -> str:
    """Serialize *value* to a compact JSON string.

    Pydantic models, dataclasses, datetimes, UUIDs, sets and the like
    are converted through ``pydantic_core.to_jsonable_python`` first.
    """
    return json_module.dumps(to_jsonable_python(value), separators=(",", ":"), ensure_ascii=False)


def json_response(value: Any, status: int = 200) -> Response:
    """Build a JSON response from any serializable value."""
    return Response(body=dump_json(value), status=status)


def empty_response(status: int = 204) -> Response:
    """Build a body-less response (``204 No Content`` by default)."""
    return Response(body=b"", status=status, content_type="")
