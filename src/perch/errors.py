"""Perch exception hierarchy.

Shared across the registry, the request pipeline, validation and
middleware so every module raises and catches the same types.

``HttpError`` is the single error currency of the request pipeline.
Handlers and route middlewares may either raise one or *return* one;
both short-circuit the request and produce the same JSON envelope::

    async def get_member(ctx):
        member = await members.get(ctx.params["id"])
        if member is None:
            return not_found("No such member")
        return member
"""

from dataclasses import dataclass
from typing import Any


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when a route, schema or app option is invalid.

    Surfaces at definition time or when the app compiles, never
    while a request is being served.
    """


@dataclass(frozen=True, slots=True)
class HttpError(PerchError):
    """An error result that maps directly to an HTTP status code.

    ``data`` is optional structured detail; it is omitted from the
    envelope entirely when not supplied.
    """

    status: int
    code: str
    message: str
    data: dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.status} {self.code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """The error envelope: ``{status, error, message, data?}``."""
        body: dict[str, Any] = {
            "status": self.status,
            "error": self.code,
            "message": self.message,
        }
        if self.data is not None:
            body["data"] = dict(self.data)
        return body


class SchemaError(PerchError):
    """Raised by custom ``Validator`` implementations on invalid input.

    Attributes:
        issues: Structured issue dicts (``code``, ``path``, ``message``
            and optionally ``expected`` / ``received``).
    """

    def __init__(self, issues: list[dict[str, Any]]) -> None:
        self.issues = issues
        super().__init__(f"{len(issues)} validation issue(s)")


# -- Factories --


def error_response(
    status: int,
    code: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> HttpError:
    """Build an ``HttpError`` with an arbitrary status/code pair."""
    return HttpError(status=status, code=code, message=message, data=data)


def bad_request(message: str = "Bad Request", data: dict[str, Any] | None = None) -> HttpError:
    """400 BAD_REQUEST."""
    return error_response(400, "BAD_REQUEST", message, data)


def unauthorized(message: str = "Unauthorized", data: dict[str, Any] | None = None) -> HttpError:
    """401 UNAUTHORIZED."""
    return error_response(401, "UNAUTHORIZED", message, data)


def forbidden(message: str = "Forbidden", data: dict[str, Any] | None = None) -> HttpError:
    """403 FORBIDDEN."""
    return error_response(403, "FORBIDDEN", message, data)


def not_found(message: str = "Not Found", data: dict[str, Any] | None = None) -> HttpError:
    """404 NOT_FOUND."""
    return error_response(404, "NOT_FOUND", message, data)


def conflict(message: str = "Conflict", data: dict[str, Any] | None = None) -> HttpError:
    """409 CONFLICT."""
    return error_response(409, "CONFLICT", message, data)


def unprocessable(
    message: str = "Unprocessable Entity", data: dict[str, Any] | None = None
) -> HttpError:
    """422 UNPROCESSABLE_ENTITY."""
    return error_response(422, "UNPROCESSABLE_ENTITY", message, data)


def internal_error(
    message: str = "Internal Server Error", data: dict[str, Any] | None = None
) -> HttpError:
    """500 INTERNAL_ERROR."""
    return error_response(500, "INTERNAL_ERROR", message, data)
