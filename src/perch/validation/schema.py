"""Route schemas and the adapters that apply them.

A ``ValidationSchema`` names what to check for each part of a request
and what the handler's result must look like::

    class NewMember(BaseModel):
        name: str
        age: int

    define_route(
        "/members",
        create_member,
        method="POST",
        schema=ValidationSchema(body=NewMember, response=Member),
    )

Each part accepts a pydantic model, anything ``pydantic.TypeAdapter``
accepts (``dict[str, int]``, ``Annotated[...]``, a ``TypedDict``), a
ready ``TypeAdapter``, or any object with a ``validate(value)`` method
that raises ``SchemaError`` on failure. ``params`` may instead be a list
of keys that must be present. ``response=NO_CONTENT`` declares a route
that answers ``204 No Content``.
"""

import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter, ValidationError

from perch.errors import ConfigurationError, SchemaError

NO_CONTENT: Any = typing.Never
"""Response schema for routes that answer with an empty 204."""


@runtime_checkable
class Validator(Protocol):
    """Anything that can parse a value or raise ``SchemaError``."""

    def validate(self, value: Any) -> Any: ...


@dataclass(frozen=True, slots=True)
class ValidationSchema:
    """Schemas for the parts of a request, plus the response."""

    body: Any = None
    query: Any = None
    params: Any = None
    response: Any = None


def is_no_content(schema: Any) -> bool:
    """True for the ``NO_CONTENT`` marker."""
    return schema is typing.Never or schema is typing.NoReturn


# -- Issues --


def _expected(error: Any) -> Any:
    ctx = error.get("ctx") or {}
    if "expected" in ctx:
        return ctx["expected"]
    kind = error["type"]
    for suffix in ("_type", "_parsing"):
        if kind.endswith(suffix):
            return kind.removesuffix(suffix)
    return None


def issues_from_pydantic(exc: ValidationError) -> list[dict[str, Any]]:
    """Convert pydantic errors into ``{code, path, message, ...}`` issues."""
    issues: list[dict[str, Any]] = []
    for error in exc.errors(include_url=False):
        issue: dict[str, Any] = {
            "code": error["type"],
            "path": list(error["loc"]),
            "message": error["msg"],
        }
        expected = _expected(error)
        if expected is not None:
            issue["expected"] = expected
        if error["type"] == "missing":
            issue["received"] = "undefined"
        elif "input" in error:
            issue["received"] = type(error["input"]).__name__
        issues.append(issue)
    return issues


# -- Adapters --


class PydanticValidator:
    """``Validator`` backed by a ``pydantic.TypeAdapter``."""

    __slots__ = ("adapter",)

    def __init__(self, adapter: TypeAdapter[Any]) -> None:
        self.adapter = adapter

    def validate(self, value: Any) -> Any:
        try:
            return self.adapter.validate_python(value)
        except ValidationError as exc:
            raise SchemaError(issues_from_pydantic(exc)) from exc

    def dump(self, value: Any) -> Any:
        """Validate *value* and dump it to JSON-compatible python."""
        return self.adapter.dump_python(self.validate(value), mode="json")


class CustomValidator:
    """Wraps a user ``Validator``; its parsed output is the dump."""

    __slots__ = ("inner",)

    def __init__(self, inner: Validator) -> None:
        self.inner = inner

    def validate(self, value: Any) -> Any:
        return self.inner.validate(value)

    def dump(self, value: Any) -> Any:
        return self.inner.validate(value)


def resolve_validator(schema: Any) -> PydanticValidator | CustomValidator:
    """Turn a schema object into something with ``validate`` and ``dump``.

    Raises ``ConfigurationError`` if pydantic cannot build a schema for it.
    """
    if isinstance(schema, TypeAdapter):
        return PydanticValidator(schema)
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return PydanticValidator(TypeAdapter(schema))
    if not isinstance(schema, type) and isinstance(schema, Validator):
        return CustomValidator(schema)
    try:
        return PydanticValidator(TypeAdapter(schema))
    except (PydanticSchemaGenerationError, TypeError) as exc:
        msg = f"Cannot build a validator for {schema!r}: {exc}"
        raise ConfigurationError(msg) from exc


@dataclass(frozen=True, slots=True)
class CompiledSchema:
    """A ``ValidationSchema`` with every part resolved to a validator."""

    body: PydanticValidator | CustomValidator | None = None
    query: PydanticValidator | CustomValidator | None = None
    params: PydanticValidator | CustomValidator | None = None
    required_params: tuple[str, ...] = ()
    response: PydanticValidator | CustomValidator | None = None
    no_content: bool = False

    @property
    def validates_request(self) -> bool:
        return bool(self.body or self.query or self.params or self.required_params)


def compile_schema(
    schema: ValidationSchema | Callable[[], ValidationSchema] | None,
) -> CompiledSchema | None:
    """Resolve a route's schema (or schema factory) once, at app compile time."""
    if schema is None:
        return None
    if not isinstance(schema, ValidationSchema) and callable(schema):
        schema = schema()
    if not isinstance(schema, ValidationSchema):
        msg = f"Route schema must be a ValidationSchema or a factory returning one, got {schema!r}"
        raise ConfigurationError(msg)

    params = schema.params
    required_params: tuple[str, ...] = ()
    params_validator = None
    if isinstance(params, Sequence) and not isinstance(params, str):
        required_params = tuple(params)
    elif params is not None:
        params_validator = resolve_validator(params)

    no_content = is_no_content(schema.response)
    return CompiledSchema(
        body=resolve_validator(schema.body) if schema.body is not None else None,
        query=resolve_validator(schema.query) if schema.query is not None else None,
        params=params_validator,
        required_params=required_params,
        response=(
            resolve_validator(schema.response)
            if schema.response is not None and not no_content
            else None
        ),
        no_content=no_content,
    )
