"""Validation — request schemas, response contracts and upload rules.

Usage::

    from pydantic import BaseModel
    from perch.validation import ValidationSchema

    class NewMember(BaseModel):
        name: str
        age: int

    define_route(
        "/members",
        create_member,
        method="POST",
        schema=ValidationSchema(body=NewMember),
    )

Invalid requests never reach the handler; they get a 400 listing every
issue for every failing part of the request.
"""

from perch.validation.files import FileRule
from perch.validation.schema import NO_CONTENT, ValidationSchema, Validator

__all__ = [
    "NO_CONTENT",
    "FileRule",
    "ValidationSchema",
    "Validator",
]
