"""Members: a JSON CRUD API with schemas, auth and a response envelope.

Demonstrates declarative routes, pydantic validation of body, query and
path params, a route group guarded by a middleware, a transport
middleware that authenticates from a bearer token, a response filter,
and a plugin.

Run:
    cd examples/members && python app.py

Try:
    curl localhost:8000/api/members
    curl -X POST localhost:8000/api/members \
        -H 'Authorization: Bearer admin-token' \
        -H 'Content-Type: application/json' \
        -d '{"name": "Ada", "email": "ada@example.com"}'
"""

import logging
import threading
from itertools import count

from pydantic import BaseModel, Field

from perch import (
    NO_CONTENT,
    AppConfig,
    PluginAPI,
    ValidationSchema,
    conflict,
    create_app,
    create_route_group,
    define_route,
    g,
    not_found,
    register_response_filter,
    unauthorized,
)

logger = logging.getLogger("members")

TOKENS = {"admin-token": {"name": "admin"}}


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class NewMember(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")


class MemberPatch(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+$")


class Member(BaseModel):
    id: int
    name: str
    email: str


class MemberId(BaseModel):
    id: int


class Paging(BaseModel):
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------

_members: dict[int, dict] = {}
_ids = count(1)
_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


async def authenticate(request, next):
    """Transport middleware: resolve the bearer token into ``g.user``."""
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        g.user = TOKENS.get(header.removeprefix("Bearer "))
    return await next(request)


def require_user(ctx):
    if ctx.user is None:
        return unauthorized("Sign in first")
    return None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def list_members(ctx):
    with _lock:
        rows = sorted(_members.values(), key=lambda m: m["id"])
    page = ctx.query
    return rows[page.offset : page.offset + page.limit]


def get_member(ctx):
    member = _members.get(ctx.params.id)
    if member is None:
        return not_found("No such member", {"id": ctx.params.id})
    # The stored row carries internal fields; the response schema drops them
    return member


async def create_member(ctx):
    with _lock:
        if any(m["email"] == ctx.body.email for m in _members.values()):
            return conflict("Email already registered")
        member_id = next(_ids)
        _members[member_id] = {"id": member_id, "created_by": ctx.user["name"], **ctx.body.model_dump()}
    ctx.logger.info("created member %d", member_id)
    ctx.response.set_header("Location", f"/api/members/{member_id}")
    return _members[member_id]


async def update_member(ctx):
    with _lock:
        member = _members.get(ctx.params.id)
        if member is None:
            return not_found("No such member")
        member.update(ctx.body.model_dump(exclude_none=True))
    return member


def delete_member(ctx):
    with _lock:
        if _members.pop(ctx.params.id, None) is None:
            return not_found("No such member")
    return None


define_route("/api/members", list_members, schema=ValidationSchema(query=Paging, response=list[Member]))
define_route(
    "/api/members/{id}",
    get_member,
    schema=ValidationSchema(params=MemberId, response=Member),
)

admin = create_route_group("/api/members", middlewares=[require_user])
admin.define_route(
    "",
    create_member,
    method="POST",
    schema=ValidationSchema(body=NewMember, response=Member),
)
admin.define_route(
    "/{id}",
    update_member,
    method="PATCH",
    schema=ValidationSchema(params=MemberId, body=MemberPatch, response=Member),
)
admin.define_route(
    "/{id}",
    delete_member,
    method="DELETE",
    schema=ValidationSchema(params=MemberId, response=NO_CONTENT),
)


@register_response_filter
def envelope(ctx, value):
    return {"data": value, "requestId": ctx.request_id}


def health_plugin(api: PluginAPI) -> None:
    api.add_route("/health", lambda ctx: {"ok": True, "members": len(_members)})


def log_completion(event):
    logger.info("%s %s -> %d", event.method, event.path, event.status_code)


app = create_app(
    AppConfig(enable_http_logging=True),
    plugins=[health_plugin],
    on_request_complete=log_completion,
)
app.add_middleware(authenticate)


if __name__ == "__main__":
    app.run()
