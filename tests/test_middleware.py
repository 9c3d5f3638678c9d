"""Tests for transport middleware — request ids, access logging, user middleware."""

import logging
import re

from perch.app import create_app
from perch.config import AppConfig
from perch.context import g, get_request
from perch.errors import forbidden
from perch.http.response import Response
from perch.routing.registry import define_route
from perch.testing import TestClient, assert_error

UUID4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


class TestRequestId:
    async def test_fresh_uuid_per_request(self) -> None:
        define_route("/ping", lambda ctx: {"ok": True})
        async with TestClient(create_app()) as client:
            first = (await client.get("/ping")).header("X-Request-ID")
            second = (await client.get("/ping")).header("X-Request-ID")
        assert UUID4.match(first)
        assert UUID4.match(second)
        assert first != second

    async def test_incoming_header_is_not_trusted(self) -> None:
        define_route("/ping", lambda ctx: {"id": ctx.request_id})
        async with TestClient(create_app()) as client:
            response = await client.get("/ping", headers={"X-Request-ID": "forged"})
            assert response.json["id"] != "forged"
            assert response.json["id"] == response.header("X-Request-ID")

    async def test_powered_by(self) -> None:
        define_route("/ping", lambda ctx: {})
        async with TestClient(create_app(AppConfig(powered_by="acme"))) as client:
            assert (await client.get("/ping")).header("X-Powered-By") == "acme"

    async def test_powered_by_can_be_omitted(self) -> None:
        define_route("/ping", lambda ctx: {})
        async with TestClient(create_app(AppConfig(powered_by=""))) as client:
            assert (await client.get("/ping")).header("X-Powered-By") is None


class TestAccessLog:
    async def test_one_line_per_request(self, caplog) -> None:
        define_route("/members", lambda ctx: [1])
        app = create_app(AppConfig(enable_http_logging=True))
        with caplog.at_level(logging.INFO, logger="perch.access"):
            async with TestClient(app) as client:
                await client.get("/members")
                await client.delete("/members")
        lines = [r.getMessage() for r in caplog.records if r.name == "perch.access"]
        assert len(lines) == 2
        assert re.match(r"^GET /members 200 \d+\.\d{3} ms - 3$", lines[0])
        assert lines[1].startswith("DELETE /members 404 ")

    async def test_empty_body_logged_as_dash(self, caplog) -> None:
        define_route("/gone", lambda ctx: None, method="DELETE")
        app = create_app(AppConfig(enable_http_logging=True))
        with caplog.at_level(logging.INFO, logger="perch.access"):
            async with TestClient(app) as client:
                await client.delete("/gone")
        (line,) = [r.getMessage() for r in caplog.records if r.name == "perch.access"]
        assert line.endswith(" - -")

    async def test_disabled_by_default(self, caplog) -> None:
        define_route("/members", lambda ctx: [])
        with caplog.at_level(logging.INFO, logger="perch.access"):
            async with TestClient(create_app()) as client:
                await client.get("/members")
        assert not [r for r in caplog.records if r.name == "perch.access"]


class TestUserTransportMiddleware:
    async def test_wraps_routing(self) -> None:
        async def timing(request, next):
            response = await next(request)
            return response.with_header("X-Timing", "1")

        define_route("/ping", lambda ctx: {})
        app = create_app()
        app.add_middleware(timing)
        async with TestClient(app) as client:
            assert (await client.get("/ping")).header("X-Timing") == "1"
            assert (await client.get("/unknown")).header("X-Timing") == "1"

    async def test_sees_request_id(self) -> None:
        seen = {}

        async def spy(request, next):
            seen["id"] = request.request_id
            seen["current"] = get_request().request_id
            return await next(request)

        define_route("/ping", lambda ctx: {})
        app = create_app()
        app.add_middleware(spy)
        async with TestClient(app) as client:
            response = await client.get("/ping")
        assert seen["id"] == seen["current"] == response.header("X-Request-ID")

    async def test_short_circuit_with_response(self) -> None:
        async def maintenance(request, next):
            return Response(body='{"down":true}', status=503)

        define_route("/ping", lambda ctx: {})
        app = create_app()
        app.add_middleware(maintenance)
        async with TestClient(app) as client:
            response = await client.get("/ping")
            assert response.status == 503
            assert response.json == {"down": True}

    async def test_raised_http_error_becomes_envelope(self) -> None:
        async def deny(request, next):
            raise forbidden("Blocked")

        app = create_app()
        app.add_middleware(deny)
        async with TestClient(app) as client:
            assert_error(await client.get("/anything"), 403, "FORBIDDEN", "Blocked")

    async def test_g_is_request_scoped(self) -> None:
        async def mark(request, next):
            assert "user" not in g
            g.user = request.query.get("who")
            return await next(request)

        define_route("/me", lambda ctx: {"user": ctx.user})
        app = create_app()
        app.add_middleware(mark)
        async with TestClient(app) as client:
            assert (await client.get("/me?who=ada")).json == {"user": "ada"}
            assert (await client.get("/me?who=bob")).json == {"user": "bob"}
