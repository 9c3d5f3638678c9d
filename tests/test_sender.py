"""Tests for perch.server.sender — Response to ASGI messages."""

from typing import Any

from perch.http.response import Response, empty_response, json_response
from perch.server.sender import send_response


async def _send(response: Response) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        messages.append(message)

    await send_response(response, send)
    return messages


class TestSendResponse:
    async def test_json_response(self) -> None:
        start, body = await _send(json_response({"ok": True}).with_header("X-Request-ID", "abc"))
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        assert (b"content-type", b"application/json; charset=utf-8") in start["headers"]
        assert (b"x-request-id", b"abc") in start["headers"]
        assert (b"content-length", b"11") in start["headers"]
        assert body == {"type": "http.response.body", "body": b'{"ok":true}'}

    async def test_no_content(self) -> None:
        start, body = await _send(empty_response(204))
        names = [name for name, _ in start["headers"]]
        assert b"content-type" not in names
        assert b"content-length" not in names
        assert body["body"] == b""

    async def test_body_dropped_for_304(self) -> None:
        _, body = await _send(Response(body="stale", status=304))
        assert body["body"] == b""
