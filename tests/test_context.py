"""Tests for perch.context — request vars, g namespace, RequestContext."""

import logging

import pytest

from perch.context import (
    RequestContext,
    ResponseHandle,
    _RequestGlobals,
    finish_callbacks_var,
    get_request,
    on_response_sent,
    request_logger,
    request_var,
)
from perch.http.forms import UploadFile
from perch.http.request import Request
from perch.http.response import Response


def _request(path: str = "/test") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [],
        "query_string": b"",
        "http_version": "1.1",
    }

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request.from_asgi(scope, receive)


def _context(**kwargs) -> RequestContext:
    return RequestContext(
        request=_request(),
        response=ResponseHandle(),
        logger=request_logger("req-1"),
        request_id="req-1",
        **kwargs,
    )


class TestRequestVar:
    def test_get_request_raises_outside_context(self) -> None:
        with pytest.raises(LookupError):
            get_request()

    def test_set_and_get_request(self) -> None:
        request = _request()
        token = request_var.set(request)
        try:
            assert get_request() is request
        finally:
            request_var.reset(token)


class TestResponseSent:
    def test_noop_outside_request(self) -> None:
        on_response_sent(lambda status: None)

    def test_callbacks_collected(self) -> None:
        callbacks: list = []
        token = finish_callbacks_var.set(callbacks)
        try:
            on_response_sent(print)
        finally:
            finish_callbacks_var.reset(token)
        assert callbacks == [print]


class TestRequestGlobals:
    def test_set_and_get_attribute(self) -> None:
        ns = _RequestGlobals()
        ns.user = "alice"
        assert ns.user == "alice"

    def test_missing_attribute_raises(self) -> None:
        ns = _RequestGlobals()
        with pytest.raises(AttributeError, match="has no attribute 'missing'"):
            _ = ns.missing

    def test_delete_attribute(self) -> None:
        ns = _RequestGlobals()
        ns.foo = "bar"
        del ns.foo
        assert "foo" not in ns

    def test_get_with_default(self) -> None:
        ns = _RequestGlobals()
        assert ns.get("missing", 42) == 42

    def test_reset(self) -> None:
        ns = _RequestGlobals()
        ns.user = "alice"
        ns._reset()
        assert "user" not in ns


class TestRequestContext:
    def test_defaults(self) -> None:
        ctx = _context()
        assert ctx.user is None
        assert ctx.query == {}
        assert ctx.params == {}
        assert ctx.state == {}
        assert ctx.method == "GET"
        assert ctx.path == "/test"

    def test_get_file_returns_first(self) -> None:
        first = UploadFile("doc", "a.txt", "text/plain", 1, b"a")
        second = UploadFile("doc", "b.txt", "text/plain", 1, b"b")
        ctx = _context(files={"doc": [first, second]})
        assert ctx.get_file("doc") is first
        assert ctx.get_file("other") is None

    def test_response_handle(self) -> None:
        handle = ResponseHandle()
        response = Response()
        assert handle.apply(response) is response
        handle.set_header("X-Trace", "t")
        assert handle.apply(response).header("X-Trace") == "t"


class TestRequestLogger:
    def test_prefixes_request_id(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="perch.request"):
            request_logger("abc").info("loaded %d members", 3)
        (record,) = caplog.records
        assert record.getMessage() == "[abc] loaded 3 members"
        assert record.request_id == "abc"
