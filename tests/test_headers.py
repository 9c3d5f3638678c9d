"""Tests for perch.http.headers — immutable, case-insensitive Headers."""

import pytest

from perch.http.headers import Headers


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = Headers(((b"content-type", b"application/json"),))
        assert h["Content-Type"] == "application/json"
        assert "CONTENT-TYPE" in h

    def test_missing_raises(self) -> None:
        with pytest.raises(KeyError):
            Headers()["x-missing"]

    def test_get_default(self) -> None:
        assert Headers().get("origin") is None
        assert Headers().get("origin", "none") == "none"

    def test_multiple_values(self) -> None:
        h = Headers(((b"accept", b"a"), (b"Accept", b"b")))
        assert h["accept"] == "a"
        assert h.get_list("ACCEPT") == ["a", "b"]
        assert len(h) == 1

    def test_non_string_key(self) -> None:
        assert 42 not in Headers(((b"x", b"1"),))

    def test_from_dict(self) -> None:
        h = Headers.from_dict({"X-Request-ID": "abc", "Origin": "https://example.com"})
        assert h["x-request-id"] == "abc"
        assert list(h) == ["x-request-id", "origin"]
