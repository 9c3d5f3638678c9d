"""Envelope assertion helpers for perch tests.

Each assertion produces a clear error message on failure.
"""

from typing import Any

from perch.http.response import Response


def assert_error(response: Response, status: int, code: str, message: str | None = None) -> None:
    """Assert *response* is an ``HttpError`` envelope."""
    assert response.status == status, (
        f"Expected status {status}, got {response.status}.\nResponse body: {response.text[:500]}"
    )
    body = response.json
    assert body.get("status") == status, f"Envelope status mismatch: {body!r}"
    assert body.get("error") == code, f"Expected error code {code!r}, got {body.get('error')!r}"
    if message is not None:
        assert body.get("message") == message, (
            f"Expected message {message!r}, got {body.get('message')!r}"
        )


def assert_validation_failed(response: Response, *sources: str) -> list[dict[str, Any]]:
    """Assert a 400 validation envelope listing exactly *sources*.

    Returns the ``details`` list for further checks.
    """
    assert response.status == 400, (
        f"Expected status 400, got {response.status}.\nResponse body: {response.text[:500]}"
    )
    body = response.json
    assert body.get("error") == "Validation failed", f"Not a validation envelope: {body!r}"
    details = body["details"]
    found = [entry["source"] for entry in details]
    assert found == list(sources), f"Expected failing sources {list(sources)!r}, got {found!r}"
    return details
