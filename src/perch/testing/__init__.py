"""Test utilities for perch applications.

Provides an in-process ASGI test client and envelope assertions::

    from perch.testing import TestClient, assert_error
"""

from perch.testing.assertions import assert_error, assert_validation_failed
from perch.testing.client import TestClient, encode_multipart

__all__ = [
    "TestClient",
    "assert_error",
    "assert_validation_failed",
    "encode_multipart",
]
