"""Shared pytest configuration for perch tests.

Routes and response filters live in process-wide registries, so every
test starts and ends with both cleared (and unfrozen).
"""

import pytest

from perch.context import g
from perch.filters import clear_response_filters
from perch.routing.registry import clear_routes


@pytest.fixture(autouse=True)
def _reset_registries():
    clear_routes()
    clear_response_filters()
    yield
    clear_routes()
    clear_response_filters()
    g._reset()
