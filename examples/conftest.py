"""Shared pytest configuration for perch examples.

Provides the ``example_app`` fixture that loads a fresh App instance
from the ``app.py`` file in the same directory as the test. Routes and
response filters live in process-wide registries, so both are cleared
before app.py is re-executed in an isolated module namespace.
"""

import importlib.util
from pathlib import Path

import pytest

from perch import clear_response_filters, clear_routes


@pytest.fixture
def example_app(request: pytest.FixtureRequest):
    """Load a fresh App from the sibling app.py next to the test file."""
    clear_routes()
    clear_response_filters()
    app_path = Path(request.path).parent / "app.py"
    module_name = f"example_{app_path.parent.name}"
    spec = importlib.util.spec_from_file_location(module_name, app_path)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    yield module.app
    clear_routes()
    clear_response_filters()
