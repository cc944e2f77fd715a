"""Pytest configuration shared across the suite."""

import _bootstrap  # noqa: F401  # seeds sys.path and required env before app imports
import pytest


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"
