"""Pytest fixtures for API testing."""

import pytest
from httpx import AsyncClient, ASGITransport

from officeflow.main import app
from officeflow.api.v1 import deps


@pytest.fixture(scope="function")
async def client(engine):
    """Create async HTTP client bound to a fresh engine for each test."""
    deps.engine = engine

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    deps.engine = None
