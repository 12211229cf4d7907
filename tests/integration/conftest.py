"""Integration test fixtures: the HTTP app bound to a per-test database."""

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from timeclock_engine.api.app import create_app
from timeclock_engine.api.dependencies import get_session_factory


@pytest.fixture
def app(session_factory):
    """App whose storage dependencies resolve to the test database."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def worker_headers(worker_id):
    return {"X-Worker-ID": str(worker_id)}


@pytest.fixture
def staff_headers():
    return {"X-Staff-ID": str(uuid4())}
