"""Shared fixtures for backend API tests."""

import pytest
from httpx import ASGITransport, AsyncClient
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from broadcast import Broadcaster
from chat import get_broadcaster
from config import limiter
from main import app


@pytest.fixture
def anyio_backend():
    """The broadcaster is built on asyncio primitives."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_state():
    """Reset rate-limiter storage and dependency overrides between tests."""
    fresh = MemoryStorage()
    limiter._storage = fresh
    limiter._limiter = FixedWindowRateLimiter(fresh)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def broadcaster() -> Broadcaster:
    """Isolated Broadcaster wired into the app in place of the process-wide one."""
    instance = Broadcaster()
    app.dependency_overrides[get_broadcaster] = lambda: instance
    return instance


@pytest.fixture
async def client(broadcaster: Broadcaster):
    """Async HTTP client against the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
