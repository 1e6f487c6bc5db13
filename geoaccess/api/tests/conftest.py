"""
Test Configuration and Fixtures

Shared fixtures for GEOACCESS API tests.
Provides an isolated in-memory engine, a frozen clock and an async client.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from geoaccess.api.config import Settings
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import InMemoryIdentityProvider, User
from geoaccess.api.main import create_app
from geoaccess.core.clock import ManualClock


# ==================== Engine Fixtures ====================


@pytest.fixture(scope="function")
def clock() -> ManualClock:
    return ManualClock(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def identity() -> InMemoryIdentityProvider:
    """Admin, manager, a technician reporting to the manager, and a plain user."""
    return InMemoryIdentityProvider([
        User(id="admin-1", name="Asha Admin", email="asha@example.com", role="Admin"),
        User(id="mgr-1", name="Manoj Manager", email="manoj@example.com", role="Manager"),
        User(
            id="tech-1",
            name="Tara Tech",
            email="tara@example.com",
            role="Technician",
            explicit_regions={"Kerala"},
            assigned_under=["mgr-1"],
        ),
        User(id="user-1", name="Uma User", email="uma@example.com", role="User"),
        User(id="gone-1", name="Former Staff", role="User", is_active=False),
    ])


@pytest.fixture(scope="function")
def engine(identity, clock) -> AuthorizationEngine:
    return AuthorizationEngine.in_memory(identity=identity, clock=clock)


# ==================== Application Fixtures ====================


@pytest.fixture(scope="function")
def app(engine) -> FastAPI:
    """Create FastAPI app over the test engine."""
    settings = Settings(DEBUG=True, SEED_DEFAULT_ZONES=False)
    return create_app(engine=engine, settings=settings, start_monitors=False)


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

