"""
GEOACCESS Test Configuration
============================

Pytest fixtures for isolated authorization engines.
Every test gets its own in-memory store and a frozen clock.
"""

import pytest
from datetime import datetime, timezone

from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import InMemoryIdentityProvider, User
from geoaccess.core.clock import ManualClock


START = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock frozen at a known instant."""
    return ManualClock(START)


@pytest.fixture
def admin_user():
    return User(id="admin-1", name="Asha Admin", email="asha@example.com", role="Admin")


@pytest.fixture
def manager_user():
    return User(id="mgr-1", name="Manoj Manager", email="manoj@example.com", role="Manager")


@pytest.fixture
def technician_user(manager_user):
    """Technician declared under the manager, with one explicit region."""
    return User(
        id="tech-1",
        name="Tara Tech",
        email="tara@example.com",
        role="Technician",
        explicit_regions={"Kerala"},
        assigned_under=[manager_user.id],
    )


@pytest.fixture
def basic_user():
    return User(id="user-1", name="Uma User", email="uma@example.com", role="User")


@pytest.fixture
def identity(admin_user, manager_user, technician_user, basic_user):
    return InMemoryIdentityProvider([admin_user, manager_user, technician_user, basic_user])


@pytest.fixture
def engine(identity, clock):
    """Complete engine over a fresh in-memory store."""
    return AuthorizationEngine.in_memory(identity=identity, clock=clock)


@pytest.fixture
def audit(engine):
    return engine.audit


@pytest.fixture
def zones(engine):
    return engine.zones


@pytest.fixture
def grants(engine):
    return engine.grants


@pytest.fixture
def requests(engine):
    return engine.requests


@pytest.fixture
def resolver(engine):
    return engine.resolver


@pytest.fixture
def analytics(engine):
    return engine.analytics
