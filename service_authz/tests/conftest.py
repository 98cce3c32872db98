"""
Shared fixtures for authorization engine tests.
"""

import pytest
from prometheus_client import CollectorRegistry

from shared.logging import clear_context
from shared.metrics import MetricsCollector
from service_authz.app.rules.factory import AbilityFactory
from service_authz.app.rules.models import Principal, Role


@pytest.fixture(autouse=True)
def reset_logging_context():
    """Keep correlation context from leaking between tests."""
    yield
    clear_context()


@pytest.fixture
def metrics():
    """Create a metrics collector on an isolated registry."""
    return MetricsCollector("authz", registry=CollectorRegistry())


@pytest.fixture
def factory():
    """Create AbilityFactory instance."""
    return AbilityFactory()


@pytest.fixture
def admin():
    return Principal(id="user-admin", role=Role.ADMIN)


@pytest.fixture
def member():
    return Principal(id="user-member", role=Role.MEMBER)


@pytest.fixture
def billing():
    return Principal(id="user-billing", role=Role.BILLING)
