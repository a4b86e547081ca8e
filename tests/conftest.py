"""
Shared pytest fixtures for plan gate tests.
"""

import pytest

from plan_gate.config import Settings
from plan_gate.service import SubscriptionService

from fakes import FIXED_NOW, PLATFORMS, FakeBackend


@pytest.fixture
def fast_settings():
    """Short deadlines so timeout tests finish quickly."""
    return Settings(init_timeout=0.2, fetch_timeout=0.1, cache_ttl=300)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def service(backend, fast_settings, emitted):
    return SubscriptionService(
        client=backend,
        platforms=PLATFORMS,
        emit=lambda event, payload: emitted.append((event, payload)),
        settings=fast_settings,
        clock=lambda: FIXED_NOW,
    )
