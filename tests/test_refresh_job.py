import pytest

from plan_gate.service import SubscriptionService
from workers.plan_refresh_job import run_refresh_cycle

from fakes import FakeBackend, backend_down, pro_state


@pytest.mark.asyncio
async def test_refresh_cycle_reports_current_plan(fast_settings):
    backend = FakeBackend(entitlement=pro_state(), articles=1, images=1)
    service = SubscriptionService(client=backend, settings=fast_settings)

    stats = await run_refresh_cycle(service)

    assert stats.plan == "pro"
    assert stats.is_pro is True
    assert stats.errors == 0
    assert stats.completed_at is not None


@pytest.mark.asyncio
async def test_refresh_cycle_with_backend_down_reports_free_tier(fast_settings):
    backend = FakeBackend(entitlement=backend_down())
    service = SubscriptionService(client=backend, settings=fast_settings)

    stats = await run_refresh_cycle(service)

    assert stats.plan == "free"
    assert stats.is_pro is False
    assert stats.errors == 0


@pytest.mark.asyncio
async def test_refresh_cycle_counts_unexpected_errors(fast_settings, monkeypatch):
    service = SubscriptionService(client=FakeBackend(), settings=fast_settings)

    async def broken_refresh():
        raise RuntimeError("event loop shutting down")

    monkeypatch.setattr(service, "refresh", broken_refresh)

    stats = await run_refresh_cycle(service)

    assert stats.errors == 1
    assert stats.plan is None
    assert stats.completed_at is not None
