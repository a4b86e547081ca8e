"""Test doubles shared across plan gate tests.

FakeBackend stands in for the HTTP client: each endpoint can return a value,
raise, or hang until cancelled.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from plan_gate.errors import BackendRequestError
from plan_gate.models import EntitlementState

HANG = object()

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

PLATFORMS = [
    {"id": "wechat", "name": "WeChat Official Account", "requiredPlan": "free", "featureId": "multi-platform"},
    {"id": "zhihu", "name": "Zhihu", "requiredPlan": "pro", "featureId": "zhihu-platform"},
    {"id": "juejin", "name": "Juejin", "requiredPlan": "pro", "featureId": "juejin-platform"},
    {"id": "markdown", "name": "Plain Markdown"},
]


def pro_state(expires_at=None, is_expired=False) -> EntitlementState:
    return EntitlementState(
        plan="pro",
        expires_at=expires_at or FIXED_NOW + timedelta(days=30),
        is_pro=True,
        is_expired=is_expired,
    )


class FakeBackend:
    def __init__(self, entitlement=None, articles=0, images=0):
        self.responses = {
            "entitlement": entitlement if entitlement is not None else EntitlementState.fallback(),
            "articles": articles,
            "images": images,
        }
        self.calls = {"entitlement": 0, "articles": 0, "images": 0}
        self.cancelled = []

    async def _respond(self, key):
        self.calls[key] += 1
        value = self.responses[key]
        if value is HANG:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.append(key)
                raise
        if isinstance(value, Exception):
            raise value
        return value

    async def fetch_entitlement(self):
        return await self._respond("entitlement")

    async def fetch_article_count(self):
        return await self._respond("articles")

    async def fetch_monthly_image_usage(self):
        return await self._respond("images")


def backend_down(path="/entitlement"):
    return BackendRequestError(path, "request failed: connection refused")


