"""
Deadline-guarded synchronization of entitlement and usage state.

Handles:
- Startup sync of both records under one overall deadline
- TTL-cached entitlement sync
- Fault-tolerant usage counters
- Fail-safe fallback (free tier, zero usage) on any failure

Public operations never raise: every failure is converted into fallback state.
Deadlines cancel the in-flight fetch rather than abandoning it.

State is single-writer (this class) and multi-reader without a lock. That is
only sound on a single event loop; callers on other threads must serialize
access themselves. Overlapping calls race and the last write wins.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Optional

from .cache import DEFAULT_TTL_SECONDS, SyncCache
from .client import BackendClient
from .config import DEFAULT_FETCH_TIMEOUT, DEFAULT_INIT_TIMEOUT
from .errors import SyncFailure
from .models import EntitlementState, PlanSnapshot, UsageState

logger = logging.getLogger(__name__)


async def _gather_or_cancel(*aws: Awaitable):
    """gather() that cancels the remaining tasks as soon as one fails or we are cancelled."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class SyncCoordinator:
    """Owns EntitlementState/UsageState and keeps them in step with the backend."""

    def __init__(
        self,
        client: BackendClient,
        *,
        cache: Optional[SyncCache] = None,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self._client = client
        self.cache = cache or SyncCache(DEFAULT_TTL_SECONDS)
        self._init_timeout = init_timeout
        self._fetch_timeout = fetch_timeout
        self._entitlement = EntitlementState.loading()
        self._usage = UsageState.loading()

    @property
    def entitlement(self) -> EntitlementState:
        return self._entitlement

    @property
    def usage(self) -> UsageState:
        return self._usage

    def snapshot(self, now: Optional[datetime] = None) -> PlanSnapshot:
        return PlanSnapshot.build(self._entitlement, self._usage, now=now)

    async def init(self) -> PlanSnapshot:
        """Startup sync. Always settles, with live data or with fallback defaults."""
        logger.info("Initializing subscription state", extra={"timeout_seconds": self._init_timeout})
        try:
            await asyncio.wait_for(
                _gather_or_cancel(
                    self._sync_entitlement_or_raise(),
                    self._sync_usage_or_raise(),
                ),
                timeout=self._init_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Subscription init timed out, using fallback state",
                extra={"timeout_seconds": self._init_timeout},
            )
            self._apply_fallback()
        except SyncFailure as e:
            logger.error(
                "Subscription init failed, using fallback state",
                extra={"operation": e.operation, "error": e.detail},
            )
            self._apply_fallback()
        else:
            logger.info("Subscription state initialized", extra={
                "plan": self._entitlement.plan,
                "is_pro": self._entitlement.is_pro,
            })
        return self.snapshot()

    async def sync_entitlement(self) -> EntitlementState:
        """Return the cached record while fresh, otherwise fetch; free tier on failure."""
        try:
            return await self._sync_entitlement_or_raise()
        except SyncFailure as e:
            logger.warning(
                "Entitlement sync failed, falling back to free tier",
                extra={"operation": e.operation, "error": e.detail},
            )
            self._entitlement = EntitlementState.fallback()
            return self._entitlement

    async def sync_usage(self) -> UsageState:
        """Fetch both usage counters; zero usage on total failure."""
        try:
            return await self._sync_usage_or_raise()
        except SyncFailure as e:
            logger.warning(
                "Usage sync failed, resetting counters",
                extra={"operation": e.operation, "error": e.detail},
            )
            self._usage = UsageState.fallback()
            return self._usage

    async def refresh(self) -> PlanSnapshot:
        """Drop the cache and re-sync entitlement then usage."""
        self.cache.invalidate()
        await self.sync_entitlement()
        await self.sync_usage()
        return self.snapshot()

    def _apply_fallback(self) -> None:
        self._entitlement = EntitlementState.fallback()
        self._usage = UsageState.fallback()
        self.cache.invalidate()

    async def _bounded(self, operation: str, aw: Awaitable):
        """Await ``aw`` under the fetch timeout, normalizing every failure to SyncFailure."""
        try:
            return await asyncio.wait_for(aw, timeout=self._fetch_timeout)
        except SyncFailure:
            raise
        except asyncio.TimeoutError:
            raise SyncFailure(operation, f"timed out after {self._fetch_timeout}s")
        except Exception as e:
            raise SyncFailure(operation, str(e) or type(e).__name__, cause=e)

    async def _sync_entitlement_or_raise(self) -> EntitlementState:
        if self.cache.is_fresh() and not self._entitlement.is_loading:
            logger.debug("Entitlement cache hit")
            return self._entitlement

        logger.info("Syncing entitlement")
        state = await self._bounded("entitlement", self._client.fetch_entitlement())
        if not isinstance(state, EntitlementState):
            raise SyncFailure("entitlement", f"unexpected payload type {type(state).__name__}")
        self._entitlement = state
        self.cache.mark_synced()
        logger.info("Entitlement synced", extra={
            "plan": state.plan,
            "is_pro": state.is_pro,
            "is_expired": state.is_expired,
        })
        return state

    async def _counter_or_none(self, counter: str, aw: Awaitable[int]) -> Optional[int]:
        try:
            value = await aw
        except Exception as e:
            logger.warning("Usage counter unavailable", extra={"counter": counter, "error": str(e)})
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            logger.warning("Usage counter invalid", extra={"counter": counter, "value": repr(value)})
            return None
        return value

    async def _sync_usage_or_raise(self) -> UsageState:
        logger.info("Syncing usage counters")
        articles, images = await self._bounded(
            "usage",
            _gather_or_cancel(
                self._counter_or_none("total_articles", self._client.fetch_article_count()),
                self._counter_or_none("monthly_images_used", self._client.fetch_monthly_image_usage()),
            ),
        )
        if articles is None and images is None:
            raise SyncFailure("usage", "all usage counters unavailable")

        usage = UsageState(
            total_articles=articles if articles is not None else 0,
            monthly_images_used=images if images is not None else 0,
            is_loading=False,
        )
        self._usage = usage
        logger.info("Usage synced", extra={
            "total_articles": usage.total_articles,
            "monthly_images_used": usage.monthly_images_used,
        })
        return usage
