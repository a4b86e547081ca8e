from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Optional, Union

from .cache import SyncCache
from .catalog import Catalogs, default_catalogs
from .client import BackendClient, PlanGateClient
from .config import Settings
from .evaluator import AccessEvaluator
from .loader import load_catalogs
from .models import (
    AccessDecision,
    EntitlementState,
    PlanSnapshot,
    PlatformAvailability,
    UpgradePrompt,
    UsageState,
)
from .platforms import PlatformEntry, PlatformGate, PlatformRegistry
from .sync import SyncCoordinator

logger = logging.getLogger(__name__)

UPGRADE_PROMPT_EVENT = "upgrade-prompt"
ARTICLE_FEATURE_ID = "unlimited-articles"

EventEmitter = Callable[[str, dict], None]


class SubscriptionService:
    """Subscription state, sync and access checks for one client session.

    Collaborators (backend client, platform registry, event emitter) are
    injected so the service can run without a live backend.
    """

    def __init__(
        self,
        *,
        client: BackendClient,
        platforms: Union[PlatformRegistry, Iterable[Union[PlatformEntry, Mapping]]] = (),
        emit: Optional[EventEmitter] = None,
        catalogs: Optional[Catalogs] = None,
        settings: Optional[Settings] = None,
        cache: Optional[SyncCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.catalogs = catalogs or default_catalogs()
        self._client = client
        self._owns_client = False
        self.coordinator = SyncCoordinator(
            client,
            cache=cache or SyncCache(self.settings.cache_ttl),
            init_timeout=self.settings.init_timeout,
            fetch_timeout=self.settings.fetch_timeout,
        )
        self.evaluator = AccessEvaluator(self.catalogs, self.coordinator)
        registry = platforms if isinstance(platforms, PlatformRegistry) else PlatformRegistry(platforms)
        self.platform_gate = PlatformGate(registry, self.evaluator, self.settings.baseline_platform_id)
        self._emit = emit or (lambda event, payload: None)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        platforms: Union[PlatformRegistry, Iterable[Union[PlatformEntry, Mapping]]] = (),
        emit: Optional[EventEmitter] = None,
    ) -> "SubscriptionService":
        """Build a service that talks to the configured backend and owns its HTTP client."""
        catalogs = load_catalogs(settings.catalog_path) if settings.catalog_path else None
        client = PlanGateClient(settings.api_base_url, api_token=settings.api_token)
        service = cls(client=client, platforms=platforms, emit=emit, catalogs=catalogs, settings=settings)
        service._owns_client = True
        return service

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # -- sync ---------------------------------------------------------------

    async def init(self) -> PlanSnapshot:
        return await self.coordinator.init()

    async def sync_entitlement(self) -> EntitlementState:
        return await self.coordinator.sync_entitlement()

    async def sync_usage(self) -> UsageState:
        return await self.coordinator.sync_usage()

    async def refresh(self) -> PlanSnapshot:
        return await self.coordinator.refresh()

    @property
    def entitlement(self) -> EntitlementState:
        return self.coordinator.entitlement

    @property
    def usage(self) -> UsageState:
        return self.coordinator.usage

    # -- access checks (synchronous) -----------------------------------------

    def has_feature(self, feature_id: str) -> bool:
        return self.evaluator.has_feature(feature_id)

    def limit_for(self, feature_id: str) -> int:
        return self.evaluator.limit_for(feature_id)

    def check_access(self, feature_id: str) -> AccessDecision:
        return self.evaluator.check_access(feature_id)

    def is_platform_available(self, platform_id: str) -> PlatformAvailability:
        return self.platform_gate.is_platform_available(platform_id)

    def can_create_article(self) -> AccessDecision:
        return self.evaluator.check_access(ARTICLE_FEATURE_ID)

    def remaining_days(self, now: Optional[datetime] = None) -> int:
        return self.coordinator.entitlement.days_remaining(now or self._clock())

    def get_user_plan_snapshot(self) -> PlanSnapshot:
        return self.coordinator.snapshot(self._clock())

    def get_upgrade_prompt(self, prompt_id: Optional[str] = None) -> UpgradePrompt:
        return self.catalogs.prompts.resolve(prompt_id)

    def notify_upgrade_prompt(self, prompt_id: Optional[str] = None) -> None:
        """Emit an upgrade-prompt event. Fire-and-forget: emitter failures are logged only."""
        prompt = self.get_upgrade_prompt(prompt_id)
        payload = {
            "prompt": prompt.to_dict(),
            "user_plan": self.get_user_plan_snapshot().to_dict(),
        }
        try:
            self._emit(UPGRADE_PROMPT_EVENT, payload)
        except Exception:
            logger.exception("Upgrade prompt emit failed", extra={"prompt_id": prompt.id})
