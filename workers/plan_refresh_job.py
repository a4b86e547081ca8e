from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from plan_gate.config import Settings
from plan_gate.service import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass
class RefreshStats:
    started_at: str
    completed_at: Optional[str] = None
    plan: Optional[str] = None
    is_pro: bool = False
    errors: int = 0


async def run_refresh_cycle(service: SubscriptionService) -> RefreshStats:
    """Background re-sync so long sessions pick up plan changes.

    refresh() absorbs sync failures itself; errors counts anything else.
    """
    stats = RefreshStats(started_at=datetime.now(timezone.utc).isoformat())

    try:
        snapshot = await service.refresh()
        stats.plan = snapshot.plan
        stats.is_pro = snapshot.is_pro
    except Exception:
        logger.exception("Plan refresh cycle failed")
        stats.errors += 1

    stats.completed_at = datetime.now(timezone.utc).isoformat()
    return stats


async def run_forever(service: SubscriptionService, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        stats = await run_refresh_cycle(service)
        logger.info("Plan refresh cycle complete", extra={
            "plan": stats.plan,
            "is_pro": stats.is_pro,
            "errors": stats.errors,
        })


async def _run(settings: Settings) -> None:
    async with SubscriptionService.from_settings(settings) as service:
        await service.init()
        await run_forever(service, settings.refresh_interval)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    settings = Settings.from_env()
    logger.info("Plan refresh job starting", extra={"interval_seconds": settings.refresh_interval})
    asyncio.run(_run(settings))


if __name__ == "__main__":
    main()
