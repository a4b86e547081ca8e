from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300  # 5 minutes


class SyncCache:
    """In-memory staleness marker for the entitlement sync.

    Holds only the time of the last successful sync; the entitlement record
    itself lives on the coordinator.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._last_sync: Optional[float] = None

    def is_fresh(self) -> bool:
        if self._last_sync is None:
            return False
        return self._clock() - self._last_sync < self._ttl_seconds

    def mark_synced(self) -> None:
        self._last_sync = self._clock()

    def invalidate(self) -> None:
        self._last_sync = None
        logger.debug("Entitlement sync cache invalidated")
