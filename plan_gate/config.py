"""
Plan gate configuration from environment.

All timeouts are in seconds.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:3000/api"
DEFAULT_INIT_TIMEOUT = 10.0
DEFAULT_FETCH_TIMEOUT = 8.0
DEFAULT_CACHE_TTL = 300.0
DEFAULT_BASELINE_PLATFORM = "wechat"
DEFAULT_REFRESH_INTERVAL = 300.0


def _env_float(name: str, default: float, *, positive: bool = False) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if positive and value <= 0:
        raise ValueError(f"{name} must be > 0, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the subscription service."""
    api_base_url: str = DEFAULT_API_BASE_URL
    api_token: Optional[str] = None
    init_timeout: float = DEFAULT_INIT_TIMEOUT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    baseline_platform_id: str = DEFAULT_BASELINE_PLATFORM
    catalog_path: Optional[str] = None
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from PLAN_GATE_* environment variables."""
        settings = cls(
            api_base_url=os.getenv("PLAN_GATE_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            api_token=os.getenv("PLAN_GATE_API_TOKEN") or None,
            init_timeout=_env_float("PLAN_GATE_INIT_TIMEOUT_SECONDS", DEFAULT_INIT_TIMEOUT, positive=True),
            fetch_timeout=_env_float("PLAN_GATE_FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT, positive=True),
            cache_ttl=_env_float("PLAN_GATE_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL),
            baseline_platform_id=os.getenv("PLAN_GATE_BASELINE_PLATFORM", DEFAULT_BASELINE_PLATFORM),
            catalog_path=os.getenv("PLAN_GATE_CATALOG_PATH") or None,
            refresh_interval=_env_float("PLAN_GATE_REFRESH_INTERVAL_SECONDS", DEFAULT_REFRESH_INTERVAL),
        )

        if not settings.api_token:
            logger.warning(
                "Plan gate API token not configured",
                extra={"api_base_url": settings.api_base_url},
            )

        return settings
