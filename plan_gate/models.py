from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import FrozenSet, Literal, Mapping, Optional, Tuple

PlanId = Literal["free", "pro"]
PromptStyle = Literal["card", "modal", "inline", "tooltip"]

FREE_PLAN: PlanId = "free"
PRO_PLAN: PlanId = "pro"
KNOWN_PLANS: FrozenSet[str] = frozenset({FREE_PLAN, PRO_PLAN})
PROMPT_STYLES: FrozenSet[str] = frozenset({"card", "modal", "inline", "tooltip"})

UNLIMITED = -1

_SECONDS_PER_DAY = 24 * 60 * 60


def _require_id(value: str, field_name: str) -> str:
    normalized = str(value).strip()
    if not normalized:
        raise ValueError(f"{field_name} is required")
    return normalized


@dataclass(frozen=True)
class Feature:
    """A named capability gated by plan membership and optionally a numeric limit."""

    id: str
    display_name: str
    description: str
    plans: FrozenSet[str]
    limits: Optional[Mapping[str, int]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _require_id(self.id, "feature id"))
        plans = frozenset(str(p).strip() for p in self.plans)
        unknown = plans - KNOWN_PLANS
        if unknown:
            raise ValueError(f"feature '{self.id}' references unknown plans: {sorted(unknown)}")
        object.__setattr__(self, "plans", plans)
        if self.limits is not None:
            object.__setattr__(self, "limits", MappingProxyType(dict(self.limits)))

    @property
    def is_pro_exclusive(self) -> bool:
        return FREE_PLAN not in self.plans

    def limit_for(self, plan: str) -> int:
        """Configured limit for ``plan``; 0 when the feature is not numerically limited."""
        if not self.limits:
            return 0
        return self.limits.get(plan) or 0


@dataclass(frozen=True)
class UpgradePrompt:
    """Catalog entry describing how to upsell when access is denied."""

    id: str
    title: str
    description: str
    feature_ids: Tuple[str, ...]
    cta_text: str
    style: PromptStyle

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _require_id(self.id, "prompt id"))
        object.__setattr__(self, "feature_ids", tuple(self.feature_ids))
        if self.style not in PROMPT_STYLES:
            raise ValueError(f"prompt '{self.id}' has unknown style: {self.style!r}")

    def advertises(self, feature_id: str) -> bool:
        return feature_id in self.feature_ids

    def to_dict(self) -> dict:
        d = asdict(self)
        d["feature_ids"] = list(self.feature_ids)
        return d


@dataclass(frozen=True)
class EntitlementState:
    """Resolved plan/expiry/pro status. Flags are trusted verbatim from the backend."""

    plan: PlanId
    expires_at: Optional[datetime]
    is_pro: bool
    is_expired: bool
    is_loading: bool = False

    def __post_init__(self) -> None:
        if self.plan not in KNOWN_PLANS:
            raise ValueError(f"unknown plan: {self.plan!r}")
        if self.expires_at is not None and self.expires_at.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware")

    @classmethod
    def loading(cls) -> "EntitlementState":
        return cls(plan=FREE_PLAN, expires_at=None, is_pro=False, is_expired=False, is_loading=True)

    @classmethod
    def fallback(cls) -> "EntitlementState":
        return cls(plan=FREE_PLAN, expires_at=None, is_pro=False, is_expired=False, is_loading=False)

    def days_remaining(self, now: Optional[datetime] = None) -> int:
        if self.expires_at is None:
            return 0
        compare_at = now or datetime.now(timezone.utc)
        seconds = (self.expires_at - compare_at).total_seconds()
        return max(0, math.ceil(seconds / _SECONDS_PER_DAY))


@dataclass(frozen=True)
class UsageState:
    """Consumption counters compared against feature limits."""

    total_articles: int
    monthly_images_used: int
    is_loading: bool = False

    def __post_init__(self) -> None:
        if self.total_articles < 0:
            raise ValueError("total_articles must be >= 0")
        if self.monthly_images_used < 0:
            raise ValueError("monthly_images_used must be >= 0")

    @classmethod
    def loading(cls) -> "UsageState":
        return cls(total_articles=0, monthly_images_used=0, is_loading=True)

    @classmethod
    def fallback(cls) -> "UsageState":
        return cls(total_articles=0, monthly_images_used=0, is_loading=False)


@dataclass(frozen=True)
class AccessDecision:
    """Verdict of an access check. ``prompt_id`` names the upgrade prompt to show on denial."""

    granted: bool
    reason: Optional[str] = None
    prompt_id: Optional[str] = None


@dataclass(frozen=True)
class PlatformAvailability:
    available: bool
    reason: Optional[str] = None
    prompt_id: Optional[str] = None


@dataclass(frozen=True)
class PlanSnapshot:
    """Read-only presentation view of entitlement + usage."""

    plan: PlanId
    expires_at: Optional[datetime]
    is_pro: bool
    is_expired: bool
    is_loading: bool
    total_articles: int
    monthly_images_used: int
    usage_loading: bool
    days_remaining: int

    @classmethod
    def build(
        cls,
        entitlement: EntitlementState,
        usage: UsageState,
        *,
        now: Optional[datetime] = None,
    ) -> "PlanSnapshot":
        return cls(
            plan=entitlement.plan,
            expires_at=entitlement.expires_at,
            is_pro=entitlement.is_pro,
            is_expired=entitlement.is_expired,
            is_loading=entitlement.is_loading,
            total_articles=usage.total_articles,
            monthly_images_used=usage.monthly_images_used,
            usage_loading=usage.is_loading,
            days_remaining=entitlement.days_remaining(now),
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return d
