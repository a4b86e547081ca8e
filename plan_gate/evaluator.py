"""
Access evaluation.

Pure functions of the current entitlement/usage records and the catalogs:
no I/O, no mutation, safe to call from UI render paths at any time.
Unknown ids are denials, never exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .catalog import Catalogs
from .models import FREE_PLAN, AccessDecision, EntitlementState, UsageState

FEATURE_NOT_FOUND = "feature not found"
REQUIRES_PAID_PLAN = "requires paid plan"


class StateSource(Protocol):
    @property
    def entitlement(self) -> EntitlementState: ...

    @property
    def usage(self) -> UsageState: ...


@dataclass(frozen=True)
class StaticState:
    """Fixed state source, for evaluating against a known snapshot."""

    entitlement: EntitlementState
    usage: UsageState


class AccessEvaluator:
    def __init__(self, catalogs: Catalogs, state: StateSource) -> None:
        self.catalogs = catalogs
        self._state = state

    def has_feature(self, feature_id: str) -> bool:
        feature = self.catalogs.features.get(feature_id)
        if feature is None:
            return False
        entitlement = self._state.entitlement
        if feature.is_pro_exclusive:
            return entitlement.is_pro
        return entitlement.plan in feature.plans

    def limit_for(self, feature_id: str) -> int:
        feature = self.catalogs.features.get(feature_id)
        if feature is None:
            return 0
        return feature.limit_for(self._state.entitlement.plan)

    def check_access(self, feature_id: str) -> AccessDecision:
        """Evaluate in order: unknown -> pro -> free (metered) -> paid-only denial."""
        feature = self.catalogs.features.get(feature_id)
        if feature is None:
            return AccessDecision(granted=False, reason=FEATURE_NOT_FOUND)

        entitlement = self._state.entitlement
        # pro is unmetered for every feature it covers
        if entitlement.is_pro:
            return AccessDecision(granted=True)

        if FREE_PLAN in feature.plans:
            limit = feature.limit_for(FREE_PLAN)
            meter = self.catalogs.meter_for(feature.id)
            if limit > 0 and meter is not None:
                used = meter.read(self._state.usage)
                if used >= limit:
                    return AccessDecision(
                        granted=False,
                        reason=meter.reason(used, limit),
                        prompt_id=meter.prompt_id,
                    )
            return AccessDecision(granted=True)

        prompts = self.catalogs.prompts
        prompt_id = prompts.first_advertising(feature.id) or prompts.default_prompt_id
        return AccessDecision(granted=False, reason=REQUIRES_PAID_PLAN, prompt_id=prompt_id)
