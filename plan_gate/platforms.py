"""
Publishing platform availability.

Maps entries of the externally supplied platform registry onto access checks.
The baseline platform is the always-free default publishing target and is
exempt from plan checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .config import DEFAULT_BASELINE_PLATFORM
from .evaluator import AccessEvaluator
from .models import PlatformAvailability

logger = logging.getLogger(__name__)

UNKNOWN_PLATFORM = "unknown platform"


@dataclass(frozen=True)
class PlatformEntry:
    id: str
    name: str
    required_plan: Optional[str] = None
    feature_id: Optional[str] = None

    def __post_init__(self) -> None:
        platform_id = str(self.id).strip()
        if not platform_id:
            raise ValueError("platform id is required")
        object.__setattr__(self, "id", platform_id)

    @property
    def is_gated(self) -> bool:
        return bool(self.required_plan) and bool(self.feature_id)

    @classmethod
    def from_mapping(cls, raw: Mapping) -> "PlatformEntry":
        """Build from a registry mapping; accepts camelCase or snake_case keys."""
        return cls(
            id=raw.get("id", ""),
            name=raw.get("name") or raw.get("id", ""),
            required_plan=raw.get("requiredPlan", raw.get("required_plan")),
            feature_id=raw.get("featureId", raw.get("feature_id")),
        )


class PlatformRegistry:
    """Ordered, immutable registry of publishing platforms."""

    def __init__(self, entries: Iterable[Union[PlatformEntry, Mapping]] = ()) -> None:
        ordered: List[PlatformEntry] = []
        by_id: Dict[str, PlatformEntry] = {}
        for raw in entries:
            entry = raw if isinstance(raw, PlatformEntry) else PlatformEntry.from_mapping(raw)
            if entry.id in by_id:
                raise ValueError(f"duplicate platform id: {entry.id}")
            by_id[entry.id] = entry
            ordered.append(entry)
        self._entries = tuple(ordered)
        self._by_id: Mapping[str, PlatformEntry] = MappingProxyType(by_id)

    def get(self, platform_id: str) -> Optional[PlatformEntry]:
        return self._by_id.get(str(platform_id).strip())

    def __iter__(self) -> Iterator[PlatformEntry]:
        return iter(self._entries)


class PlatformGate:
    def __init__(
        self,
        registry: PlatformRegistry,
        evaluator: AccessEvaluator,
        baseline_platform_id: str = DEFAULT_BASELINE_PLATFORM,
    ) -> None:
        self.registry = registry
        self._evaluator = evaluator
        self.baseline_platform_id = baseline_platform_id

    def is_platform_available(self, platform_id: str) -> PlatformAvailability:
        entry = self.registry.get(platform_id)
        if entry is None:
            logger.debug("Platform not in registry", extra={"platform_id": platform_id})
            return PlatformAvailability(available=False, reason=UNKNOWN_PLATFORM)

        if not entry.is_gated:
            return PlatformAvailability(available=True)

        if entry.id == self.baseline_platform_id:
            return PlatformAvailability(available=True)

        decision = self._evaluator.check_access(entry.feature_id)
        logger.debug("Platform access evaluated", extra={
            "platform_id": entry.id,
            "feature_id": entry.feature_id,
            "granted": decision.granted,
        })
        return PlatformAvailability(
            available=decision.granted,
            reason=decision.reason,
            prompt_id=decision.prompt_id,
        )

    def available_platforms(self) -> List[PlatformEntry]:
        """Registry entries the current user can publish to, in registry order."""
        return [entry for entry in self.registry if self.is_platform_available(entry.id).available]
