"""
Subscription plan gating for client applications.

This package provides:
- FeatureCatalog / UpgradePromptCatalog: static feature and upsell registries
- CatalogLoader: load catalogs from a JSON document
- SyncCoordinator: deadline-guarded entitlement/usage sync with fail-safe fallback
- AccessEvaluator: pure feature access decisions and prompt selection
- PlatformGate: publishing platform availability
- SubscriptionService: the wired-up service object used by client code
"""

from plan_gate.cache import SyncCache
from plan_gate.catalog import (
    DEFAULT_PROMPT_ID,
    Catalogs,
    FeatureCatalog,
    UpgradePromptCatalog,
    UsageMeter,
    default_catalogs,
)
from plan_gate.client import PlanGateClient
from plan_gate.config import Settings
from plan_gate.errors import BackendRequestError, PlanGateError, SyncFailure
from plan_gate.evaluator import AccessEvaluator, StaticState
from plan_gate.loader import CatalogLoader, load_catalogs
from plan_gate.models import (
    AccessDecision,
    EntitlementState,
    Feature,
    PlanSnapshot,
    PlatformAvailability,
    UpgradePrompt,
    UsageState,
)
from plan_gate.platforms import PlatformEntry, PlatformGate, PlatformRegistry
from plan_gate.service import SubscriptionService
from plan_gate.sync import SyncCoordinator

__all__ = [
    # Catalogs
    "Catalogs",
    "FeatureCatalog",
    "UpgradePromptCatalog",
    "UsageMeter",
    "DEFAULT_PROMPT_ID",
    "default_catalogs",
    "CatalogLoader",
    "load_catalogs",
    # Models
    "AccessDecision",
    "EntitlementState",
    "Feature",
    "PlanSnapshot",
    "PlatformAvailability",
    "UpgradePrompt",
    "UsageState",
    # Sync
    "PlanGateClient",
    "SyncCache",
    "SyncCoordinator",
    # Evaluation
    "AccessEvaluator",
    "StaticState",
    "PlatformEntry",
    "PlatformGate",
    "PlatformRegistry",
    # Service
    "SubscriptionService",
    "Settings",
    # Errors
    "PlanGateError",
    "SyncFailure",
    "BackendRequestError",
]
