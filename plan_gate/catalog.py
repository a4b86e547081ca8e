"""
Static feature and upgrade-prompt registries.

The built-in catalog below is the default; a JSON document can replace it
through plan_gate.loader.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional

from .models import FREE_PLAN, PRO_PLAN, UNLIMITED, Feature, UpgradePrompt, UsageState

DEFAULT_PROMPT_ID = "platform-locked"

_USAGE_COUNTERS = frozenset(f.name for f in fields(UsageState) if f.name != "is_loading")


@dataclass(frozen=True)
class UsageMeter:
    """Associates a metered feature with the usage counter checked against its free limit."""

    feature_id: str
    counter: str
    prompt_id: str
    reason_template: str

    def __post_init__(self) -> None:
        if self.counter not in _USAGE_COUNTERS:
            raise ValueError(
                f"meter for '{self.feature_id}' references unknown usage counter: {self.counter!r}"
            )

    def read(self, usage: UsageState) -> int:
        return getattr(usage, self.counter)

    def reason(self, used: int, limit: int) -> str:
        return self.reason_template.format(used=used, limit=limit)


class FeatureCatalog:
    """Feature id -> Feature, in declaration order."""

    def __init__(self, features: Iterable[Feature]) -> None:
        by_id: Dict[str, Feature] = {}
        for feature in features:
            if feature.id in by_id:
                raise ValueError(f"duplicate feature id: {feature.id}")
            by_id[feature.id] = feature
        self._features: Mapping[str, Feature] = MappingProxyType(by_id)

    def get(self, feature_id: str) -> Optional[Feature]:
        return self._features.get(str(feature_id).strip())

    def __contains__(self, feature_id: object) -> bool:
        return isinstance(feature_id, str) and feature_id.strip() in self._features

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features.values())

    def __len__(self) -> int:
        return len(self._features)


class UpgradePromptCatalog:
    """Prompt id -> UpgradePrompt, in declaration order, with a designated default."""

    def __init__(self, prompts: Iterable[UpgradePrompt], default_prompt_id: str = DEFAULT_PROMPT_ID) -> None:
        by_id: Dict[str, UpgradePrompt] = {}
        for prompt in prompts:
            if prompt.id in by_id:
                raise ValueError(f"duplicate prompt id: {prompt.id}")
            by_id[prompt.id] = prompt
        if default_prompt_id not in by_id:
            raise ValueError(f"default prompt '{default_prompt_id}' is not declared")
        self._prompts: Mapping[str, UpgradePrompt] = MappingProxyType(by_id)
        self.default_prompt_id = default_prompt_id

    @property
    def default(self) -> UpgradePrompt:
        return self._prompts[self.default_prompt_id]

    def get(self, prompt_id: Optional[str]) -> Optional[UpgradePrompt]:
        if not prompt_id:
            return None
        return self._prompts.get(prompt_id)

    def resolve(self, prompt_id: Optional[str]) -> UpgradePrompt:
        """Lookup that falls back to the default prompt; never returns None."""
        return self.get(prompt_id) or self.default

    def first_advertising(self, feature_id: str) -> Optional[str]:
        for prompt in self._prompts.values():
            if prompt.advertises(feature_id):
                return prompt.id
        return None

    def __iter__(self) -> Iterator[UpgradePrompt]:
        return iter(self._prompts.values())


@dataclass(frozen=True)
class Catalogs:
    features: FeatureCatalog
    prompts: UpgradePromptCatalog
    meters: Mapping[str, UsageMeter]

    def __post_init__(self) -> None:
        meters = dict(self.meters)
        for feature_id, meter in meters.items():
            if feature_id not in self.features:
                raise ValueError(f"meter references unknown feature: {feature_id}")
            if self.prompts.get(meter.prompt_id) is None:
                raise ValueError(f"meter for '{feature_id}' references unknown prompt: {meter.prompt_id}")
        for prompt in self.prompts:
            for feature_id in prompt.feature_ids:
                if feature_id not in self.features:
                    raise ValueError(f"prompt '{prompt.id}' advertises unknown feature: {feature_id}")
        object.__setattr__(self, "meters", MappingProxyType(meters))

    def meter_for(self, feature_id: str) -> Optional[UsageMeter]:
        return self.meters.get(feature_id)


def _pro_only(feature_id: str, display_name: str, description: str) -> Feature:
    return Feature(id=feature_id, display_name=display_name, description=description, plans=frozenset({PRO_PLAN}))


BUILTIN_FEATURES = (
    Feature(
        id="unlimited-articles",
        display_name="Unlimited article storage",
        description="Save an unlimited number of articles",
        plans=frozenset({FREE_PLAN, PRO_PLAN}),
        limits={FREE_PLAN: 5, PRO_PLAN: UNLIMITED},
    ),
    _pro_only("multi-platform", "Multi-platform publishing", "Publish to Zhihu, Juejin and Knowledge Planet"),
    _pro_only("zhihu-platform", "Zhihu", "Publish to Zhihu columns"),
    _pro_only("juejin-platform", "Juejin", "Publish to the Juejin community"),
    _pro_only("zsxq-platform", "Knowledge Planet", "Publish to Knowledge Planet"),
    _pro_only("advanced-styles", "Professional styles", "Use the technical and minimalist templates"),
    _pro_only("publish-presets", "Publish presets", "Create and manage publishing templates"),
    Feature(
        id="cloud-images",
        display_name="Cloud image storage",
        description="Store and manage images in the cloud",
        plans=frozenset({FREE_PLAN, PRO_PLAN}),
        limits={FREE_PLAN: 20, PRO_PLAN: 100},
    ),
    _pro_only("video_wechat-platform", "WeChat Channels", "Publish to WeChat Channels"),
    _pro_only("douyin-platform", "Douyin", "Publish short videos to Douyin"),
    _pro_only("bilibili-platform", "Bilibili", "Publish videos to Bilibili"),
    _pro_only("xiaohongshu-platform", "Xiaohongshu", "Publish videos to Xiaohongshu"),
)

BUILTIN_PROMPTS = (
    UpgradePrompt(
        id="article-limit",
        title="Article storage is full",
        description="The free plan stores up to 5 articles. Upgrade to Pro for unlimited storage.",
        feature_ids=("unlimited-articles", "multi-platform", "advanced-styles"),
        cta_text="Upgrade to Pro",
        style="card",
    ),
    UpgradePrompt(
        id="platform-locked",
        title="Unlock more platforms",
        description="Upgrade to Pro to publish to Zhihu, Juejin and Knowledge Planet in one click.",
        feature_ids=("zhihu-platform", "juejin-platform", "zsxq-platform"),
        cta_text="Unlock all platforms",
        style="modal",
    ),
    UpgradePrompt(
        id="style-locked",
        title="Use professional styles",
        description="Technical and minimalist styles make your articles stand out.",
        feature_ids=("advanced-styles",),
        cta_text="Unlock professional styles",
        style="inline",
    ),
    UpgradePrompt(
        id="preset-locked",
        title="Create publish presets",
        description="Save your usual publishing settings and publish faster.",
        feature_ids=("publish-presets",),
        cta_text="Unlock presets",
        style="tooltip",
    ),
    UpgradePrompt(
        id="cloud-images-limit",
        title="Image storage is full",
        description="The free plan includes 20 images per month. Upgrade to Pro for a larger monthly quota.",
        feature_ids=("cloud-images",),
        cta_text="Get more image quota",
        style="inline",
    ),
)

BUILTIN_METERS = (
    UsageMeter(
        feature_id="unlimited-articles",
        counter="total_articles",
        prompt_id="article-limit",
        reason_template="free plan allows at most {limit} articles ({used}/{limit})",
    ),
    UsageMeter(
        feature_id="cloud-images",
        counter="monthly_images_used",
        prompt_id="cloud-images-limit",
        reason_template="monthly image limit reached ({used}/{limit})",
    ),
)


def default_catalogs() -> Catalogs:
    return Catalogs(
        features=FeatureCatalog(BUILTIN_FEATURES),
        prompts=UpgradePromptCatalog(BUILTIN_PROMPTS, DEFAULT_PROMPT_ID),
        meters={meter.feature_id: meter for meter in BUILTIN_METERS},
    )
