from __future__ import annotations

import json
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional

from .catalog import DEFAULT_PROMPT_ID, Catalogs, FeatureCatalog, UpgradePromptCatalog, UsageMeter
from .models import KNOWN_PLANS, PROMPT_STYLES, Feature, UpgradePrompt


class CatalogLoader:
    """Loads feature/prompt catalogs from a JSON document with reload support."""

    def __init__(self, config_path: str) -> None:
        self._config_path = Path(config_path)
        self._lock = RLock()
        self._catalogs: Catalogs
        self.reload()

    @property
    def catalogs(self) -> Catalogs:
        with self._lock:
            return self._catalogs

    def reload(self) -> None:
        """Re-read the document; the previous catalogs stay in place if parsing fails."""
        raw = self._read_config_file()
        parsed = parse_catalogs(raw)
        with self._lock:
            self._catalogs = parsed

    def _read_config_file(self) -> dict:
        with self._config_path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict):
            raise ValueError(f"{self._config_path} must contain a top-level object")
        return raw


def load_catalogs(config_path: str) -> Catalogs:
    return CatalogLoader(config_path).catalogs


def _required_str(entry: dict, key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{where} must have a non-empty string '{key}'")
    return value.strip()


def _parse_feature(entry: object, index: int) -> Feature:
    where = f"features[{index}]"
    if not isinstance(entry, dict):
        raise ValueError(f"{where} must be an object")
    feature_id = _required_str(entry, "id", where)
    where = f"feature '{feature_id}'"

    plans = entry.get("plans")
    if not isinstance(plans, list) or not plans:
        raise ValueError(f"{where} plans must be a non-empty list")
    for plan in plans:
        if plan not in KNOWN_PLANS:
            raise ValueError(f"{where} has unknown plan: {plan!r}")

    limits: Optional[Dict[str, int]] = None
    raw_limits = entry.get("limits")
    if raw_limits is not None:
        if not isinstance(raw_limits, dict):
            raise ValueError(f"{where} limits must be an object")
        limits = {}
        for plan, value in raw_limits.items():
            if plan not in plans:
                raise ValueError(f"{where} has a limit for plan '{plan}' outside its plan set")
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{where} limit for '{plan}' must be an integer")
            limits[plan] = value

    return Feature(
        id=feature_id,
        display_name=str(entry.get("name") or feature_id),
        description=str(entry.get("description") or ""),
        plans=frozenset(plans),
        limits=limits,
    )


def _parse_prompt(entry: object, index: int) -> UpgradePrompt:
    where = f"prompts[{index}]"
    if not isinstance(entry, dict):
        raise ValueError(f"{where} must be an object")
    prompt_id = _required_str(entry, "id", where)
    where = f"prompt '{prompt_id}'"

    feature_ids = entry.get("features", [])
    if not isinstance(feature_ids, list) or not all(isinstance(f, str) for f in feature_ids):
        raise ValueError(f"{where} features must be a list of feature ids")

    style = entry.get("style", "card")
    if style not in PROMPT_STYLES:
        raise ValueError(f"{where} has unknown style: {style!r}")

    return UpgradePrompt(
        id=prompt_id,
        title=_required_str(entry, "title", where),
        description=str(entry.get("description") or ""),
        feature_ids=tuple(feature_ids),
        cta_text=_required_str(entry, "cta", where),
        style=style,
    )


def _parse_meter(entry: object, index: int) -> UsageMeter:
    where = f"meters[{index}]"
    if not isinstance(entry, dict):
        raise ValueError(f"{where} must be an object")
    return UsageMeter(
        feature_id=_required_str(entry, "feature", where),
        counter=_required_str(entry, "counter", where),
        prompt_id=_required_str(entry, "prompt", where),
        reason_template=_required_str(entry, "reason", where),
    )


def _ensure_unique(ids: List[str], kind: str) -> None:
    seen = set()
    for item_id in ids:
        if item_id in seen:
            raise ValueError(f"duplicate {kind} id: {item_id}")
        seen.add(item_id)


def parse_catalogs(raw: dict) -> Catalogs:
    features_raw = raw.get("features")
    if not isinstance(features_raw, list):
        raise ValueError("catalog document must include a list field named 'features'")
    prompts_raw = raw.get("prompts")
    if not isinstance(prompts_raw, list):
        raise ValueError("catalog document must include a list field named 'prompts'")
    meters_raw = raw.get("meters", [])
    if not isinstance(meters_raw, list):
        raise ValueError("catalog 'meters' must be a list")

    features = [_parse_feature(entry, i) for i, entry in enumerate(features_raw)]
    prompts = [_parse_prompt(entry, i) for i, entry in enumerate(prompts_raw)]
    meters = [_parse_meter(entry, i) for i, entry in enumerate(meters_raw)]

    _ensure_unique([f.id for f in features], "feature")
    _ensure_unique([p.id for p in prompts], "prompt")
    _ensure_unique([m.feature_id for m in meters], "meter feature")

    default_prompt_id = raw.get("default_prompt_id", DEFAULT_PROMPT_ID)
    if default_prompt_id not in {p.id for p in prompts}:
        raise ValueError(f"default prompt '{default_prompt_id}' is not declared")

    return Catalogs(
        features=FeatureCatalog(features),
        prompts=UpgradePromptCatalog(prompts, default_prompt_id),
        meters={meter.feature_id: meter for meter in meters},
    )
