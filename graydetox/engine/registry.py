"""Feature registry.

Holds the ordered set of known features and answers, per capability, which
active features implement it. "Active" membership is persisted in the
settings store under ``active_features`` and may be toggled from outside; the
per-capability subsets are keyed by the active set they were computed from,
so a toggle is visible on the very next lookup.
"""

from __future__ import annotations

from typing import Iterable

from graydetox.logger import logger

from .capabilities import Capability, Feature, missing_members
from .ports import SettingsStore

ACTIVE_FEATURES_KEY = "active_features"


class FeatureRegistry:
    def __init__(self, store: SettingsStore, features: Iterable[Feature] = ()) -> None:
        self._store = store
        self._features: list[Feature] = []
        self._cache_key: frozenset[str] | None = None
        self._by_capability: dict[Capability, list[Feature]] = {}
        for feature in features:
            self.register(feature)

    def register(self, feature: Feature) -> None:
        if any(f.id == feature.id for f in self._features):
            msg = f"duplicate feature id: {feature.id}"
            raise ValueError(msg)
        missing = missing_members(feature)
        if missing:
            msg = f"{feature.id} declares capabilities it does not implement: {missing}"
            raise ValueError(msg)
        self._features.append(feature)
        self._cache_key = None

    @property
    def features(self) -> list[Feature]:
        return list(self._features)

    def get(self, feature_id: str) -> Feature | None:
        return next((f for f in self._features if f.id == feature_id), None)

    # --- active membership ---

    def _active_ids(self) -> frozenset[str]:
        return frozenset(self._store.get(ACTIVE_FEATURES_KEY, []) or [])

    def is_active(self, feature_id: str) -> bool:
        return feature_id in self._active_ids()

    def set_active(self, feature_id: str, active: bool) -> None:
        if self.get(feature_id) is None:
            msg = f"unknown feature id: {feature_id}"
            raise ValueError(msg)
        ids = set(self._active_ids())
        if active:
            ids.add(feature_id)
        else:
            ids.discard(feature_id)
        # 登録順を保って保存する
        self._store.set(ACTIVE_FEATURES_KEY, [f.id for f in self._features if f.id in ids])
        logger.info("Feature %s active=%s", feature_id, active)

    def active_features(self) -> list[Feature]:
        active = self._active_ids()
        return [f for f in self._features if f.id in active]

    def active_with(self, capability: Capability) -> list[Feature]:
        """capability を実装するアクティブな機能（登録順）."""
        active = self._active_ids()
        if active != self._cache_key:
            self._by_capability = {
                cap: [f for f in self._features if f.id in active and f.implements(cap)]
                for cap in Capability
            }
            self._cache_key = active
        return list(self._by_capability[capability])
