"""Phase 5: Merge per-import feature sets into the final feature list."""

from __future__ import annotations

from typing import Iterable

from windows_features.config import FeatureRequirement


def aggregate_features(requirements: Iterable[FeatureRequirement]) -> tuple[str, ...]:
    """Union all feature sets and return them deduplicated and sorted."""
    features: set[str] = set()
    for requirement in requirements:
        features.update(requirement.features)
    return tuple(sorted(features))
