"""Dimension weight resolution."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from matchiq.modules.matching.criteria import DEFAULT_WEIGHTS, DIMENSIONS, WEIGHT_SUM_TOLERANCE


def _weight(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(weight) or weight < 0:
        return default
    return weight


def resolve_weights(weights: Mapping[str, Any] | None = None) -> dict[str, float]:
    """Return exactly the four dimension weights, summing to ~1.0.

    Missing or unusable entries fall back to their defaults and unknown keys
    are ignored. A vector whose sum is off by more than the tolerance is
    re-normalized proportionally. Never raises.
    """
    if not isinstance(weights, Mapping) or not weights:
        return dict(DEFAULT_WEIGHTS)

    resolved = {dim: _weight(weights.get(dim, DEFAULT_WEIGHTS[dim]), DEFAULT_WEIGHTS[dim]) for dim in DIMENSIONS}
    total = sum(resolved.values())
    if total <= 0:
        return dict(DEFAULT_WEIGHTS)
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        resolved = {dim: value / total for dim, value in resolved.items()}
    return resolved
