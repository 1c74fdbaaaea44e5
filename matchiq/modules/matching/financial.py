"""Financial fit: investor budget vs. target desired investment.

Both ranges are converted to the reference currency before comparison.
Containment scores 1.0, any overlap 0.7; disjoint ranges decay
logarithmically with the relative gap::

    0.4 * max(0, 1 - log1p(10 * gap / midpoint) / log1p(10))
"""

from __future__ import annotations

import math

from matchiq.modules.matching.criteria import (
    FINANCIAL_CONTAINED,
    FINANCIAL_DECAY_FACTOR,
    FINANCIAL_OVERLAP,
    FINANCIAL_PROXIMITY_SCALE,
)
from matchiq.modules.matching.currency import CurrencyConverter
from matchiq.modules.matching.fields import coerce_range
from matchiq.modules.matching.snapshots import InvestorSnapshot, TargetSnapshot


def _ordered(low: float, high: float) -> tuple[float, float]:
    return (low, high) if low <= high else (high, low)


def proximity(gap: float, midpoint: float) -> float:
    relative_gap = gap / max(midpoint, 1.0)
    decay = math.log1p(FINANCIAL_DECAY_FACTOR * relative_gap) / math.log1p(FINANCIAL_DECAY_FACTOR)
    return FINANCIAL_PROXIMITY_SCALE * max(0.0, 1.0 - decay)


def score_financial(
    investor: InvestorSnapshot,
    target: TargetSnapshot,
    converter: CurrencyConverter,
) -> tuple[float, str]:
    budget = coerce_range("investment_budget", investor.budget)
    desired = coerce_range("expected_investment_amount", target.desired_investment)

    if budget is None and desired is None:
        return 0.0, "Financial: No financial data available"
    if budget is None:
        return 0.0, "Financial: Investor has no budget set"
    if desired is None:
        return 0.0, "Financial: Target has no investment amount set"

    unit = converter.reference_currency
    budget_min = converter.to_reference_currency(budget.low or 0.0, investor.currency)
    budget_max = (
        math.inf if budget.high is None
        else converter.to_reference_currency(budget.high, investor.currency)
    )
    if budget_max != math.inf:
        budget_min, budget_max = _ordered(budget_min, budget_max)

    target_min_raw = desired.low or 0.0
    target_max_raw = desired.high if desired.high is not None else target_min_raw
    target_min, target_max = _ordered(
        converter.to_reference_currency(target_min_raw, target.currency),
        converter.to_reference_currency(target_max_raw, target.currency),
    )

    if target_min >= budget_min and target_max <= budget_max:
        return FINANCIAL_CONTAINED, f"Financial: Deal size fits investor budget perfectly ({unit}-normalised)"
    if target_min <= budget_max and target_max >= budget_min:
        return FINANCIAL_OVERLAP, f"Financial: Partial budget overlap ({unit}-normalised)"

    if budget_max == math.inf:
        # Open-ended budget: the target can only sit below the minimum
        gap = budget_min - target_max
        midpoint = budget_min
    else:
        gap = min(abs(target_min - budget_max), abs(target_max - budget_min))
        midpoint = (budget_min + budget_max) / 2
    return (
        proximity(gap, midpoint),
        f"Financial: Deal size outside investor budget ({unit}-normalised)",
    )
