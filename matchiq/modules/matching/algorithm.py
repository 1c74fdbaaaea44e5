"""Matching Algorithm: pure deterministic pair scoring.

Four dimensions, each in [0, 1], combined under a resolved weight vector
into an integer total 0–100. No I/O: every input arrives as a snapshot and
every reference table (industry catalog, FX rates) is injected up front.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from matchiq.modules.matching.criteria import DIMENSIONS
from matchiq.modules.matching.currency import CurrencyConverter
from matchiq.modules.matching.financial import score_financial
from matchiq.modules.matching.geography import score_geography
from matchiq.modules.matching.industry import score_industry
from matchiq.modules.matching.industry_reference import IndustryCatalog, IndustryReference
from matchiq.modules.matching.snapshots import InvestorSnapshot, TargetSnapshot
from matchiq.modules.matching.transaction import score_transaction
from matchiq.modules.matching.weights import resolve_weights


@dataclass
class PairScore:
    investor_id: int
    target_id: int
    total_score: int
    industry: float
    geography: float
    financial: float
    transaction: float
    explanations: dict[str, str] = field(default_factory=dict)

    def dimension_scores(self) -> dict[str, float]:
        return {dim: getattr(self, dim) for dim in DIMENSIONS}

    def to_dict(self) -> dict[str, Any]:
        return {
            "investor_id": self.investor_id,
            "target_id": self.target_id,
            "total_score": self.total_score,
            **self.dimension_scores(),
            "explanations": dict(self.explanations),
        }


def combine(scores: Mapping[str, float], weights: Mapping[str, float]) -> int:
    """Weighted total on the 0–100 scale, rounded half-up and clamped."""
    weighted = sum(scores[dim] * weights[dim] for dim in DIMENSIONS)
    total = math.floor(weighted * 100 + 0.5)
    return max(0, min(100, total))


class MatchingAlgorithm:
    """
    Deterministic fit scoring between an Investor and a Target.

    Dimensions: industry, geography, financial, transaction.
    """

    def __init__(
        self,
        catalog: IndustryCatalog | None = None,
        converter: CurrencyConverter | None = None,
        reference: IndustryReference | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else IndustryCatalog()
        self.converter = converter if converter is not None else CurrencyConverter({})
        self.reference = reference if reference is not None else IndustryReference(self.catalog)

    def score_pair(
        self,
        investor: InvestorSnapshot,
        target: TargetSnapshot,
        weights: Mapping[str, float] | None = None,
    ) -> PairScore:
        """Score one pair. ``weights`` are resolved here unless already resolved by the caller.

        Raises MalformedFieldError when a nested field cannot be coerced.
        """
        resolved = resolve_weights(weights)
        industry, industry_text = score_industry(investor, target, self.catalog, self.reference)
        geography, geography_text = score_geography(investor, target)
        financial, financial_text = score_financial(investor, target, self.converter)
        transaction, transaction_text = score_transaction(investor, target)

        scores = {
            "industry": industry,
            "geography": geography,
            "financial": financial,
            "transaction": transaction,
        }
        return PairScore(
            investor_id=investor.id,
            target_id=target.id,
            total_score=combine(scores, resolved),
            industry=round(industry, 4),
            geography=round(geography, 4),
            financial=round(financial, 4),
            transaction=round(transaction, 4),
            explanations={
                "industry": industry_text,
                "geography": geography_text,
                "financial": financial_text,
                "transaction": transaction_text,
            },
        )
