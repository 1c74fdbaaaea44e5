"""SQLAlchemy models package: import all models so Base.metadata is populated."""

from matchiq.models.base import BaseModel
from matchiq.models.deals import Deal
from matchiq.models.enums import DealStatus, MatchStatus, MatchTier, ProspectType
from matchiq.models.matching import TIER_LABELS, Match, tier_for_score, tier_range
from matchiq.models.prospects import (
    Investor,
    InvestorFinancialProfile,
    InvestorProfile,
    Target,
    TargetFinancialProfile,
    TargetProfile,
)
from matchiq.models.reference import ExchangeRate, Industry, SubIndustry

__all__ = [
    "BaseModel",
    "Deal",
    "DealStatus",
    "ExchangeRate",
    "Industry",
    "Investor",
    "InvestorFinancialProfile",
    "InvestorProfile",
    "Match",
    "MatchStatus",
    "MatchTier",
    "ProspectType",
    "SubIndustry",
    "TIER_LABELS",
    "Target",
    "TargetFinancialProfile",
    "TargetProfile",
    "tier_for_score",
    "tier_range",
]
