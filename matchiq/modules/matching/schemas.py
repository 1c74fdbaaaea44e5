"""Matching module schemas: inputs to and results of the service operations."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from matchiq.models.enums import MatchStatus, MatchTier


# ── Dimension scores ──────────────────────────────────────────────────────────


class DimensionScores(BaseModel):
    industry: float
    geography: float
    financial: float
    transaction: float


# ── Live (unsaved) scoring ────────────────────────────────────────────────────


class LiveCriteria(BaseModel):
    """Overrides applied to the investor's stored preferences. Unset keys keep the stored value."""

    industry_ids: list[int] | None = None
    target_countries: list[int | str] | None = None
    budget_min: float | None = Field(default=None, ge=0)
    budget_max: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    ownership_condition: str | list[str] | None = None
    reason_ma: str | list[str] | None = None


class LiveScoreResult(BaseModel):
    target_id: int
    target_name: str
    total_score: int
    tier: MatchTier
    scores: DimensionScores
    explanations: dict[str, str]


# ── Listing ───────────────────────────────────────────────────────────────────


class MatchFilters(BaseModel):
    mode: Literal["investor", "target"] = "investor"   # cluster key
    min_score: int = Field(default=30, ge=0, le=100)
    tier: MatchTier | None = None
    industry_ids: list[int] | None = None
    country_ids: list[int | str] | None = None
    investor_id: int | None = None
    target_id: int | None = None
    statuses: list[MatchStatus] | None = None          # None = pending + approved
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1, le=100)


class ProspectSummary(BaseModel):
    id: int
    code: str | None
    name: str


class MatchEntry(BaseModel):
    id: int
    investor: ProspectSummary
    target: ProspectSummary
    total_score: int
    tier: MatchTier
    tier_label: str
    scores: DimensionScores
    status: MatchStatus
    computed_at: datetime | None
    deal_id: int | None


class MatchCluster(BaseModel):
    prospect: ProspectSummary
    prospect_type: Literal["investor", "target"]
    best_score: int
    match_count: int
    matches: list[MatchEntry]


class MatchListMeta(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int              # clusters
    total_matches: int


class MatchListResponse(BaseModel):
    data: list[MatchCluster]
    meta: MatchListMeta
    weights: dict[str, float]


# ── Detail and stats ──────────────────────────────────────────────────────────


class FinancialSummary(BaseModel):
    currency: str
    amount_min: float | None
    amount_max: float | None
    reference_currency: str
    reference_min: float | None
    reference_max: float | None


class MatchDetailResponse(BaseModel):
    match: MatchEntry
    investor_budget: FinancialSummary | None
    target_investment: FinancialSummary | None
    notes: str | None
    reviewed_by: int | None


class MatchStatsResponse(BaseModel):
    total: int
    excellent: int
    strong: int
    good: int
    fair: int
    avg_score: float

