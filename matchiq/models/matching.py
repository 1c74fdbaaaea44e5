"""Match model: one scored Investor × Target pair."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from matchiq.models.base import BaseModel
from matchiq.models.enums import MatchStatus, MatchTier

# (lower bound, tier) in descending order; anything under the last bound is LOW
TIER_BOUNDS: tuple[tuple[int, MatchTier], ...] = (
    (90, MatchTier.EXCELLENT),
    (80, MatchTier.STRONG),
    (70, MatchTier.GOOD),
    (60, MatchTier.FAIR),
)

TIER_LABELS: dict[MatchTier, str] = {
    MatchTier.EXCELLENT: "Excellent Match",
    MatchTier.STRONG: "Strong Match",
    MatchTier.GOOD: "Good Match",
    MatchTier.FAIR: "Fair Match",
    MatchTier.LOW: "Low Match",
}


def tier_for_score(total_score: int) -> MatchTier:
    for lower, tier in TIER_BOUNDS:
        if total_score >= lower:
            return tier
    return MatchTier.LOW


def tier_range(tier: MatchTier) -> tuple[int, int]:
    """Inclusive (low, high) total-score range of a tier."""
    upper = 100
    for lower, candidate in TIER_BOUNDS:
        if candidate == tier:
            return lower, upper
        upper = lower - 1
    return 0, upper


class Match(BaseModel):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("investor_id", "target_id", name="uq_matches_pair"),
        Index("ix_matches_total_score", "total_score"),
        Index("ix_matches_status", "status"),
        Index("ix_matches_investor_status", "investor_id", "status"),
        Index("ix_matches_target_status", "target_id", "status"),
    )

    investor_id: Mapped[int] = mapped_column(
        ForeignKey("investors.id", ondelete="CASCADE"), nullable=False
    )
    target_id: Mapped[int] = mapped_column(
        ForeignKey("targets.id", ondelete="CASCADE"), nullable=False
    )
    total_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    industry_score: Mapped[float] = mapped_column(Numeric(5, 4, asdecimal=False), nullable=False, default=0.0)
    geography_score: Mapped[float] = mapped_column(Numeric(5, 4, asdecimal=False), nullable=False, default=0.0)
    financial_score: Mapped[float] = mapped_column(Numeric(5, 4, asdecimal=False), nullable=False, default=0.0)
    transaction_score: Mapped[float] = mapped_column(Numeric(5, 4, asdecimal=False), nullable=False, default=0.0)
    status: Mapped[MatchStatus] = mapped_column(nullable=False, default=MatchStatus.PENDING)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    reviewed_by: Mapped[int | None] = mapped_column(nullable=True)  # user id from the audit context
    deal_id: Mapped[int | None] = mapped_column(
        ForeignKey("deals.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    investor: Mapped["Investor"] = relationship()  # type: ignore[name-defined]  # noqa: F821
    target: Mapped["Target"] = relationship()  # type: ignore[name-defined]  # noqa: F821

    @property
    def tier(self) -> MatchTier:
        return tier_for_score(self.total_score)

    @property
    def tier_label(self) -> str:
        return TIER_LABELS[self.tier]

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id}, investor={self.investor_id}, target={self.target_id}, "
            f"score={self.total_score}, status={self.status.value})>"
        )
