"""Match persistence: threshold-gated upsert and the status lifecycle."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from matchiq.core.config import settings
from matchiq.core.errors import MatchNotFoundError
from matchiq.models.deals import Deal
from matchiq.models.enums import DealStatus, MatchStatus
from matchiq.models.matching import Match
from matchiq.modules.matching.algorithm import PairScore

logger = structlog.get_logger()

DEAL_INITIAL_STAGE = "F"


class MatchStore:
    """Reads and writes Match rows inside the caller's session.

    The store flushes but never commits; transaction boundaries belong to the
    caller.
    """

    def __init__(self, session: Session, min_score: int | None = None) -> None:
        self.session = session
        self.min_score = settings.MATCH_MIN_SCORE if min_score is None else min_score
        self._existing: dict[tuple[int, int], Match] | None = None

    # ── Upsert ────────────────────────────────────────────────────────────────

    def preload(self, investor_id: int | None = None, target_id: int | None = None) -> int:
        """Load existing matches in one query so upserts skip the per-pair lookup."""
        stmt = select(Match)
        if investor_id is not None:
            stmt = stmt.where(Match.investor_id == investor_id)
        if target_id is not None:
            stmt = stmt.where(Match.target_id == target_id)
        rows = self.session.execute(stmt).scalars().all()
        self._existing = {(m.investor_id, m.target_id): m for m in rows}
        return len(self._existing)

    def _find(self, investor_id: int, target_id: int) -> Match | None:
        key = (investor_id, target_id)
        if self._existing is not None and key in self._existing:
            return self._existing[key]
        return self.session.execute(
            select(Match).where(Match.investor_id == investor_id, Match.target_id == target_id)
        ).scalar_one_or_none()

    def upsert(self, score: PairScore) -> Match | None:
        """Persist a pair score. Returns None when the total is below the threshold.

        Re-scoring overwrites scores and the computed timestamp; the status of
        an existing row is left alone.
        """
        if score.total_score < self.min_score:
            return None

        match = self._find(score.investor_id, score.target_id)
        if match is None:
            match = Match(
                investor_id=score.investor_id,
                target_id=score.target_id,
                status=MatchStatus.PENDING,
            )
            self.session.add(match)

        match.total_score = score.total_score
        match.industry_score = score.industry
        match.geography_score = score.geography
        match.financial_score = score.financial
        match.transaction_score = score.transaction
        match.computed_at = datetime.now(timezone.utc)
        self.session.flush()

        if self._existing is not None:
            self._existing[(score.investor_id, score.target_id)] = match
        return match

    # ── Status lifecycle ──────────────────────────────────────────────────────

    def get(self, match_id: int) -> Match:
        match = self.session.get(Match, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    def _set_status(self, match_id: int, status: MatchStatus, reviewed_by: int | None) -> Match:
        match = self.get(match_id)
        if match.status != status:
            match.status = status
            match.reviewed_by = reviewed_by
            self.session.flush()
            logger.info("match_status_changed", match_id=match_id, status=status.value, reviewed_by=reviewed_by)
        return match

    def dismiss(self, match_id: int, reviewed_by: int | None = None) -> Match:
        return self._set_status(match_id, MatchStatus.DISMISSED, reviewed_by)

    def approve(self, match_id: int, reviewed_by: int | None = None) -> Match:
        return self._set_status(match_id, MatchStatus.APPROVED, reviewed_by)

    def convert(self, match_id: int, reviewed_by: int | None = None) -> int:
        """Create a deal for the match and return its id. Repeated calls return the same deal."""
        match = self.get(match_id)
        if match.status == MatchStatus.CONVERTED and match.deal_id is not None:
            return match.deal_id

        deal = Deal(
            name=f"{match.investor.display_name} × {match.target.display_name}",
            investor_id=match.investor_id,
            target_id=match.target_id,
            status=DealStatus.ACTIVE,
            stage_code=DEAL_INITIAL_STAGE,
            created_by=reviewed_by,
        )
        self.session.add(deal)
        self.session.flush()

        match.status = MatchStatus.CONVERTED
        match.deal_id = deal.id
        match.reviewed_by = reviewed_by
        self.session.flush()
        logger.info("match_converted", match_id=match_id, deal_id=deal.id, reviewed_by=reviewed_by)
        return deal.id
