"""Matching service: rescans, live scoring and match retrieval.

The service owns orchestration only: scoring is delegated to the pure
:class:`MatchingAlgorithm`, persistence to :class:`MatchStore` and registry
reads to :class:`ProspectRepository`. Everything a run needs (prospects,
industry catalog, FX rates, existing matches) is fetched once up front.
"""

from __future__ import annotations

import dataclasses
import math
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog
from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from matchiq.core.config import settings
from matchiq.core.errors import MalformedFieldError
from matchiq.models.enums import MatchStatus, MatchTier
from matchiq.models.matching import Match, tier_for_score, tier_range
from matchiq.models.prospects import Investor, Target
from matchiq.modules.matching.algorithm import MatchingAlgorithm, PairScore
from matchiq.modules.matching.criteria import ENTITY_PANEL_LIMIT, ENTITY_PANEL_MIN_SCORE
from matchiq.modules.matching.fields import MoneyRange, coerce_country_id, coerce_country_ids, coerce_range
from matchiq.modules.matching.industry import investor_industries, target_industries
from matchiq.modules.matching.repository import ProspectRepository
from matchiq.modules.matching.schemas import (
    DimensionScores,
    FinancialSummary,
    LiveCriteria,
    LiveScoreResult,
    MatchCluster,
    MatchDetailResponse,
    MatchEntry,
    MatchFilters,
    MatchListMeta,
    MatchListResponse,
    MatchStatsResponse,
    ProspectSummary,
)
from matchiq.modules.matching.snapshots import InvestorSnapshot, TargetSnapshot
from matchiq.modules.matching.store import MatchStore
from matchiq.modules.matching.weights import resolve_weights

logger = structlog.get_logger()

# Full rescans commit in batches so a late failure keeps earlier work
COMMIT_BATCH_SIZE = 500

ACTIVE_STATUSES = (MatchStatus.PENDING, MatchStatus.APPROVED)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _investor_summary(investor: Investor) -> ProspectSummary:
    return ProspectSummary(id=investor.id, code=investor.code, name=investor.display_name)


def _target_summary(target: Target) -> ProspectSummary:
    return ProspectSummary(id=target.id, code=target.code, name=target.display_name)


def _match_to_entry(match: Match) -> MatchEntry:
    return MatchEntry(
        id=match.id,
        investor=_investor_summary(match.investor),
        target=_target_summary(match.target),
        total_score=match.total_score,
        tier=match.tier,
        tier_label=match.tier_label,
        scores=DimensionScores(
            industry=match.industry_score,
            geography=match.geography_score,
            financial=match.financial_score,
            transaction=match.transaction_score,
        ),
        status=match.status,
        computed_at=match.computed_at,
        deal_id=match.deal_id,
    )


def _match_has_industry(match: Match, wanted: set[int]) -> bool:
    try:
        refs = investor_industries(InvestorSnapshot.from_model(match.investor)) + target_industries(
            TargetSnapshot.from_model(match.target)
        )
    except MalformedFieldError:
        return False
    return any(ref.id in wanted for ref in refs)


def _match_has_country(match: Match, wanted: set[str]) -> bool:
    investor, target = match.investor, match.target
    try:
        countries = set(coerce_country_ids(
            "target_countries", investor.profile.target_countries if investor.profile else None
        ))
        hq_country = coerce_country_id("hq_country", target.profile.hq_country if target.profile else None)
    except MalformedFieldError:
        return False
    return bool(countries & wanted) or hq_country in wanted


class MatchingService:
    def __init__(
        self,
        session: Session,
        min_score: int | None = None,
        reference_currency: str | None = None,
    ) -> None:
        self.session = session
        self.repository = ProspectRepository(session)
        self.store = MatchStore(session, min_score)
        self.reference_currency = reference_currency or settings.MATCH_REFERENCE_CURRENCY
        self._algorithm: MatchingAlgorithm | None = None

    @property
    def algorithm(self) -> MatchingAlgorithm:
        if self._algorithm is None:
            self._algorithm = MatchingAlgorithm(
                catalog=self.repository.industry_catalog(),
                converter=self.repository.currency_converter(self.reference_currency),
            )
        return self._algorithm

    # ── Scoring ───────────────────────────────────────────────────────────────

    def score_pair(
        self,
        investor_id: int,
        target_id: int,
        weights: Mapping[str, Any] | None = None,
    ) -> PairScore:
        """Score a single pair without persisting it."""
        investor = InvestorSnapshot.from_model(self.repository.get_investor(investor_id))
        target = TargetSnapshot.from_model(self.repository.get_target(target_id))
        return self.algorithm.score_pair(investor, target, resolve_weights(weights))

    def _score_pairs(
        self,
        investors: list[InvestorSnapshot],
        targets: list[TargetSnapshot],
        weights: Mapping[str, float],
        *,
        should_stop: Callable[[], bool] | None = None,
        commit_every: int | None = None,
    ) -> dict[str, Any]:
        written: list[Match] = []
        failed = 0
        stopped = False

        for investor in investors:
            for target in targets:
                if should_stop is not None and should_stop():
                    stopped = True
                    break
                try:
                    score = self.algorithm.score_pair(investor, target, weights)
                except SoftTimeLimitExceeded:
                    # Keep what is written so far and let the caller commit it
                    logger.warning(
                        "match_rescan_time_limit",
                        investor_id=investor.id,
                        target_id=target.id,
                        written=len(written),
                    )
                    stopped = True
                    break
                except Exception as exc:
                    failed += 1
                    logger.warning(
                        "match_pair_error",
                        investor_id=investor.id,
                        target_id=target.id,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    continue

                match = self.store.upsert(score)
                if match is None:
                    continue
                written.append(match)
                if commit_every and len(written) % commit_every == 0:
                    self.session.commit()
                    logger.debug("match_rescan_batch_committed", written=len(written))
            if stopped:
                break

        return {"written": written, "failed": failed, "stopped": stopped}

    def rescan_for_investor(self, investor_id: int, weights: Mapping[str, Any] | None = None) -> list[Match]:
        """Score one investor against every active target."""
        investor = InvestorSnapshot.from_model(self.repository.get_investor(investor_id))
        targets = [TargetSnapshot.from_model(t) for t in self.repository.active_targets()]
        self.store.preload(investor_id=investor_id)

        result = self._score_pairs([investor], targets, resolve_weights(weights))
        logger.info(
            "match_rescan_investor_complete",
            investor_id=investor_id,
            targets=len(targets),
            written=len(result["written"]),
            failed=result["failed"],
        )
        return result["written"]

    def rescan_for_target(self, target_id: int, weights: Mapping[str, Any] | None = None) -> list[Match]:
        """Score one target against every active investor."""
        target = TargetSnapshot.from_model(self.repository.get_target(target_id))
        investors = [InvestorSnapshot.from_model(i) for i in self.repository.active_investors()]
        self.store.preload(target_id=target_id)

        result = self._score_pairs(investors, [target], resolve_weights(weights))
        logger.info(
            "match_rescan_target_complete",
            target_id=target_id,
            investors=len(investors),
            written=len(result["written"]),
            failed=result["failed"],
        )
        return result["written"]

    def rescan_all(
        self,
        weights: Mapping[str, Any] | None = None,
        *,
        should_stop: Callable[[], bool] | None = None,
        triggered_by: int | str | None = None,
    ) -> int:
        """Full rescan of active investors × active targets.

        Returns the number of matches written. ``should_stop`` is polled
        between pairs; matches written before it fires, or before a Celery
        soft time limit, are kept.
        """
        started = time.monotonic()
        resolved = resolve_weights(weights)
        investors = [InvestorSnapshot.from_model(i) for i in self.repository.active_investors()]
        targets = [TargetSnapshot.from_model(t) for t in self.repository.active_targets()]
        existing = self.store.preload()

        logger.info(
            "match_rescan_start",
            investors=len(investors),
            targets=len(targets),
            existing_matches=existing,
            triggered_by=triggered_by,
        )
        result = self._score_pairs(
            investors, targets, resolved, should_stop=should_stop, commit_every=COMMIT_BATCH_SIZE
        )
        count = len(result["written"])
        logger.info(
            "match_rescan_complete",
            written=count,
            failed=result["failed"],
            stopped=result["stopped"],
            triggered_by=triggered_by,
            duration_s=round(time.monotonic() - started, 2),
        )
        return count

    # ── Live (unsaved) scoring ────────────────────────────────────────────────

    def _stored_budget(self, investor: InvestorSnapshot) -> MoneyRange | None:
        try:
            return coerce_range("investment_budget", investor.budget)
        except MalformedFieldError as exc:
            logger.warning("match_live_budget_ignored", investor_id=investor.id, error=str(exc))
            return None

    def _apply_criteria(self, investor: InvestorSnapshot, criteria: LiveCriteria) -> InvestorSnapshot:
        overrides: dict[str, Any] = {}

        if criteria.industry_ids is not None:
            catalog = self.algorithm.catalog
            overrides["main_industries"] = [
                {"id": i, "name": catalog.name_for(i) or f"Industry {i}", "canonical": True}
                for i in criteria.industry_ids
            ]
            overrides["company_industries"] = None

        if criteria.target_countries is not None:
            overrides["target_countries"] = list(criteria.target_countries)

        if criteria.budget_min is not None or criteria.budget_max is not None:
            stored = self._stored_budget(investor)
            overrides["budget"] = {
                "min": criteria.budget_min if criteria.budget_min is not None else (stored.low if stored else None),
                "max": criteria.budget_max if criteria.budget_max is not None else (stored.high if stored else None),
            }

        if criteria.currency:
            overrides["currency"] = criteria.currency.upper()
        if criteria.ownership_condition is not None:
            overrides["investment_condition"] = criteria.ownership_condition
        if criteria.reason_ma is not None:
            overrides["reason_ma"] = criteria.reason_ma

        return dataclasses.replace(investor, **overrides)

    def score_live(
        self,
        investor_id: int,
        criteria: LiveCriteria | Mapping[str, Any] | None = None,
        weights: Mapping[str, Any] | None = None,
    ) -> list[LiveScoreResult]:
        """Score the investor, with criteria overrides, against all active targets. Never writes."""
        if not isinstance(criteria, LiveCriteria):
            criteria = LiveCriteria.model_validate(criteria or {})

        resolved = resolve_weights(weights)
        base = InvestorSnapshot.from_model(self.repository.get_investor(investor_id))
        investor = self._apply_criteria(base, criteria)
        targets = [TargetSnapshot.from_model(t) for t in self.repository.active_targets()]

        results: list[LiveScoreResult] = []
        for target in targets:
            try:
                score = self.algorithm.score_pair(investor, target, resolved)
            except SoftTimeLimitExceeded:
                raise
            except Exception as exc:
                logger.warning(
                    "match_live_pair_error",
                    investor_id=investor_id,
                    target_id=target.id,
                    error=str(exc),
                )
                continue
            if score.total_score < self.store.min_score:
                continue
            results.append(LiveScoreResult(
                target_id=target.id,
                target_name=target.name,
                total_score=score.total_score,
                tier=tier_for_score(score.total_score),
                scores=DimensionScores(**score.dimension_scores()),
                explanations=score.explanations,
            ))

        results.sort(key=lambda r: r.total_score, reverse=True)
        logger.info("match_live_scored", investor_id=investor_id, targets=len(targets), results=len(results))
        return results

    # ── Status lifecycle ──────────────────────────────────────────────────────

    def dismiss(self, match_id: int, reviewed_by: int | None = None) -> Match:
        return self.store.dismiss(match_id, reviewed_by)

    def approve(self, match_id: int, reviewed_by: int | None = None) -> Match:
        return self.store.approve(match_id, reviewed_by)

    def convert(self, match_id: int, reviewed_by: int | None = None) -> int:
        return self.store.convert(match_id, reviewed_by)

    # ── Retrieval ─────────────────────────────────────────────────────────────

    def _match_query(self):
        return select(Match).options(
            selectinload(Match.investor).selectinload(Investor.profile),
            selectinload(Match.target).selectinload(Target.profile),
        )

    def list_matches(self, filters: MatchFilters | Mapping[str, Any] | None = None) -> MatchListResponse:
        if not isinstance(filters, MatchFilters):
            filters = MatchFilters.model_validate(filters or {})

        statuses = filters.statuses or list(ACTIVE_STATUSES)
        stmt = self._match_query().where(
            Match.status.in_(statuses),
            Match.total_score >= filters.min_score,
        )
        if filters.tier is not None:
            low, high = tier_range(filters.tier)
            stmt = stmt.where(Match.total_score.between(low, high))
        if filters.investor_id is not None:
            stmt = stmt.where(Match.investor_id == filters.investor_id)
        if filters.target_id is not None:
            stmt = stmt.where(Match.target_id == filters.target_id)
        stmt = stmt.order_by(Match.total_score.desc(), Match.id)

        matches: Iterable[Match] = self.session.execute(stmt).scalars().all()
        if filters.industry_ids:
            wanted_industries = set(filters.industry_ids)
            matches = [m for m in matches if _match_has_industry(m, wanted_industries)]
        if filters.country_ids:
            wanted_countries = {str(c) for c in filters.country_ids}
            matches = [m for m in matches if _match_has_country(m, wanted_countries)]
        matches = list(matches)

        clusters = self._cluster(matches, filters.mode)
        total = len(clusters)
        last_page = max(1, math.ceil(total / filters.per_page))
        start = (filters.page - 1) * filters.per_page

        return MatchListResponse(
            data=clusters[start:start + filters.per_page],
            meta=MatchListMeta(
                current_page=filters.page,
                last_page=last_page,
                per_page=filters.per_page,
                total=total,
                total_matches=len(matches),
            ),
            weights=resolve_weights(None),
        )

    @staticmethod
    def _cluster(matches: list[Match], mode: str) -> list[MatchCluster]:
        """Group score-ordered matches by investor (or target); best cluster first."""
        groups: dict[int, list[Match]] = {}
        for match in matches:
            key = match.target_id if mode == "target" else match.investor_id
            groups.setdefault(key, []).append(match)

        clusters = []
        for members in groups.values():
            first = members[0]
            prospect = _target_summary(first.target) if mode == "target" else _investor_summary(first.investor)
            clusters.append(MatchCluster(
                prospect=prospect,
                prospect_type=mode,
                best_score=max(m.total_score for m in members),
                match_count=len(members),
                matches=[_match_to_entry(m) for m in members],
            ))
        clusters.sort(key=lambda c: c.best_score, reverse=True)
        return clusters

    def _entity_panel(self, *conditions) -> list[MatchEntry]:
        stmt = (
            self._match_query()
            .where(
                *conditions,
                Match.status != MatchStatus.DISMISSED,
                Match.total_score >= ENTITY_PANEL_MIN_SCORE,
            )
            .order_by(Match.total_score.desc(), Match.id)
            .limit(ENTITY_PANEL_LIMIT)
        )
        return [_match_to_entry(m) for m in self.session.execute(stmt).scalars().all()]

    def matches_for_investor(self, investor_id: int) -> list[MatchEntry]:
        self.repository.get_investor(investor_id)
        return self._entity_panel(Match.investor_id == investor_id)

    def matches_for_target(self, target_id: int) -> list[MatchEntry]:
        self.repository.get_target(target_id)
        return self._entity_panel(Match.target_id == target_id)

    def _financial_summary(self, field: str, raw: Any, currency: str) -> FinancialSummary | None:
        try:
            amounts = coerce_range(field, raw)
        except MalformedFieldError:
            return None
        if amounts is None:
            return None
        converter = self.algorithm.converter

        def convert(value: float | None) -> float | None:
            return None if value is None else round(converter.to_reference_currency(value, currency), 2)

        return FinancialSummary(
            currency=currency,
            amount_min=amounts.low,
            amount_max=amounts.high,
            reference_currency=converter.reference_currency,
            reference_min=convert(amounts.low),
            reference_max=convert(amounts.high),
        )

    def get_match(self, match_id: int) -> MatchDetailResponse:
        match = self.store.get(match_id)
        investor = InvestorSnapshot.from_model(match.investor)
        target = TargetSnapshot.from_model(match.target)
        return MatchDetailResponse(
            match=_match_to_entry(match),
            investor_budget=self._financial_summary("investment_budget", investor.budget, investor.currency),
            target_investment=self._financial_summary(
                "expected_investment_amount", target.desired_investment, target.currency
            ),
            notes=match.notes,
            reviewed_by=match.reviewed_by,
        )

    def stats(self) -> MatchStatsResponse:
        """Counts over active (pending/approved) matches."""
        floor = self.store.min_score
        active = Match.status.in_(ACTIVE_STATUSES)

        def count(*conditions) -> int:
            return self.session.scalar(select(func.count(Match.id)).where(active, *conditions)) or 0

        avg = self.session.scalar(select(func.avg(Match.total_score)).where(active, Match.total_score >= floor))
        return MatchStatsResponse(
            total=count(Match.total_score >= floor),
            excellent=count(Match.total_score.between(*tier_range(MatchTier.EXCELLENT))),
            strong=count(Match.total_score.between(*tier_range(MatchTier.STRONG))),
            good=count(Match.total_score.between(*tier_range(MatchTier.GOOD))),
            fair=count(Match.total_score.between(floor, tier_range(MatchTier.FAIR)[1])),
            avg_score=round(float(avg or 0), 1),
        )
