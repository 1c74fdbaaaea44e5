"""Tests for match persistence, rescans, live scoring and retrieval."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest
from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy import func, select

from matchiq.core.errors import MatchNotFoundError, ProspectNotFoundError
from matchiq.models import Deal, Match, MatchStatus, MatchTier
from matchiq.modules.matching import algorithm as algorithm_module
from matchiq.modules.matching.algorithm import PairScore
from matchiq.modules.matching.schemas import LiveCriteria, MatchFilters
from matchiq.modules.matching.service import MatchingService
from matchiq.modules.matching.store import MatchStore

ALIGNED_INVESTOR: dict[str, Any] = {
    "industries": [{"id": 7, "name": "Energy"}],
    "countries": [12],
    "budget": {"min": 100_000, "max": 500_000},
    "condition": ["Majority"],
    "reason_ma": ["Strategic Expansion"],
}

ALIGNED_TARGET: dict[str, Any] = {
    "industries": [{"id": 7, "name": "Energy"}],
    "hq_country": 12,
    "desired": [200_000, 300_000],
    "condition": "majority",
    "reason_ma": ["Market Expansion"],
}


def _match_count(db) -> int:
    return db.scalar(select(func.count(Match.id)))


def _pair(investor_id: int, target_id: int, total: int) -> PairScore:
    return PairScore(
        investor_id=investor_id,
        target_id=target_id,
        total_score=total,
        industry=1.0,
        geography=1.0,
        financial=0.5,
        transaction=0.5,
    )


# ── MatchStore ───────────────────────────────────────────────────────────────


class TestMatchStore:
    def test_below_threshold_is_not_written(self, db, make_investor, make_target) -> None:
        investor, target = make_investor(), make_target()
        assert MatchStore(db).upsert(_pair(investor.id, target.id, 29)) is None
        assert _match_count(db) == 0

    def test_threshold_is_configurable(self, db, make_investor, make_target) -> None:
        investor, target = make_investor(), make_target()
        assert MatchStore(db, min_score=10).upsert(_pair(investor.id, target.id, 29)) is not None

    def test_new_match_starts_pending(self, db, make_investor, make_target) -> None:
        investor, target = make_investor(), make_target()
        match = MatchStore(db).upsert(_pair(investor.id, target.id, 30))
        assert match.status == MatchStatus.PENDING
        assert match.total_score == 30
        assert match.computed_at is not None

    def test_rescore_overwrites_scores_and_keeps_status(self, db, make_investor, make_target) -> None:
        investor, target = make_investor(), make_target()
        store = MatchStore(db)
        first = store.upsert(_pair(investor.id, target.id, 40))
        store.approve(first.id, reviewed_by=5)

        second = store.upsert(_pair(investor.id, target.id, 85))
        assert second.id == first.id
        assert second.total_score == 85
        assert second.status == MatchStatus.APPROVED
        assert _match_count(db) == 1

    def test_status_transitions(self, db, make_investor, make_target) -> None:
        investor, target = make_investor(), make_target()
        store = MatchStore(db)
        match = store.upsert(_pair(investor.id, target.id, 60))

        assert store.dismiss(match.id, reviewed_by=3).status == MatchStatus.DISMISSED
        assert match.reviewed_by == 3
        assert store.dismiss(match.id).status == MatchStatus.DISMISSED
        assert store.approve(match.id).status == MatchStatus.APPROVED

    def test_convert_creates_deal_once(self, db, make_investor, make_target) -> None:
        investor, target = make_investor("Acme Capital"), make_target("Target Co")
        store = MatchStore(db)
        match = store.upsert(_pair(investor.id, target.id, 75))

        deal_id = store.convert(match.id, reviewed_by=9)
        assert store.convert(match.id) == deal_id
        assert db.scalar(select(func.count(Deal.id))) == 1

        deal = db.get(Deal, deal_id)
        assert deal.name == "Acme Capital × Target Co"
        assert deal.stage_code == "F"
        assert deal.created_by == 9
        assert match.status == MatchStatus.CONVERTED
        assert match.deal_id == deal_id

    def test_unknown_match_raises_lookup_error(self, db) -> None:
        store = MatchStore(db)
        with pytest.raises(MatchNotFoundError):
            store.dismiss(404)
        with pytest.raises(LookupError):
            store.convert(404)


# ── Rescans ──────────────────────────────────────────────────────────────────


class TestRescan:
    def test_rescan_all_writes_qualifying_pairs(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        good = make_target("Good Fit", **ALIGNED_TARGET)
        make_target("No Fit", industries=["Healthcare"], hq_country=99)

        count = MatchingService(db).rescan_all()

        assert count == 1
        match = db.execute(select(Match)).scalar_one()
        assert (match.investor_id, match.target_id) == (investor.id, good.id)
        assert match.total_score == 99

    def test_one_failing_pair_is_skipped(self, db, make_investor, make_target) -> None:
        investors = [make_investor(f"Investor {i}", **ALIGNED_INVESTOR) for i in range(3)]
        targets = [make_target(f"Target {i}", **ALIGNED_TARGET) for i in range(4)]
        failing = (investors[1].id, targets[2].id)
        real_score_geography = algorithm_module.score_geography

        def flaky_geography(investor, target):
            if (investor.id, target.id) == failing:
                raise RuntimeError("corrupt country payload")
            return real_score_geography(investor, target)

        with patch.object(algorithm_module, "score_geography", side_effect=flaky_geography), \
                patch("matchiq.modules.matching.service.logger") as logger:
            count = MatchingService(db).rescan_all()

        assert count == 11
        assert _match_count(db) == 11
        logger.warning.assert_called_once()
        _, kwargs = logger.warning.call_args
        assert (kwargs["investor_id"], kwargs["target_id"]) == failing

    def test_malformed_target_field_skips_its_pairs(self, db, make_investor, make_target) -> None:
        for i in range(3):
            make_investor(f"Investor {i}", **ALIGNED_INVESTOR)
        make_target("Clean", **ALIGNED_TARGET)
        broken = make_target("Broken", **{**ALIGNED_TARGET, "industries": '[{"id": 7, "name": "Ener'})

        count = MatchingService(db).rescan_all()

        assert count == 3
        assert db.scalar(select(func.count(Match.id)).where(Match.target_id == broken.id)) == 0

    def test_rescan_preserves_status_and_does_not_duplicate(self, db, make_investor, make_target) -> None:
        make_investor(**ALIGNED_INVESTOR)
        make_target(**ALIGNED_TARGET)
        service = MatchingService(db)
        service.rescan_all()
        match = db.execute(select(Match)).scalar_one()
        service.approve(match.id)

        assert MatchingService(db).rescan_all() == 1
        assert _match_count(db) == 1
        assert db.execute(select(Match)).scalar_one().status == MatchStatus.APPROVED

    def test_inactive_prospects_are_ignored(self, db, make_investor, make_target) -> None:
        make_investor(**ALIGNED_INVESTOR)
        make_investor("Dormant", is_active=False, **ALIGNED_INVESTOR)
        make_target(**ALIGNED_TARGET)
        make_target("Withdrawn", is_active=False, **ALIGNED_TARGET)

        assert MatchingService(db).rescan_all() == 1

    def test_should_stop_ends_run_early(self, db, make_investor, make_target) -> None:
        make_investor(**ALIGNED_INVESTOR)
        for i in range(4):
            make_target(f"Target {i}", **ALIGNED_TARGET)
        polls: list[int] = []

        def should_stop() -> bool:
            polls.append(1)
            return len(polls) > 2

        assert MatchingService(db).rescan_all(should_stop=should_stop) == 2
        assert _match_count(db) == 2

    def test_soft_time_limit_stops_run_and_keeps_written(self, db, make_investor, make_target) -> None:
        make_investor(**ALIGNED_INVESTOR)
        targets = [make_target(f"Target {i}", **ALIGNED_TARGET) for i in range(4)]
        real_score_geography = algorithm_module.score_geography
        attempted: list[int] = []

        def slow_geography(investor, target):
            attempted.append(target.id)
            if target.id == targets[2].id:
                raise SoftTimeLimitExceeded()
            return real_score_geography(investor, target)

        with patch.object(algorithm_module, "score_geography", side_effect=slow_geography), \
                patch("matchiq.modules.matching.service.logger") as logger:
            count = MatchingService(db).rescan_all()

        assert count == 2
        assert _match_count(db) == 2
        assert attempted == [t.id for t in targets[:3]]
        events = [c.args[0] for c in logger.warning.call_args_list]
        assert events == ["match_rescan_time_limit"]

    def test_weights_are_applied(self, db, make_investor, make_target) -> None:
        make_investor(**ALIGNED_INVESTOR)
        make_target(**{**ALIGNED_TARGET, "hq_country": 99})
        MatchingService(db).rescan_all({"industry": 0.0, "geography": 1.0, "financial": 0.0, "transaction": 0.0})
        assert _match_count(db) == 0

    def test_rescan_for_investor(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        make_investor("Other", **ALIGNED_INVESTOR)
        make_target("A", **ALIGNED_TARGET)
        make_target("B", **ALIGNED_TARGET)

        matches = MatchingService(db).rescan_for_investor(investor.id)
        assert len(matches) == 2
        assert {m.investor_id for m in matches} == {investor.id}

    def test_rescan_for_target(self, db, make_investor, make_target) -> None:
        make_investor("A", **ALIGNED_INVESTOR)
        make_investor("B", **ALIGNED_INVESTOR)
        target = make_target(**ALIGNED_TARGET)

        matches = MatchingService(db).rescan_for_target(target.id)
        assert len(matches) == 2
        assert {m.target_id for m in matches} == {target.id}

    def test_unknown_prospect_raises(self, db) -> None:
        service = MatchingService(db)
        with pytest.raises(ProspectNotFoundError):
            service.rescan_for_investor(404)
        with pytest.raises(ProspectNotFoundError):
            service.rescan_for_target(404)
        with pytest.raises(LookupError):
            service.score_pair(404, 405)


# ── Live scoring ─────────────────────────────────────────────────────────────


class TestScoreLive:
    def test_overrides_countries_without_writing(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        home = make_target("Home", **ALIGNED_TARGET)
        abroad = make_target("Abroad", **{**ALIGNED_TARGET, "hq_country": 99})

        results = MatchingService(db).score_live(investor.id, {"target_countries": [99]})

        assert [r.target_id for r in results] == [abroad.id, home.id]
        assert results[0].total_score == 99
        assert results[1].total_score == 74
        assert _match_count(db) == 0

    def test_stored_preferences_apply_without_criteria(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        home = make_target("Home", **ALIGNED_TARGET)

        results = MatchingService(db).score_live(investor.id)
        assert results[0].target_id == home.id
        assert results[0].tier == MatchTier.EXCELLENT

    def test_industry_override_uses_catalog(self, db, make_investor, make_target, seed_reference) -> None:
        seed_reference(industries={7: ("Energy", []), 9: ("Fintech", [])})
        investor = make_investor(**ALIGNED_INVESTOR)
        make_target("Payments", **{**ALIGNED_TARGET, "industries": [{"id": 9, "name": "Fintech"}]})
        service = MatchingService(db)

        stored = service.score_live(investor.id)
        overridden = service.score_live(investor.id, LiveCriteria(industry_ids=[9]))

        assert stored[0].scores.industry == 0.0
        assert overridden[0].scores.industry == 1.0
        assert "Fintech" in overridden[0].explanations["industry"]

    def test_budget_override_merges_with_stored_bounds(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        make_target(**{**ALIGNED_TARGET, "desired": [600_000, 700_000]})
        service = MatchingService(db)

        before = service.score_live(investor.id)[0]
        after = service.score_live(investor.id, {"budget_max": 800_000})[0]

        assert before.scores.financial < 0.4
        assert after.scores.financial == 1.0

    def test_results_below_threshold_are_dropped(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        make_target("No Fit", industries=["Healthcare"], hq_country=99)
        assert MatchingService(db).score_live(investor.id) == []

    def test_soft_time_limit_propagates(self, db, make_investor, make_target) -> None:
        investor = make_investor(**ALIGNED_INVESTOR)
        make_target(**ALIGNED_TARGET)
        with patch.object(algorithm_module, "score_geography", side_effect=SoftTimeLimitExceeded()):
            with pytest.raises(SoftTimeLimitExceeded):
                MatchingService(db).score_live(investor.id)


# ── Retrieval ────────────────────────────────────────────────────────────────


@pytest.fixture
def scored(db, make_investor, make_target):
    """Two investors × three targets with hand-picked totals."""
    alpha = make_investor("Alpha Fund", industries=[{"id": 7, "name": "Energy"}], countries=[12])
    beta = make_investor("Beta Partners", industries=[{"id": 8, "name": "Banking"}], countries=[44])
    t1 = make_target("Solar One", industries=[{"id": 7, "name": "Energy"}], hq_country=12)
    t2 = make_target("Bank Two", industries=[{"id": 8, "name": "Banking"}], hq_country=44)
    t3 = make_target("Mixed Three", industries=["Consulting"], hq_country=50)

    store = MatchStore(db)
    matches = {
        "alpha_t1": store.upsert(_pair(alpha.id, t1.id, 92)),
        "alpha_t3": store.upsert(_pair(alpha.id, t3.id, 55)),
        "beta_t2": store.upsert(_pair(beta.id, t2.id, 84)),
        "beta_t1": store.upsert(_pair(beta.id, t1.id, 72)),
        "beta_t3": store.upsert(_pair(beta.id, t3.id, 35)),
    }
    return {"alpha": alpha, "beta": beta, "t1": t1, "t2": t2, "t3": t3, **matches}


class TestListMatches:
    def test_clusters_by_investor_best_first(self, db, scored) -> None:
        result = MatchingService(db).list_matches()

        assert [c.prospect.id for c in result.data] == [scored["alpha"].id, scored["beta"].id]
        alpha = result.data[0]
        assert alpha.best_score == 92
        assert alpha.match_count == 2
        assert [m.total_score for m in alpha.matches] == [92, 55]
        assert result.meta.total == 2
        assert result.meta.total_matches == 5
        assert result.weights["industry"] == pytest.approx(0.30)

    def test_clusters_by_target(self, db, scored) -> None:
        result = MatchingService(db).list_matches(MatchFilters(mode="target"))
        assert [c.prospect.id for c in result.data] == [scored["t1"].id, scored["t2"].id, scored["t3"].id]
        assert result.data[0].prospect_type == "target"
        assert [m.total_score for m in result.data[0].matches] == [92, 72]

    def test_dismissed_and_converted_are_hidden(self, db, scored) -> None:
        service = MatchingService(db)
        service.dismiss(scored["alpha_t1"].id)
        service.convert(scored["beta_t2"].id)

        result = service.list_matches()
        scores = sorted(m.total_score for c in result.data for m in c.matches)
        assert scores == [35, 55, 72]

    def test_status_filter_can_include_converted(self, db, scored) -> None:
        service = MatchingService(db)
        service.convert(scored["beta_t2"].id)
        result = service.list_matches({"statuses": ["converted"]})
        assert result.meta.total_matches == 1
        assert result.data[0].matches[0].deal_id is not None

    def test_min_score_and_tier(self, db, scored) -> None:
        service = MatchingService(db)
        assert service.list_matches({"min_score": 60}).meta.total_matches == 3
        strong = service.list_matches({"tier": "strong"})
        assert [m.total_score for c in strong.data for m in c.matches] == [84]
        assert strong.data[0].matches[0].tier_label == "Strong Match"

    def test_industry_and_country_filters(self, db, scored) -> None:
        service = MatchingService(db)
        banking = service.list_matches({"industry_ids": [8]})
        assert banking.meta.total_matches == 3
        by_country = service.list_matches({"country_ids": [50]})
        assert sorted(m.total_score for c in by_country.data for m in c.matches) == [35, 55]

    def test_entity_filters(self, db, scored) -> None:
        service = MatchingService(db)
        assert service.list_matches({"investor_id": scored["alpha"].id}).meta.total_matches == 2
        assert service.list_matches({"target_id": scored["t1"].id}).meta.total_matches == 2

    def test_pagination(self, db, scored) -> None:
        result = MatchingService(db).list_matches({"mode": "target", "per_page": 2, "page": 2})
        assert result.meta.last_page == 2
        assert result.meta.current_page == 2
        assert [c.prospect.id for c in result.data] == [scored["t3"].id]

    def test_empty_listing(self, db) -> None:
        result = MatchingService(db).list_matches()
        assert result.data == []
        assert result.meta.last_page == 1


class TestEntityPanels:
    def test_matches_for_investor(self, db, scored) -> None:
        entries = MatchingService(db).matches_for_investor(scored["beta"].id)
        assert [e.total_score for e in entries] == [84, 72]

    def test_matches_for_target_skips_dismissed(self, db, scored) -> None:
        service = MatchingService(db)
        service.dismiss(scored["alpha_t1"].id)
        assert [e.total_score for e in service.matches_for_target(scored["t1"].id)] == [72]

    def test_unknown_entity(self, db) -> None:
        with pytest.raises(ProspectNotFoundError):
            MatchingService(db).matches_for_investor(404)


class TestDetailAndStats:
    def test_get_match_detail(self, db, make_investor, make_target, seed_reference) -> None:
        seed_reference(rates={"EUR": 1.1})
        investor = make_investor(**{**ALIGNED_INVESTOR, "budget": [100, 200]}, currency="EUR")
        target = make_target(**ALIGNED_TARGET)
        match = MatchStore(db).upsert(_pair(investor.id, target.id, 80))

        detail = MatchingService(db).get_match(match.id)

        assert detail.match.tier == MatchTier.STRONG
        assert detail.investor_budget.currency == "EUR"
        assert detail.investor_budget.reference_min == pytest.approx(110.0)
        assert detail.investor_budget.reference_max == pytest.approx(220.0)
        assert detail.target_investment.reference_currency == "USD"

    def test_get_unknown_match(self, db) -> None:
        with pytest.raises(MatchNotFoundError):
            MatchingService(db).get_match(404)

    def test_stats(self, db, scored) -> None:
        service = MatchingService(db)
        service.dismiss(scored["beta_t3"].id)

        stats = service.stats()

        assert stats.total == 4
        assert (stats.excellent, stats.strong, stats.good, stats.fair) == (1, 1, 1, 1)
        assert stats.avg_score == pytest.approx((92 + 55 + 84 + 72) / 4, abs=0.1)
