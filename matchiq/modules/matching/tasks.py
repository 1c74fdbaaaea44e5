"""Celery tasks for matching: nightly full rescan and per-prospect recompute."""

from __future__ import annotations

import structlog
from celery import shared_task

from matchiq.core.config import settings
from matchiq.core.errors import ProspectNotFoundError
from matchiq.models.enums import ProspectType

logger = structlog.get_logger()


@shared_task(name="matching.rescan_all", bind=True, max_retries=2, default_retry_delay=60)
def rescan_all_matches(self, weights: dict | None = None, triggered_by: int | None = None) -> dict:
    """Score every active investor against every active target.

    Scheduled by Celery Beat nightly (``MATCH_RESCAN_HOUR``, UTC). Also
    queued on demand from the admin "rescan" action.
    """
    from matchiq.core.database import get_db_session
    from matchiq.modules.matching.service import MatchingService

    try:
        with get_db_session() as session:
            count = MatchingService(session).rescan_all(weights, triggered_by=triggered_by)
        return {"status": "success", "count": count}
    except Exception as exc:
        logger.error("match_rescan_failed", error=str(exc), attempt=self.request.retries + 1)
        raise self.retry(exc=exc)


@shared_task(name="matching.compute_for_prospect", bind=True, max_retries=2, default_retry_delay=30)
def compute_matches_for_prospect(self, prospect_type: str, prospect_id: int) -> dict:
    """Recompute matches for one newly registered or imported prospect."""
    from matchiq.core.database import get_db_session
    from matchiq.modules.matching.service import MatchingService

    kind = ProspectType(prospect_type)
    try:
        with get_db_session() as session:
            service = MatchingService(session)
            if kind is ProspectType.INVESTOR:
                matches = service.rescan_for_investor(prospect_id)
            else:
                matches = service.rescan_for_target(prospect_id)
            strong = sum(1 for m in matches if m.total_score >= settings.MATCH_STRONG_SCORE)
    except ProspectNotFoundError:
        logger.warning("match_compute_prospect_missing", prospect_type=kind.value, prospect_id=prospect_id)
        return {"status": "skipped", "prospect_type": kind.value, "prospect_id": prospect_id}
    except Exception as exc:
        logger.error(
            "match_compute_failed",
            prospect_type=kind.value,
            prospect_id=prospect_id,
            error=str(exc),
        )
        raise self.retry(exc=exc)

    logger.info(
        "match_compute_complete",
        prospect_type=kind.value,
        prospect_id=prospect_id,
        matches=len(matches),
        strong_matches=strong,
    )
    return {"status": "success", "count": len(matches), "strong": strong}
