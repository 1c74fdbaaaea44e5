"""Geography fit: exact-or-nothing membership of the target's HQ country."""

from __future__ import annotations

from matchiq.modules.matching.fields import coerce_country_id, coerce_country_ids
from matchiq.modules.matching.snapshots import InvestorSnapshot, TargetSnapshot


def score_geography(investor: InvestorSnapshot, target: TargetSnapshot) -> tuple[float, str]:
    countries = coerce_country_ids("target_countries", investor.target_countries)
    if not countries:
        return 0.0, "Geography: Investor has no target country preference"

    hq_country = coerce_country_id("hq_country", target.hq_country)
    if hq_country is None:
        return 0.0, "Geography: Target has no HQ country on record"

    if hq_country in countries:
        return 1.0, "Geography: Target HQ country matches investor's target countries"
    return 0.0, "Geography: Target HQ country not in investor's target countries"
