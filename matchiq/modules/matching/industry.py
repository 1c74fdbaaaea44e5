"""Industry fit: canonical id match, then exact name match, then fuzzy fallback."""

from __future__ import annotations

from matchiq.modules.matching.criteria import INDUSTRY_FUZZY_MIN, INDUSTRY_TOKEN_MIN_LENGTH
from matchiq.modules.matching.fields import IndustryRef, coerce_industries
from matchiq.modules.matching.industry_reference import IndustryCatalog, IndustryReference
from matchiq.modules.matching.snapshots import InvestorSnapshot, TargetSnapshot
from matchiq.modules.matching.text import jaccard, normalize_label, text_similarity, token_overlap


def investor_industries(investor: InvestorSnapshot) -> list[IndustryRef]:
    # Preferred target industries first, then the investor's own industry
    return (
        coerce_industries("main_industry_operations", investor.main_industries)
        + coerce_industries("company_industry", investor.company_industries)
    )


def target_industries(target: TargetSnapshot) -> list[IndustryRef]:
    return coerce_industries("industry_ops", target.industries)


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def score_industry(
    investor: InvestorSnapshot,
    target: TargetSnapshot,
    catalog: IndustryCatalog,
    reference: IndustryReference,
) -> tuple[float, str]:
    investor_refs = investor_industries(investor)
    target_refs = target_industries(target)

    if not investor_refs:
        return 0.0, "Industry: Investor has no industry preference set"
    if not target_refs:
        return 0.0, "Industry: Target has no industry listed"

    # 1. Canonical id overlap
    investor_ids = {ref.id for ref in investor_refs if catalog.is_canonical(ref)}
    target_ids = {ref.id for ref in target_refs if catalog.is_canonical(ref)}
    id_score = jaccard(investor_ids, target_ids)
    if id_score > 0:
        matched = investor_ids & target_ids
        names = _unique([ref.name for ref in target_refs if ref.id in matched])
        return min(1.0, id_score), f"Industry: {', '.join(names)} (exact match by industry ID)"

    # 2. Exact name overlap
    investor_names = _unique([normalize_label(ref.name) for ref in investor_refs])
    target_names = _unique([normalize_label(ref.name) for ref in target_refs])
    common = [name for name in target_names if name in investor_names]
    if common:
        return min(1.0, jaccard(investor_names, target_names)), f'Industry: Exact name match "{", ".join(common)}"'

    # 3. Fuzzy fallback
    investor_ref_ids = {ref.id for ref in investor_refs if ref.id is not None}
    best = 0.0
    explanation = ""
    for t_name in target_names:
        for i_name in investor_names:
            similarity = text_similarity(i_name, t_name)
            if similarity > best:
                best = similarity
                explanation = f'Industry: Similar names "{t_name}" ≈ "{i_name}"'
            overlap = token_overlap(t_name, i_name, INDUSTRY_TOKEN_MIN_LENGTH)
            if overlap > best:
                best = overlap
                explanation = f'Industry: Token overlap, "{t_name}" shares terms with "{i_name}"'

        for suggestion in reference.suggest(t_name):
            candidate = suggestion.score / 100.0
            if candidate <= best:
                continue
            if suggestion.id in investor_ref_ids:
                best = candidate
                explanation = f"Industry: Ad-hoc '{t_name}' maps to '{suggestion.name}' (investor preference)"
                continue
            aliases = {normalize_label(suggestion.name)} | {normalize_label(s) for s in suggestion.sub_industries}
            hit = next((name for name in investor_names if name in aliases), None)
            if hit is not None:
                best = candidate
                explanation = f"Industry: '{t_name}' matches investor industry '{hit}' via similarity"

    if best > INDUSTRY_FUZZY_MIN:
        return min(1.0, best), explanation
    return 0.0, "Industry: No significant industry overlap found"
