"""Transaction fit: ownership structure (60%) plus M&A purpose alignment (40%)."""

from __future__ import annotations

from matchiq.modules.matching.criteria import (
    FLEXIBLE_MARKERS,
    MAJORITY_MARKERS,
    MINORITY_MARKERS,
    PURPOSE_COMPATIBILITY,
    PURPOSE_EXACT,
    PURPOSE_MIN_SIGNAL,
    PURPOSE_NO_ALIGNMENT,
    PURPOSE_SIMILARITY_MIN,
    PURPOSE_SIMILARITY_SCALE,
    PURPOSE_UNRECOGNISED,
    PURPOSE_WEIGHT,
    STRUCTURE_ALIGNED,
    STRUCTURE_EXACT,
    STRUCTURE_FLEXIBLE,
    STRUCTURE_OPPOSED,
    STRUCTURE_SIMILARITY_SCALE,
    STRUCTURE_WEIGHT,
)
from matchiq.modules.matching.fields import coerce_multi_value
from matchiq.modules.matching.snapshots import InvestorSnapshot, TargetSnapshot
from matchiq.modules.matching.text import normalize_label, text_similarity


def _contains_any(values: list[str], markers: tuple[str, ...]) -> bool:
    return any(marker in value for value in values for marker in markers)


def score_structure(investor_conditions: list[str], target_conditions: list[str]) -> tuple[float, str]:
    if not investor_conditions and not target_conditions:
        return 0.0, "Structure: No preference set"

    investor_norm = [normalize_label(c) for c in investor_conditions]
    target_norm = [normalize_label(c) for c in target_conditions]

    investor_flexible = _contains_any(investor_norm, FLEXIBLE_MARKERS)
    if investor_flexible or _contains_any(target_norm, FLEXIBLE_MARKERS):
        who = "Investor" if investor_flexible else "Target"
        return STRUCTURE_FLEXIBLE, f"Structure: {who} is flexible"

    if not investor_norm or not target_norm:
        return 0.0, "Structure: One side has no condition specified"

    agreed = [c for c in investor_norm if c in target_norm]
    if agreed:
        return STRUCTURE_EXACT, f"Structure: Both agree on {', '.join(dict.fromkeys(agreed))}"

    investor_majority = _contains_any(investor_norm, MAJORITY_MARKERS)
    target_majority = _contains_any(target_norm, MAJORITY_MARKERS)
    investor_minority = _contains_any(investor_norm, MINORITY_MARKERS)
    target_minority = _contains_any(target_norm, MINORITY_MARKERS)

    if investor_majority and target_majority:
        return STRUCTURE_ALIGNED, "Structure: Both open to majority acquisition"
    if investor_minority and target_minority:
        return STRUCTURE_ALIGNED, "Structure: Both open to minority stake"
    if investor_majority and target_minority:
        return STRUCTURE_OPPOSED, "Structure: Investor wants majority; target prefers minority"
    if investor_minority and target_majority:
        return STRUCTURE_OPPOSED, "Structure: Investor wants minority; target requires majority"

    best = max(text_similarity(i, t) for i in investor_norm for t in target_norm)
    return best * STRUCTURE_SIMILARITY_SCALE, "Structure: Partial compatibility"


def score_purpose(investor_purposes: list[str], target_reasons: list[str]) -> tuple[float, str]:
    if not investor_purposes and not target_reasons:
        return 0.0, "Purpose: No M&A purpose specified"
    if not investor_purposes:
        return 0.0, "Purpose: Investor has no M&A purpose set"
    if not target_reasons:
        return 0.0, "Purpose: Target has no M&A reason set"

    target_norm = [normalize_label(r) for r in target_reasons]
    best = 0.0
    explanation = ""

    for purpose in (normalize_label(p) for p in investor_purposes):
        compatible = PURPOSE_COMPATIBILITY.get(purpose)
        if compatible is None:
            if best < PURPOSE_UNRECOGNISED:
                best = PURPOSE_UNRECOGNISED
                explanation = f'Purpose: "{purpose}" is not a recognised purpose'
            continue

        for reason in target_norm:
            if reason in compatible:
                return PURPOSE_EXACT, f'Purpose: Investor "{purpose}" aligns with target "{reason}"'
            for listed in compatible:
                similarity = text_similarity(reason, listed)
                if similarity > PURPOSE_SIMILARITY_MIN and similarity * PURPOSE_SIMILARITY_SCALE > best:
                    best = similarity * PURPOSE_SIMILARITY_SCALE
                    explanation = f'Purpose: "{reason}" partially matches "{listed}"'

    if best > PURPOSE_MIN_SIGNAL:
        return best, explanation
    return PURPOSE_NO_ALIGNMENT, "Purpose: No M&A purpose alignment found"


def score_transaction(investor: InvestorSnapshot, target: TargetSnapshot) -> tuple[float, str]:
    structure, structure_text = score_structure(
        coerce_multi_value("investment_condition", investor.investment_condition),
        coerce_multi_value("investment_condition", target.investment_condition),
    )
    purpose, purpose_text = score_purpose(
        coerce_multi_value("reason_ma", investor.reason_ma),
        coerce_multi_value("reason_ma", target.reason_ma),
    )
    combined = structure * STRUCTURE_WEIGHT + purpose * PURPOSE_WEIGHT
    return combined, f"Transaction: {structure_text}; {purpose_text}"
