"""Industry reference: canonical catalog lookups and ad-hoc → canonical suggestions.

Ad-hoc industries are free-text names typed in at registration or carried in
by imports. The suggestion scorer maps them onto the canonical catalog by a
weighted blend of three strategies:

    edit distance      (35%)  catches typos
    token overlap      (40%)  catches reordered words
    substring          (25%)  catches partial names

Scores are 0–100; suggestions below ``SUGGESTION_MIN_SCORE`` are dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from matchiq.models.reference import Industry
from matchiq.modules.matching.criteria import (
    CANONICAL_ID_THRESHOLD,
    SUGGESTION_MAX_RESULTS,
    SUGGESTION_MIN_SCORE,
    SUGGESTION_NOISE_WORDS,
    SUGGESTION_WEIGHTS,
)
from matchiq.modules.matching.fields import IndustryRef
from matchiq.modules.matching.text import jaccard, text_similarity

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CanonicalIndustry:
    id: int
    name: str
    sub_industries: tuple[str, ...] = ()


@dataclass(frozen=True)
class IndustrySuggestion:
    id: int
    name: str
    score: int  # 0–100
    sub_industries: tuple[str, ...] = ()


@dataclass
class IndustryCatalog:
    """Active canonical industries keyed by id."""

    industries: dict[int, CanonicalIndustry] = field(default_factory=dict)

    @classmethod
    def from_models(cls, rows: Iterable[Industry]) -> IndustryCatalog:
        industries = {}
        for row in rows:
            if not row.is_active:
                continue
            subs = tuple(sub.name for sub in row.sub_industries if sub.is_active and sub.name)
            industries[row.id] = CanonicalIndustry(id=row.id, name=row.name, sub_industries=subs)
        return cls(industries)

    def __iter__(self):
        return iter(self.industries.values())

    def is_canonical(self, ref: IndustryRef) -> bool:
        """Explicit tag first, then catalog membership, then the legacy id heuristic."""
        if ref.id is None:
            return False
        if ref.canonical is not None:
            return ref.canonical
        if self.industries:
            return ref.id in self.industries
        return ref.id <= CANONICAL_ID_THRESHOLD

    def name_for(self, industry_id: int) -> str | None:
        industry = self.industries.get(industry_id)
        return industry.name if industry else None


def normalize(text: str) -> str:
    text = text.strip().lower().replace("&", "and")
    text = _NON_ALNUM.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(text: str) -> list[str]:
    return [
        word for word in normalize(text).split(" ")
        if len(word) >= 2 and word not in SUGGESTION_NOISE_WORDS
    ]


def _token_score(tokens_a: list[str], tokens_b: list[str]) -> float:
    if not tokens_a and not tokens_b:
        return 1.0
    if not tokens_a or not tokens_b:
        return 0.0
    return jaccard(tokens_a, tokens_b)


def _substring_score(a: str, b: str) -> float:
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if not shorter:
        return 0.0
    if shorter in longer:
        return len(shorter) / len(longer)
    # Partial containment caps at 80%
    words = shorter.split(" ")
    matched = sum(1 for word in words if len(word) >= 3 and word in longer)
    return matched / len(words) * 0.8


class IndustryReference:
    """Ranked canonical suggestions for free-text industry labels."""

    def __init__(self, catalog: IndustryCatalog) -> None:
        self.catalog = catalog
        self._cache: dict[str, list[IndustrySuggestion]] = {}
        self._prepared = [
            (industry, normalize(industry.name), tokenize(industry.name))
            for industry in catalog
        ]

    def suggest(self, label: str) -> list[IndustrySuggestion]:
        """Top suggestions for ``label``, best first.

        An exact normalized match short-circuits with a single score-100 entry.
        """
        key = normalize(label)
        if not key or not self._prepared:
            return []
        if key in self._cache:
            return self._cache[key]

        tokens = tokenize(label)
        results: list[IndustrySuggestion] = []
        for industry, normalized, industry_tokens in self._prepared:
            if normalized == key:
                results = [self._suggestion(industry, 100)]
                break
            combined = (
                text_similarity(key, normalized) * SUGGESTION_WEIGHTS["edit_distance"]
                + _token_score(tokens, industry_tokens) * SUGGESTION_WEIGHTS["token_overlap"]
                + _substring_score(key, normalized) * SUGGESTION_WEIGHTS["substring"]
            )
            score = int(round(combined * 100))
            if score >= SUGGESTION_MIN_SCORE:
                results.append(self._suggestion(industry, score))
        else:
            results.sort(key=lambda s: s.score, reverse=True)
            results = results[:SUGGESTION_MAX_RESULTS]

        self._cache[key] = results
        return results

    @staticmethod
    def _suggestion(industry: CanonicalIndustry, score: int) -> IndustrySuggestion:
        return IndustrySuggestion(
            id=industry.id, name=industry.name, score=score, sub_industries=industry.sub_industries
        )
