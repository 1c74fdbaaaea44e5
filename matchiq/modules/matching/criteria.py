"""Matching criteria: dimension weights, thresholds and lookup tables.

Every tunable number the scorers use lives here so it can be tested and
adjusted without touching the scoring code.
"""

from types import MappingProxyType

# ── Dimension weights ─────────────────────────────────────────────────────────

DIMENSIONS: tuple[str, ...] = ("industry", "geography", "financial", "transaction")

DEFAULT_WEIGHTS: MappingProxyType[str, float] = MappingProxyType({
    "industry":    0.30,
    "geography":   0.25,
    "financial":   0.25,
    "transaction": 0.20,
})

# Weights summing to 1.0 ± this tolerance are used as given
WEIGHT_SUM_TOLERANCE = 0.05

# ── Industry ──────────────────────────────────────────────────────────────────

# Legacy heuristic: ad-hoc industries were created with timestamp-derived ids.
# Only consulted when an entry has no explicit tag and no catalog is loaded.
CANONICAL_ID_THRESHOLD = 9_999_999_999

# Fuzzy industry results at or below this are treated as no overlap
INDUSTRY_FUZZY_MIN = 0.3

# Words shorter than this are ignored by the token-overlap comparison
INDUSTRY_TOKEN_MIN_LENGTH = 4

# Industry reference (ad-hoc → canonical suggestions)
SUGGESTION_WEIGHTS: MappingProxyType[str, float] = MappingProxyType({
    "edit_distance": 0.35,
    "token_overlap": 0.40,
    "substring":     0.25,
})
SUGGESTION_MIN_SCORE = 40        # 0–100
SUGGESTION_MAX_RESULTS = 3
SUGGESTION_NOISE_WORDS: frozenset[str] = frozenset(
    {"and", "&", "the", "of", "for", "in", "on", "at", "to", "a", "an"}
)

# ── Financial ─────────────────────────────────────────────────────────────────

FINANCIAL_CONTAINED = 1.0
FINANCIAL_OVERLAP = 0.7
FINANCIAL_PROXIMITY_SCALE = 0.4
FINANCIAL_DECAY_FACTOR = 10.0

# ── Transaction ───────────────────────────────────────────────────────────────

STRUCTURE_WEIGHT = 0.6
PURPOSE_WEIGHT = 0.4

FLEXIBLE_MARKERS: tuple[str, ...] = ("flexible", "negotiable", "open")
MAJORITY_MARKERS: tuple[str, ...] = ("majority", "full acquisition", "51")
MINORITY_MARKERS: tuple[str, ...] = ("minority", "<50")

STRUCTURE_FLEXIBLE = 0.9
STRUCTURE_EXACT = 1.0
STRUCTURE_ALIGNED = 0.9
STRUCTURE_OPPOSED = 0.2
STRUCTURE_SIMILARITY_SCALE = 0.7

# Investor M&A purpose → compatible target reasons
PURPOSE_COMPATIBILITY: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "strategic expansion":    ("strategic partnership", "market expansion", "growth acceleration"),
    "market entry":           ("market expansion", "cross-border expansion", "strategic partnership"),
    "talent acquisition":     ("strategic partnership", "growth acceleration"),
    "diversification":        ("non-core divestment", "market expansion", "technology integration"),
    "technology acquisition": ("technology integration", "strategic partnership"),
    "financial investment":   (
        "full exit", "partial exit", "capital raising", "owner's retirement", "business succession",
    ),
})

PURPOSE_EXACT = 0.9
PURPOSE_UNRECOGNISED = 0.15
PURPOSE_SIMILARITY_MIN = 0.7
PURPOSE_SIMILARITY_SCALE = 0.85
PURPOSE_MIN_SIGNAL = 0.3
PURPOSE_NO_ALIGNMENT = 0.05

# ── Retrieval ─────────────────────────────────────────────────────────────────

# Per-entity "top matches" panels only show reasonably good pairs
ENTITY_PANEL_MIN_SCORE = 50
ENTITY_PANEL_LIMIT = 20
