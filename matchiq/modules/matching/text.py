"""Text similarity helpers shared by the industry and transaction scorers."""

from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein


def text_similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity: 1 - distance / max(len(a), len(b)).

    Two empty strings are identical (1.0).
    """
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def jaccard(set_a: Iterable, set_b: Iterable) -> float:
    """Calculate Jaccard similarity between two collections (as sets)."""
    a, b = set(set_a), set(set_b)
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def significant_tokens(text: str, min_length: int) -> set[str]:
    return {word for word in text.split(" ") if len(word) >= min_length}


def token_overlap(a: str, b: str, min_length: int = 4) -> float:
    """Jaccard over the words of length >= min_length; 0.0 if either side has none."""
    tokens_a = significant_tokens(a, min_length)
    tokens_b = significant_tokens(b, min_length)
    if not tokens_a or not tokens_b:
        return 0.0
    return jaccard(tokens_a, tokens_b)


def normalize_label(text: str) -> str:
    return text.strip().lower()
