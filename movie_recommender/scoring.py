"""Similarity and scoring helpers shared by every strategy."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from movie_recommender.models import RecommendationResult

_REASON_CONFIDENCE_STEP = 0.1
_REASON_CONFIDENCE_CAP = 0.3


def cosine_similarity(vec_a: Mapping[str, float], vec_b: Mapping[str, float]) -> float:
    """Return the cosine similarity of two sparse label → weight vectors.

    Both mappings are projected onto the union of their keys, with missing
    labels treated as 0.  Returns 0.0 if either vector has zero norm.
    """
    keys = list(dict.fromkeys([*vec_a, *vec_b]))
    if not keys:
        return 0.0
    a = np.fromiter((vec_a.get(k, 0.0) for k in keys), dtype=np.float64, count=len(keys))
    b = np.fromiter((vec_b.get(k, 0.0) for k in keys), dtype=np.float64, count=len(keys))
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def normalize(scores: Sequence[float]) -> list[float]:
    """Min–max scale *scores* into [0, 1].

    If every score is equal, each is mapped to 0.5 rather than favouring
    any single element.
    """
    if len(scores) == 0:
        return []
    arr = np.asarray(scores, dtype=np.float64)
    low = arr.min()
    spread = arr.max() - low
    if spread == 0.0:
        return [0.5] * len(scores)
    return [float(x) for x in (arr - low) / spread]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp *value* into ``[low, high]``."""
    return max(low, min(high, value))


def derive_confidence(score: float, reasons: Sequence[str]) -> float:
    """Confidence from a raw score, boosted by the number of supporting reasons.

    ``min(1, min(score, 1) + min(0.1 × len(reasons), 0.3))``
    """
    reason_bonus = min(_REASON_CONFIDENCE_STEP * len(reasons), _REASON_CONFIDENCE_CAP)
    return clamp(min(score, 1.0) + reason_bonus)


def rank(
    results: list[RecommendationResult], max_results: int
) -> list[RecommendationResult]:
    """Sort *results* by descending score and keep the first *max_results*.

    The sort is stable, so equal scores keep their input order.
    """
    return sorted(results, key=lambda r: r.score, reverse=True)[: max(max_results, 0)]


def top_labels(weights: Mapping[str, float], n: int) -> list[str]:
    """Return the *n* highest-weighted labels, heaviest first."""
    return [label for label, _ in sorted(weights.items(), key=lambda x: x[1], reverse=True)[:n]]
