"""Diversity-aware selection of the final recommendation list."""

from __future__ import annotations

import logging

from movie_recommender.models import Movie, RecommendationResult

logger = logging.getLogger(__name__)

AUTO_ADMIT_SCORE = 0.7
_MIN_DIVERSITY_SCORE = 0.5
_EARLY_FILL_FRACTION = 0.6

_GENRE_NOVELTY_WEIGHT = 0.5
_DIRECTOR_NOVELTY_WEIGHT = 0.3
_POSITION_STEP = 0.1


def filter_by_confidence(
    results: list[RecommendationResult], min_confidence: float
) -> list[RecommendationResult]:
    """Drop results whose confidence is below *min_confidence*."""
    kept = [r for r in results if r.confidence >= min_confidence]
    if len(kept) < len(results):
        logger.debug(
            "Confidence filter (%.2f) removed %d of %d results",
            min_confidence,
            len(results) - len(kept),
            len(results),
        )
    return kept


def diversity_score(
    movie: Movie,
    used_genres: set[str],
    used_directors: set[str],
    admitted: int,
) -> float:
    """Reward for the genres and director *movie* would add to the list.

    ``0.5 × (share of unused genres) + 0.3 × (director unused)``, scaled by
    ``1 + 0.1 × admitted`` so later slots weigh novelty more heavily.
    """
    new_genres = [g for g in movie.genres if g not in used_genres]
    score = _GENRE_NOVELTY_WEIGHT * len(new_genres) / max(len(movie.genres), 1)
    if movie.director not in used_directors:
        score += _DIRECTOR_NOVELTY_WEIGHT
    return score * (1.0 + _POSITION_STEP * admitted)


def enhance_diversity(
    results: list[RecommendationResult], max_results: int
) -> list[RecommendationResult]:
    """Greedily pick *max_results* items that balance score and variety.

    Walking *results* in order (best first), an item is admitted if any of
    the following holds:

    - its score is at least :data:`AUTO_ADMIT_SCORE`;
    - its :func:`diversity_score` exceeds 0.5;
    - fewer than ``0.6 × max_results`` items have been admitted so far.

    Remaining slots are then back-filled with the best-scoring items not yet
    chosen.  Lists already within *max_results* are returned unchanged.

    Args:
        results: Combined results sorted by descending score.
        max_results: Target list length.

    Returns:
        Up to *max_results* results: the admitted items in walk order,
        followed by any back-filled items.
    """
    if len(results) <= max_results:
        return list(results)

    selected: list[RecommendationResult] = []
    selected_ids: set[str] = set()
    used_genres: set[str] = set()
    used_directors: set[str] = set()
    early_fill = max_results * _EARLY_FILL_FRACTION

    for result in results:
        if len(selected) >= max_results:
            break
        movie = result.movie
        novelty = diversity_score(movie, used_genres, used_directors, len(selected))
        if (
            result.score >= AUTO_ADMIT_SCORE
            or novelty > _MIN_DIVERSITY_SCORE
            or len(selected) < early_fill
        ):
            selected.append(result)
            selected_ids.add(result.movie_id)
            used_genres.update(movie.genres)
            used_directors.add(movie.director)

    admitted = len(selected)
    for result in results:
        if len(selected) >= max_results:
            break
        if result.movie_id not in selected_ids:
            selected.append(result)
            selected_ids.add(result.movie_id)

    logger.debug(
        "Diversity selection admitted %d items and back-filled %d",
        admitted,
        len(selected) - admitted,
    )
    return selected
