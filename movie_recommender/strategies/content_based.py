"""Content-based filtering strategy using weighted preference overlap."""

from __future__ import annotations

import logging

from movie_recommender.models import (
    Movie,
    RecommendationResult,
    RecommendationType,
    UserProfile,
)
from movie_recommender.scoring import derive_confidence, rank
from movie_recommender.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)

# Sub-score weights; they sum to 1.0.
_GENRE_WEIGHT = 0.40
_DIRECTOR_WEIGHT = 0.20
_ACTOR_WEIGHT = 0.20
_KEYWORD_WEIGHT = 0.15
_RATING_WEIGHT = 0.05

_MIN_SCORE = 0.1
_REASON_AFFINITY_THRESHOLD = 0.5
_HIGH_RATING = 8.0
_MAX_ACTORS_IN_REASON = 2
_FALLBACK_REASON = "Matches your taste profile"


class ContentBasedStrategy(RecommendationStrategy):
    """Recommends movies whose attributes overlap the user's preferences.

    Each candidate receives a weighted sum of five sub-scores:

    ========  ======  ==================================================
    Feature   Weight  Sub-score
    ========  ======  ==================================================
    Genre     0.40    mean affinity over the movie's genres
    Director  0.20    affinity for the movie's director
    Actor     0.20    **max** affinity over the cast
    Keyword   0.15    mean affinity over the movie's keywords
    Rating    0.05    ``min(rating / 10, 1)``
    ========  ======  ==================================================

    The actor term uses the maximum so that one favourite actor is a strong
    signal even when the rest of the cast is unknown.  Candidates scoring
    ``<= 0.1`` are dropped.

    Args:
        weight: Base weight in the hybrid combination.
    """

    name = "content_based"

    def __init__(self, weight: float = 0.5) -> None:
        super().__init__(weight)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def recommend(
        self,
        profile: UserProfile,
        movies: list[Movie],
        max_results: int,
    ) -> list[RecommendationResult]:
        """Return up to *max_results* movies ranked by content score.

        Args:
            profile: Target user.
            movies: Candidate movies.
            max_results: Maximum number of results to return.

        Returns:
            Results of type ``content_based``, best-first.
        """
        logger.info(
            "Content-based filtering for user %r over %d candidates",
            profile.user_id,
            len(movies),
        )
        results: list[RecommendationResult] = []
        for movie in movies:
            score = self._score(movie, profile)
            if score <= _MIN_SCORE:
                continue
            reasons = self._reasons(movie, profile)
            results.append(
                RecommendationResult(
                    movie=movie,
                    score=score,
                    reasons=reasons,
                    recommendation_type=RecommendationType.CONTENT_BASED,
                    confidence=derive_confidence(score, reasons),
                )
            )

        ranked = rank(results, max_results)
        logger.info("Content-based filtering produced %d results", len(ranked))
        return ranked

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _score(self, movie: Movie, profile: UserProfile) -> float:
        prefs = profile.preferences
        return (
            _GENRE_WEIGHT * _mean_affinity(movie.genres, prefs.genres)
            + _DIRECTOR_WEIGHT * prefs.directors.get(movie.director, 0.0)
            + _ACTOR_WEIGHT * _max_affinity(movie.actors, prefs.actors)
            + _KEYWORD_WEIGHT * _mean_affinity(movie.keywords, prefs.keywords)
            + _RATING_WEIGHT * min(movie.rating / 10.0, 1.0)
        )

    @staticmethod
    def _reasons(movie: Movie, profile: UserProfile) -> list[str]:
        """Explain the match using the categories the user clearly likes."""
        prefs = profile.preferences
        reasons: list[str] = []

        genres = [g for g in movie.genres if prefs.genres.get(g, 0.0) > _REASON_AFFINITY_THRESHOLD]
        if genres:
            reasons.append(f"Matches your favourite genres: {', '.join(genres)}")

        if prefs.directors.get(movie.director, 0.0) > _REASON_AFFINITY_THRESHOLD:
            reasons.append(f"Directed by {movie.director}, a director you like")

        actors = [a for a in movie.actors if prefs.actors.get(a, 0.0) > _REASON_AFFINITY_THRESHOLD]
        if actors:
            reasons.append(
                f"Stars actors you like: {', '.join(actors[:_MAX_ACTORS_IN_REASON])}"
            )

        if movie.rating >= _HIGH_RATING:
            reasons.append(f"Highly rated ({movie.rating:g}/10)")

        return reasons or [_FALLBACK_REASON]


def _mean_affinity(labels: list[str], weights: dict[str, float]) -> float:
    if not labels:
        return 0.0
    return sum(weights.get(label, 0.0) for label in labels) / len(labels)


def _max_affinity(labels: list[str], weights: dict[str, float]) -> float:
    if not labels:
        return 0.0
    return max(weights.get(label, 0.0) for label in labels)
