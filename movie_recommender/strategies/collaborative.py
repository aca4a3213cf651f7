"""Collaborative filtering strategy using blended user-user similarity."""

from __future__ import annotations

import logging
from typing import Any

from movie_recommender.models import (
    Movie,
    RecommendationResult,
    RecommendationType,
    UserProfile,
)
from movie_recommender.scoring import cosine_similarity, derive_confidence, rank
from movie_recommender.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)

_MAX_PEER_PROFILES = 100
_MIN_PEER_SIMILARITY = 0.3
_TOP_K_SIMILAR_USERS = 20

_POSITIVE_REVIEW_MIN_RATING = 3
_REVIEWS_PER_PEER = 50
_REVIEW_SCALE = 5.0

_MIN_ITEM_SCORE = 0.3
_MIN_NEIGHBOURS = 2

# Blend of per-facet similarities; taste first, then emotional alignment,
# director taste and rating harshness.
_GENRE_SIMILARITY_WEIGHT = 0.4
_SENTIMENT_SIMILARITY_WEIGHT = 0.3
_DIRECTOR_SIMILARITY_WEIGHT = 0.2
_RATING_SIMILARITY_WEIGHT = 0.1


class CollaborativeStrategy(RecommendationStrategy):
    """Recommends movies rated highly by users with similar taste.

    Pipeline:

    1. Fetch up to 100 peer profiles from *peer_source* (excluding the
       target user).
    2. Score each peer with :meth:`user_similarity` and keep those above
       0.3, best 20 first.  This is the neighbourhood.
    3. For each neighbour, fetch their positive reviews (rating ≥ 3 on the
       5-point scale) and accumulate ``(rating / 5) × similarity`` per movie.
    4. A candidate qualifies when its accumulated score exceeds 0.3 **and**
       at least two distinct neighbours contributed.

    Collaborative signal is best-effort: any error while talking to
    *peer_source* is logged and yields an empty result list.

    Args:
        peer_source: Object providing ``list_profiles(limit)`` and
            ``get_positive_reviews(user_id, min_rating, limit)``;
            normally a :class:`~movie_recommender.profile_store.ProfileStore`.
        weight: Base weight in the hybrid combination.
    """

    name = "collaborative"

    def __init__(self, peer_source: Any, weight: float = 0.3) -> None:
        super().__init__(weight)
        self._peer_source = peer_source

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def recommend(
        self,
        profile: UserProfile,
        movies: list[Movie],
        max_results: int,
    ) -> list[RecommendationResult]:
        """Return up to *max_results* movies favoured by similar users.

        Args:
            profile: Target user.
            movies: Candidate movies.
            max_results: Maximum number of results to return.

        Returns:
            Results of type ``collaborative``, best-first.  Empty when no
            neighbours exist or a peer lookup fails.
        """
        logger.info(
            "Collaborative filtering for user %r over %d candidates",
            profile.user_id,
            len(movies),
        )
        try:
            neighbours = self.find_similar_users(profile)
            if not neighbours:
                logger.warning("No similar users found for user %r", profile.user_id)
                return []

            scores, contributors = self._aggregate_peer_ratings(neighbours)
        except Exception:
            logger.exception(
                "Peer lookup failed for user %r; skipping collaborative filtering",
                profile.user_id,
            )
            return []

        results: list[RecommendationResult] = []
        for movie in movies:
            score = scores.get(movie.movie_id, 0.0)
            n_neighbours = len(contributors.get(movie.movie_id, ()))
            if score <= _MIN_ITEM_SCORE or n_neighbours < _MIN_NEIGHBOURS:
                continue
            reasons = self._reasons(n_neighbours, score)
            results.append(
                RecommendationResult(
                    movie=movie,
                    score=score,
                    reasons=reasons,
                    recommendation_type=RecommendationType.COLLABORATIVE,
                    confidence=derive_confidence(score, reasons),
                )
            )

        ranked = rank(results, max_results)
        logger.info(
            "Collaborative filtering used %d neighbours and produced %d results",
            len(neighbours),
            len(ranked),
        )
        return ranked

    @staticmethod
    def user_similarity(a: UserProfile, b: UserProfile) -> float:
        """Blended similarity between two users, in [0, 1].

        ``0.4 × genre cosine + 0.3 × sentiment cosine + 0.2 × director cosine
        + 0.1 × max(0, 1 − |Δ average rating| / 5)``.  A missing average
        rating counts as 0.
        """
        genre_sim = cosine_similarity(a.preferences.genres, b.preferences.genres)
        sentiment_sim = cosine_similarity(
            a.sentiment_history.as_vector(), b.sentiment_history.as_vector()
        )
        director_sim = cosine_similarity(a.preferences.directors, b.preferences.directors)
        rating_diff = abs((a.average_rating or 0.0) - (b.average_rating or 0.0))
        rating_sim = max(0.0, 1.0 - rating_diff / _REVIEW_SCALE)
        return (
            _GENRE_SIMILARITY_WEIGHT * genre_sim
            + _SENTIMENT_SIMILARITY_WEIGHT * sentiment_sim
            + _DIRECTOR_SIMILARITY_WEIGHT * director_sim
            + _RATING_SIMILARITY_WEIGHT * rating_sim
        )

    def find_similar_users(
        self,
        target: UserProfile,
        min_similarity: float = _MIN_PEER_SIMILARITY,
        limit: int = _TOP_K_SIMILAR_USERS,
    ) -> list[tuple[str, float]]:
        """Return the neighbourhood as ``(user_id, similarity)`` pairs.

        Only peers with similarity strictly above *min_similarity* are kept,
        sorted by similarity descending and capped at *limit*.  At most 100
        peer profiles are examined.
        """
        peers = self._peer_source.list_profiles(limit=_MAX_PEER_PROFILES)
        similar: list[tuple[str, float]] = []
        for peer in peers:
            if peer.user_id == target.user_id:
                continue
            similarity = self.user_similarity(target, peer)
            if similarity > min_similarity:
                similar.append((peer.user_id, similarity))

        similar.sort(key=lambda x: x[1], reverse=True)
        return similar[:limit]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _aggregate_peer_ratings(
        self, neighbours: list[tuple[str, float]]
    ) -> tuple[dict[str, float], dict[str, set[str]]]:
        """Accumulate similarity-weighted ratings from each neighbour's reviews.

        Args:
            neighbours: ``(user_id, similarity)`` pairs.

        Returns:
            Tuple of ``(scores, contributors)``: the accumulated score per
            movie ID, and the set of distinct neighbours behind each movie.
        """
        scores: dict[str, float] = {}
        contributors: dict[str, set[str]] = {}

        for user_id, similarity in neighbours:
            reviews = self._peer_source.get_positive_reviews(
                user_id,
                min_rating=_POSITIVE_REVIEW_MIN_RATING,
                limit=_REVIEWS_PER_PEER,
            )
            for review in reviews:
                weighted = (review.rating / _REVIEW_SCALE) * similarity
                scores[review.movie_id] = scores.get(review.movie_id, 0.0) + weighted
                contributors.setdefault(review.movie_id, set()).add(user_id)

        return scores, contributors

    @staticmethod
    def _reasons(n_neighbours: int, score: float) -> list[str]:
        reasons: list[str] = []
        if n_neighbours >= 5:
            reasons.append(f"{n_neighbours} users with similar taste rated this highly")
        elif n_neighbours >= 3:
            reasons.append("Recommended by several users with similar taste")
        else:
            reasons.append("Rated highly by users with similar taste")

        if score >= 0.8:
            reasons.append("Exceptionally well received by your peers")
        elif score >= 0.6:
            reasons.append("Well received by your peers")
        return reasons
