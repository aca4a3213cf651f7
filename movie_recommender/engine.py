"""Recommendation engine: runs the strategies and assembles the final list."""

from __future__ import annotations

import logging
import time
from concurrent import futures
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from movie_recommender.catalogue import MovieCatalogue
from movie_recommender.combiner import HybridCombiner
from movie_recommender.diversity import enhance_diversity, filter_by_confidence
from movie_recommender.models import (
    FeedbackEvent,
    FeedbackKind,
    Movie,
    RecommendationConfig,
    RecommendationResult,
    RecommendationType,
    StrategyResult,
    UserProfile,
)
from movie_recommender.profile_store import ProfileStore
from movie_recommender.strategies.base import RecommendationStrategy
from movie_recommender.strategies.collaborative import CollaborativeStrategy

logger = logging.getLogger(__name__)

# Strategies are asked for more results than the caller wants so the
# combiner and diversity selection have room to work.
_CANDIDATE_MULTIPLIER = 2

_ENRICHED_RESULTS = 10

_TRENDING_SCORE_SCALE = 10.0
_TRENDING_CONFIDENCE = 0.8
_TRENDING_REASON = "Trending among highly rated movies right now"

_DEFAULT_SIMILAR_USER_LIMIT = 20
_DEFAULT_MIN_SIMILARITY = 0.3


class ProfileNotFoundError(LookupError):
    """Raised when recommendations are requested for a user with no profile."""


class RecommendationEngine:
    """Runs every strategy for a user and assembles the final ranked list.

    Pipeline for :meth:`get_recommendations`:

    1. Load the user's profile (hard failure if missing) and the candidate
       movies from the catalogue.
    2. Fan out: run every strategy concurrently on a thread pool.  A
       strategy that raises is logged and treated as having returned
       nothing in 0 ms; the others are unaffected.
    3. Join, then merge with the :class:`~movie_recommender.combiner.HybridCombiner`.
    4. Drop results below ``min_confidence``, then apply diversity-aware
       selection (or plain truncation when ``diversity_boost`` is off).
    5. Replace the reasons of the top results with language-model
       rationales when a language service is configured.

    Each call is a fresh read-compute-return cycle; the engine holds no
    per-user state of its own.

    Args:
        catalogue: The :class:`~movie_recommender.catalogue.MovieCatalogue`.
        profile_store: The :class:`~movie_recommender.profile_store.ProfileStore`.
        strategies: Strategies to run, in a fixed order.
        language_service: Optional rationale writer exposing
            ``write_rationale(profile, movie)``.
        combiner: Result combiner; a default one is created if omitted.
        max_workers: Thread-pool size for the strategy fan-out.
    """

    def __init__(
        self,
        catalogue: MovieCatalogue,
        profile_store: ProfileStore,
        strategies: list[RecommendationStrategy],
        language_service: Any = None,
        combiner: HybridCombiner | None = None,
        max_workers: int = 3,
    ) -> None:
        self._catalogue = catalogue
        self._store = profile_store
        self._strategies = list(strategies)
        self._language = language_service
        self._combiner = combiner or HybridCombiner()
        self._max_workers = max_workers

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def get_recommendations(
        self,
        user_id: str,
        config: RecommendationConfig | None = None,
    ) -> list[RecommendationResult]:
        """Return the final ranked recommendations for *user_id*.

        Args:
            user_id: The requesting user. Must be non-empty.
            config: Request options; defaults apply when omitted.

        Returns:
            Up to ``config.max_recommendations`` ``hybrid`` results.  Empty
            if there are no candidate movies.

        Raises:
            ValueError: If *user_id* is empty.
            ProfileNotFoundError: If the user has no profile yet.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        config = config or RecommendationConfig()

        profile = self._store.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile not found for user {user_id!r}")

        exclude_ids = self._store.get_reviewed_movie_ids(user_id) if config.exclude_watched else set()
        candidates = self._catalogue.get_candidates(
            profile,
            exclude_ids=exclude_ids,
            genre=config.genre,
            min_rating=config.min_rating,
        )
        if not candidates:
            logger.info("No candidate movies for user %r", user_id)
            return []

        strategy_results = self._execute_strategies(
            profile, candidates, config.max_recommendations * _CANDIDATE_MULTIPLIER
        )
        combined = self._combiner.combine(strategy_results, config)
        confident = filter_by_confidence(combined, config.min_confidence)
        if config.diversity_boost:
            final = enhance_diversity(confident, config.max_recommendations)
        else:
            final = confident[: config.max_recommendations]
        final = self._enrich_reasons(profile, final)

        self._store.save_recommendations(user_id, final)
        logger.info(
            "Recommendations for user %r: %d combined, %d after confidence filter, %d returned",
            user_id,
            len(combined),
            len(confident),
            len(final),
        )
        return final

    def get_saved_recommendations(self, user_id: str, limit: int = 50) -> list[RecommendationResult]:
        """Return the last list produced for *user_id* (empty if none)."""
        if not user_id:
            raise ValueError("user_id must be non-empty")
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit!r}")
        return self._store.get_saved_recommendations(user_id, limit=limit)

    def get_similar_user_recommendations(
        self,
        user_id: str,
        limit: int = _DEFAULT_SIMILAR_USER_LIMIT,
        min_similarity: float = _DEFAULT_MIN_SIMILARITY,
    ) -> list[RecommendationResult]:
        """Merge the saved lists of users with taste similar to *user_id*.

        Up to ``2 × limit`` neighbours above *min_similarity* are consulted.
        When several neighbours saved the same movie, the first copy seen
        (from the most similar neighbour) is kept.  The merged list is
        sorted by score and cut to *limit*.

        Raises:
            ValueError: If *user_id* is empty or *limit* is not positive.
            ProfileNotFoundError: If the user has no profile yet.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit!r}")
        profile = self._store.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile not found for user {user_id!r}")

        neighbours = self._collaborative().find_similar_users(
            profile, min_similarity=min_similarity, limit=limit * 2
        )
        merged: dict[str, RecommendationResult] = {}
        for neighbour_id, _ in neighbours:
            for result in self._store.get_saved_recommendations(neighbour_id):
                merged.setdefault(result.movie_id, result)

        results = sorted(merged.values(), key=lambda r: r.score, reverse=True)[:limit]
        logger.info(
            "Similar-user recommendations for user %r: %d neighbours, %d results",
            user_id,
            len(neighbours),
            len(results),
        )
        return results

    def get_stats(self) -> dict[str, Any]:
        """Return catalogue and profile counts for monitoring."""
        total_users, total_reviews = self._store.counts()
        return {
            "total_movies": len(self._catalogue.get_all_movies()),
            "total_users": total_users,
            "total_reviews": total_reviews,
        }

    def get_trending(self, limit: int = 20) -> list[RecommendationResult]:
        """Return the highest-rated catalogue movies as ``trending`` results."""
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit!r}")
        return [
            RecommendationResult(
                movie=movie,
                score=min(movie.rating / _TRENDING_SCORE_SCALE, 1.0),
                reasons=[_TRENDING_REASON],
                recommendation_type=RecommendationType.TRENDING,
                confidence=_TRENDING_CONFIDENCE,
            )
            for movie in self._catalogue.get_top_rated(limit)
        ]

    def get_explanation(self, user_id: str, movie_id: str) -> str:
        """Explain why *movie_id* was (or would be) recommended to *user_id*.

        Uses the reasons from the user's saved recommendation list when the
        movie is in it, otherwise a generic explanation from the movie's
        genres and director.

        Raises:
            ValueError: If either ID is empty or the movie is unknown.
        """
        if not user_id or not movie_id:
            raise ValueError("user_id and movie_id must be non-empty")
        movie = self._catalogue.get_movie(movie_id)
        if movie is None:
            raise ValueError(f"Unknown movie {movie_id!r}")

        for result in self._store.get_saved_recommendations(user_id):
            if result.movie_id == movie_id and result.reasons:
                return f"{movie.title} was recommended because: " + "; ".join(result.reasons) + "."

        details = []
        if movie.genres:
            details.append(f"your interest in {', '.join(movie.genres)}")
        if movie.director:
            details.append(f"films directed by {movie.director}")
        if not details:
            return f"{movie.title} matches your viewing history."
        return f"{movie.title} matches your taste, especially " + " and ".join(details) + "."

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def record_feedback(
        self,
        user_id: str,
        movie_id: str,
        kind: str | FeedbackKind,
        recommendation_id: str | None = None,
        reason: str | None = None,
    ) -> FeedbackEvent:
        """Forward a user's reaction to a recommendation to the profile store.

        Raises:
            ValueError: If an ID is empty or *kind* is not a known feedback kind.
        """
        if not user_id or not movie_id:
            raise ValueError("user_id and movie_id must be non-empty")
        try:
            feedback_kind = FeedbackKind(kind)
        except ValueError:
            valid = ", ".join(k.value for k in FeedbackKind)
            raise ValueError(f"Unknown feedback {kind!r}; expected one of: {valid}") from None

        event = FeedbackEvent(
            user_id=user_id,
            movie_id=movie_id,
            kind=feedback_kind,
            timestamp=datetime.now(timezone.utc),
            recommendation_id=recommendation_id,
            reason=reason,
        )
        self._store.record_feedback(event)
        return event

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _collaborative(self) -> CollaborativeStrategy:
        """Return the configured collaborative strategy, or a default one."""
        for strategy in self._strategies:
            if isinstance(strategy, CollaborativeStrategy):
                return strategy
        return CollaborativeStrategy(self._store)

    def _execute_strategies(
        self,
        profile: UserProfile,
        candidates: list[Movie],
        max_results: int,
    ) -> list[StrategyResult]:
        """Run all strategies concurrently and collect results in strategy order."""
        if not self._strategies:
            return []
        with futures.ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(self._strategies)) or 1,
            thread_name_prefix="strategy",
        ) as executor:
            pending = [
                executor.submit(self._run_strategy, strategy, profile, candidates, max_results)
                for strategy in self._strategies
            ]
            return [f.result() for f in pending]

    @staticmethod
    def _run_strategy(
        strategy: RecommendationStrategy,
        profile: UserProfile,
        candidates: list[Movie],
        max_results: int,
    ) -> StrategyResult:
        """Run one strategy, timing it and isolating any failure."""
        start_ms = time.monotonic() * 1000
        try:
            results = strategy.recommend(profile, candidates, max_results)
        except Exception:
            logger.exception(
                "Strategy %s failed for user %r; continuing without it",
                strategy.name,
                profile.user_id,
            )
            return StrategyResult(strategy.name, strategy.weight, (), 0.0)

        elapsed_ms = time.monotonic() * 1000 - start_ms
        logger.info(
            "Strategy %s returned %d results in %.1fms",
            strategy.name,
            len(results),
            elapsed_ms,
        )
        return StrategyResult(strategy.name, strategy.weight, tuple(results), elapsed_ms)

    def _enrich_reasons(
        self, profile: UserProfile, results: list[RecommendationResult]
    ) -> list[RecommendationResult]:
        """Swap in model-written rationales for the top results.

        Results whose rationale cannot be generated keep their templated
        reasons.
        """
        if self._language is None:
            return results

        enriched: list[RecommendationResult] = []
        for index, result in enumerate(results):
            if index >= _ENRICHED_RESULTS:
                enriched.append(result)
                continue
            try:
                reasons = self._language.write_rationale(profile, result.movie)
            except Exception:
                logger.warning(
                    "Rationale generation failed for movie %r; keeping templated reasons",
                    result.movie_id,
                    exc_info=True,
                )
                enriched.append(result)
                continue
            enriched.append(replace(result, reasons=list(reasons)))
        return enriched
