"""Abstract base class for all recommendation strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod

from movie_recommender.models import Movie, RecommendationResult, UserProfile


class RecommendationStrategy(ABC):
    """Interface implemented by every recommendation strategy.

    Each strategy encapsulates a single scoring approach (content-based,
    collaborative, or sentiment-based).  The
    :class:`~movie_recommender.engine.RecommendationEngine` runs all of them
    independently on the same inputs and hands their outputs to the
    :class:`~movie_recommender.combiner.HybridCombiner`, which uses
    :attr:`name` and :attr:`weight` for its bookkeeping.

    Shared maths lives in :mod:`movie_recommender.scoring`; subclasses only
    implement :meth:`recommend`.

    Args:
        weight: Base weight of the strategy in the hybrid combination.
    """

    name: str = ""

    def __init__(self, weight: float) -> None:
        self._weight = weight

    @property
    def weight(self) -> float:
        return self._weight

    @abstractmethod
    def recommend(
        self,
        profile: UserProfile,
        movies: list[Movie],
        max_results: int,
    ) -> list[RecommendationResult]:
        """Return up to *max_results* scored recommendations for *profile*.

        Args:
            profile: The target user's profile.  Must not be mutated.
            movies: Candidate movies, already filtered upstream.
            max_results: Maximum number of results to return.

        Returns:
            Results ordered by descending score; ties keep candidate order.
        """
