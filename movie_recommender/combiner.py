"""Hybrid combiner: fuses per-strategy results into one ranked list."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from movie_recommender.models import (
    Movie,
    RecommendationConfig,
    RecommendationResult,
    RecommendationType,
    StrategyResult,
)
from movie_recommender.scoring import clamp

logger = logging.getLogger(__name__)

HYBRID_BONUS = 0.1

_EMPTY_RESULT_FACTOR = 0.1
_CONFIDENCE_BASE = 0.5
_SLOW_STRATEGY_MS = 5000.0
_SLOW_STRATEGY_FACTOR = 0.8

CONTENT_STRATEGY = "content_based"
COLLABORATIVE_STRATEGY = "collaborative"


@dataclass
class _CombinedScore:
    """Running totals for one movie while strategy results are merged."""

    movie: Movie
    total_score: float = 0.0
    weight_sum: float = 0.0
    confidence_sum: float = 0.0
    reasons: dict[str, None] = field(default_factory=dict)
    strategies: list[str] = field(default_factory=list)


class HybridCombiner:
    """Merges the outputs of several strategies into ``hybrid`` results.

    Each strategy's contribution is scaled by a *dynamic weight*, computed
    per call by :meth:`dynamic_weight`.  For every movie the combiner keeps a
    weighted score average, the mean confidence of the strategies that
    produced it, and the union of their reasons.  Movies produced by more
    than one strategy get a :data:`HYBRID_BONUS` on both score and
    confidence; both are clamped to [0, 1].

    Accumulation is commutative over strategies, so the final ranking does
    not depend on which strategy finished first.  Ties are broken by the
    order in which movies were first seen.
    """

    def combine(
        self,
        strategy_results: list[StrategyResult],
        config: RecommendationConfig,
    ) -> list[RecommendationResult]:
        """Combine *strategy_results* into one list sorted by score.

        Args:
            strategy_results: One bundle per strategy, in a fixed order.
            config: The request's configuration (for weight multipliers).

        Returns:
            New ``hybrid`` results; the inputs are not modified.
        """
        combined: dict[str, _CombinedScore] = {}

        for bundle in strategy_results:
            weight = self.dynamic_weight(bundle, config)
            logger.debug(
                "Strategy %s: %d results, dynamic weight %.4f",
                bundle.strategy,
                len(bundle.results),
                weight,
            )
            for result in bundle.results:
                entry = combined.get(result.movie_id)
                if entry is None:
                    entry = combined[result.movie_id] = _CombinedScore(movie=result.movie)
                entry.total_score += result.score * weight
                entry.weight_sum += weight
                entry.confidence_sum += result.confidence
                entry.strategies.append(bundle.strategy)
                for reason in result.reasons:
                    entry.reasons.setdefault(reason, None)

        final: list[RecommendationResult] = []
        for entry in combined.values():
            score = entry.total_score / entry.weight_sum if entry.weight_sum > 0 else 0.0
            confidence = entry.confidence_sum / len(entry.strategies)
            bonus = HYBRID_BONUS if len(entry.strategies) > 1 else 0.0
            final.append(
                RecommendationResult(
                    movie=entry.movie,
                    score=clamp(score + bonus),
                    reasons=list(entry.reasons),
                    recommendation_type=RecommendationType.HYBRID,
                    confidence=clamp(confidence + bonus),
                )
            )

        final.sort(key=lambda r: r.score, reverse=True)
        return final

    @staticmethod
    def dynamic_weight(bundle: StrategyResult, config: RecommendationConfig) -> float:
        """Return the effective weight of one strategy for this call.

        ``base × quality × performance × config`` where quality is 0.1 for
        an empty result set and ``0.5 + mean confidence`` otherwise,
        performance is 0.8 for strategies slower than 5 s, and config is the
        caller's ``content_weight`` / ``collaborative_weight`` for those two
        strategies (1.0 for any other).
        """
        weight = bundle.weight

        if not bundle.results:
            weight *= _EMPTY_RESULT_FACTOR
        else:
            mean_confidence = sum(r.confidence for r in bundle.results) / len(bundle.results)
            weight *= _CONFIDENCE_BASE + mean_confidence

        if bundle.execution_ms > _SLOW_STRATEGY_MS:
            weight *= _SLOW_STRATEGY_FACTOR

        if bundle.strategy == CONTENT_STRATEGY:
            weight *= config.content_weight
        elif bundle.strategy == COLLABORATIVE_STRATEGY:
            weight *= config.collaborative_weight

        return weight
