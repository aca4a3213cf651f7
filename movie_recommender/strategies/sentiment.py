"""Sentiment-based strategy matching a movie's tone to the user's mood."""

from __future__ import annotations

import logging
from typing import Any

from movie_recommender.models import (
    EmotionalProfile,
    EmotionType,
    Movie,
    RecommendationResult,
    RecommendationType,
    SentimentHistory,
    ToneDescriptor,
    UserProfile,
)
from movie_recommender.scoring import clamp, derive_confidence, rank
from movie_recommender.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)

_POSITIVE_SHARE_THRESHOLD = 0.5
_NEGATIVE_SHARE_THRESHOLD = 0.4

_PREFERRED_TONE_WEIGHT = 0.6
_AVOIDED_TONE_WEIGHT = 0.4
_INTENSITY_WEIGHT = 0.3
_EMOTION_MATCH_BONUS = 0.2
_MIN_SCORE = 0.3

_DEFAULT_PROFILE = EmotionalProfile(
    dominant_emotion=EmotionType.BALANCED,
    intensity=0.5,
    preferred_tones=("uplifting", "engaging"),
    avoided_tones=(),
)

# emotion -> (base tones, intensity above which extra tones apply, extra tones)
_PREFERRED_TONES: dict[EmotionType, tuple[tuple[str, ...], float, tuple[str, ...]]] = {
    EmotionType.POSITIVE: (
        ("uplifting", "inspiring", "heartwarming"),
        0.7,
        ("exhilarating", "joyful"),
    ),
    EmotionType.NEGATIVE: (
        ("dramatic", "intense", "thought-provoking"),
        0.6,
        ("dark", "melancholic"),
    ),
    EmotionType.BALANCED: (("engaging", "well-rounded", "nuanced"), 1.0, ()),
}

_AVOIDED_TONES: dict[EmotionType, tuple[str, ...]] = {
    EmotionType.POSITIVE: ("depressing", "bleak", "nihilistic"),
    EmotionType.NEGATIVE: ("overly-cheerful", "simplistic"),
    EmotionType.BALANCED: ("extreme",),
}

_POSITIVE_GENRES = frozenset({"comedy", "romance", "family", "animation"})
_NEGATIVE_GENRES = frozenset({"horror", "thriller", "drama"})

_EMOTION_REASONS = {
    EmotionType.POSITIVE: "Fits your upbeat taste in films",
    EmotionType.NEGATIVE: "For when you want a film that explores deeper themes",
    EmotionType.BALANCED: "Offers a balanced emotional experience",
}


class SentimentBasedStrategy(RecommendationStrategy):
    """Recommends movies whose emotional tone suits the user's review history.

    The user's sentiment counts are turned into an
    :class:`~movie_recommender.models.EmotionalProfile`; each candidate's
    :class:`~movie_recommender.models.ToneDescriptor` comes from
    *tone_source* (normally the language model), falling back to a
    genre-based rule when that source is missing, raises, or returns
    nothing.  Score per movie::

        0.6 × preferred-tone overlap − 0.4 × avoided-tone overlap
        + 0.3 × (1 − |Δ intensity|) + 0.2 × (same dominant emotion)

    clamped to [0, 1]; candidates scoring ``<= 0.3`` are dropped.

    Results are reported as ``content_based``; the sentiment signal is a
    refinement of content matching rather than a separate visible type.

    Args:
        tone_source: Object with ``describe_tone(movie)``, or ``None`` to
            always use the genre rule.
        weight: Base weight in the hybrid combination.
    """

    name = "sentiment_based"

    def __init__(self, tone_source: Any = None, weight: float = 0.2) -> None:
        super().__init__(weight)
        self._tone_source = tone_source

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def recommend(
        self,
        profile: UserProfile,
        movies: list[Movie],
        max_results: int,
    ) -> list[RecommendationResult]:
        """Return up to *max_results* movies whose tone matches the user.

        Args:
            profile: Target user.
            movies: Candidate movies.
            max_results: Maximum number of results to return.

        Returns:
            Results of type ``content_based``, best-first.
        """
        logger.info(
            "Sentiment-based filtering for user %r over %d candidates",
            profile.user_id,
            len(movies),
        )
        emotional_profile = build_emotional_profile(profile.sentiment_history)
        reasons = self._reasons(emotional_profile)

        results: list[RecommendationResult] = []
        for movie in movies:
            score = match_score(emotional_profile, self._describe(movie))
            if score <= _MIN_SCORE:
                continue
            results.append(
                RecommendationResult(
                    movie=movie,
                    score=score,
                    reasons=list(reasons),
                    recommendation_type=RecommendationType.CONTENT_BASED,
                    confidence=derive_confidence(score, reasons),
                )
            )

        ranked = rank(results, max_results)
        logger.info("Sentiment-based filtering produced %d results", len(ranked))
        return ranked

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _describe(self, movie: Movie) -> ToneDescriptor:
        """Return the tone of *movie*, falling back to the genre rule."""
        if self._tone_source is None:
            return fallback_tone(movie)
        try:
            descriptor = self._tone_source.describe_tone(movie)
        except Exception:
            logger.warning(
                "Tone analysis failed for movie %r; using genre fallback",
                movie.movie_id,
                exc_info=True,
            )
            return fallback_tone(movie)
        return descriptor if descriptor is not None else fallback_tone(movie)

    @staticmethod
    def _reasons(profile: EmotionalProfile) -> list[str]:
        reasons = [_EMOTION_REASONS[profile.dominant_emotion]]
        if profile.intensity > 0.7:
            reasons.append("An emotionally powerful watch")
        elif profile.intensity < 0.3:
            reasons.append("A gentle, easy-going watch")
        return reasons


# ---------------------------------------------------------------------------
# Emotional profile and tone helpers
# ---------------------------------------------------------------------------


def build_emotional_profile(history: SentimentHistory) -> EmotionalProfile:
    """Derive a user's :class:`EmotionalProfile` from their sentiment counts.

    With no history the neutral default profile is returned.  Otherwise the
    dominant emotion is ``positive`` when more than half of the reviews were
    positive, ``negative`` when more than 40% were negative, and
    ``balanced`` otherwise.  Intensity is the largest of the three shares.
    """
    total = history.total
    if total <= 0:
        return _DEFAULT_PROFILE

    positive = history.positive / total
    neutral = history.neutral / total
    negative = history.negative / total

    if positive > _POSITIVE_SHARE_THRESHOLD:
        emotion = EmotionType.POSITIVE
    elif negative > _NEGATIVE_SHARE_THRESHOLD:
        emotion = EmotionType.NEGATIVE
    else:
        emotion = EmotionType.BALANCED

    intensity = max(positive, neutral, negative)
    base, extra_above, extra = _PREFERRED_TONES[emotion]
    preferred = base + extra if intensity > extra_above else base

    return EmotionalProfile(
        dominant_emotion=emotion,
        intensity=intensity,
        preferred_tones=preferred,
        avoided_tones=_AVOIDED_TONES[emotion],
    )


def fallback_tone(movie: Movie) -> ToneDescriptor:
    """Deterministic genre-based tone used when no tone analysis is available.

    Only light genres (comedy, romance, family, animation) read as positive
    and only heavy genres (horror, thriller, drama) as negative.  A movie
    mixing the two, or with neither, is balanced.
    """
    genres = {g.lower() for g in movie.genres}
    light = bool(genres & _POSITIVE_GENRES)
    heavy = bool(genres & _NEGATIVE_GENRES)
    if light and not heavy:
        return ToneDescriptor(EmotionType.POSITIVE, 0.7, ("uplifting", "entertaining"))
    if heavy and not light:
        return ToneDescriptor(EmotionType.NEGATIVE, 0.8, ("dramatic", "intense"))
    return ToneDescriptor(EmotionType.BALANCED, 0.5, ("engaging",))


def match_score(profile: EmotionalProfile, tone: ToneDescriptor) -> float:
    """Score how well a movie's tone suits an emotional profile, in [0, 1]."""
    movie_tones = set(tone.tones)

    preferred_hits = sum(1 for t in profile.preferred_tones if t in movie_tones)
    avoided_hits = sum(1 for t in profile.avoided_tones if t in movie_tones)

    score = 0.0
    if profile.preferred_tones:
        score += _PREFERRED_TONE_WEIGHT * preferred_hits / len(profile.preferred_tones)
    score -= _AVOIDED_TONE_WEIGHT * avoided_hits / max(len(profile.avoided_tones), 1)
    score += _INTENSITY_WEIGHT * (1.0 - abs(profile.intensity - tone.intensity))
    if profile.dominant_emotion == tone.dominant_emotion:
        score += _EMOTION_MATCH_BONUS
    return clamp(score)
