"""Tests for SentimentBasedStrategy and its tone helpers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from movie_recommender.models import (
    EmotionType,
    Movie,
    RecommendationType,
    SentimentHistory,
    ToneDescriptor,
)
from movie_recommender.strategies.sentiment import (
    SentimentBasedStrategy,
    build_emotional_profile,
    fallback_tone,
    match_score,
)


# ---------------------------------------------------------------------------
# Emotional profile
# ---------------------------------------------------------------------------


class TestBuildEmotionalProfile:
    def test_no_history_is_balanced_default(self) -> None:
        p = build_emotional_profile(SentimentHistory())
        assert p.dominant_emotion == EmotionType.BALANCED
        assert p.intensity == pytest.approx(0.5)
        assert p.preferred_tones == ("uplifting", "engaging")
        assert p.avoided_tones == ()

    def test_strongly_positive(self) -> None:
        p = build_emotional_profile(SentimentHistory(positive=5))
        assert p.dominant_emotion == EmotionType.POSITIVE
        assert p.intensity == pytest.approx(1.0)
        assert "exhilarating" in p.preferred_tones
        assert p.avoided_tones == ("depressing", "bleak", "nihilistic")

    def test_mildly_positive_has_no_extra_tones(self) -> None:
        p = build_emotional_profile(SentimentHistory(positive=3, neutral=2))
        assert p.dominant_emotion == EmotionType.POSITIVE
        assert p.preferred_tones == ("uplifting", "inspiring", "heartwarming")

    def test_negative(self) -> None:
        p = build_emotional_profile(SentimentHistory(positive=1, neutral=1, negative=3))
        assert p.dominant_emotion == EmotionType.NEGATIVE
        assert p.intensity == pytest.approx(0.6)
        assert p.preferred_tones == ("dramatic", "intense", "thought-provoking")

    def test_balanced(self) -> None:
        p = build_emotional_profile(SentimentHistory(positive=2, neutral=2, negative=1))
        assert p.dominant_emotion == EmotionType.BALANCED
        assert p.intensity == pytest.approx(0.4)
        assert p.avoided_tones == ("extreme",)


# ---------------------------------------------------------------------------
# Tone rules
# ---------------------------------------------------------------------------


class TestFallbackTone:
    def test_light_genre(self) -> None:
        tone = fallback_tone(Movie("m", "M", ["Comedy"]))
        assert tone.dominant_emotion == EmotionType.POSITIVE
        assert tone.intensity == pytest.approx(0.7)

    def test_heavy_genre(self) -> None:
        tone = fallback_tone(Movie("m", "M", ["drama"]))
        assert tone == ToneDescriptor(EmotionType.NEGATIVE, 0.8, ("dramatic", "intense"))

    def test_mixed_light_and_heavy_is_balanced(self) -> None:
        tone = fallback_tone(Movie("m", "M", ["horror", "comedy"]))
        assert tone == ToneDescriptor(EmotionType.BALANCED, 0.5, ("engaging",))

    def test_other_genres_are_balanced(self) -> None:
        tone = fallback_tone(Movie("m", "M", ["sci-fi"]))
        assert tone == ToneDescriptor(EmotionType.BALANCED, 0.5, ("engaging",))


class TestMatchScore:
    def test_positive_user_light_movie(self) -> None:
        profile = build_emotional_profile(SentimentHistory(positive=5))
        tone = fallback_tone(Movie("m", "M", ["animation"]))
        # 0.6 * 1/5 + 0.3 * (1 - 0.3) + 0.2
        assert match_score(profile, tone) == pytest.approx(0.53)

    def test_avoided_tones_penalise(self) -> None:
        profile = build_emotional_profile(SentimentHistory(positive=1, neutral=1, negative=3))
        tone = ToneDescriptor(EmotionType.POSITIVE, 0.6, ("overly-cheerful",))
        assert match_score(profile, tone) == pytest.approx(-0.2 + 0.3)

    def test_clamped(self) -> None:
        profile = build_emotional_profile(SentimentHistory(positive=5))
        tone = ToneDescriptor(EmotionType.POSITIVE, 1.0, profile.preferred_tones)
        assert match_score(profile, tone) == 1.0


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class TestRecommend:
    def test_positive_user_gets_light_movies(self, animation_profile, sample_movies) -> None:
        out = SentimentBasedStrategy().recommend(animation_profile, sample_movies, 10)
        assert [r.movie_id for r in out] == ["m_anim", "m_comedy", "m_family"]

    def test_reported_as_content_based(self, animation_profile, sample_movies) -> None:
        out = SentimentBasedStrategy().recommend(animation_profile, sample_movies, 10)
        assert {r.recommendation_type for r in out} == {RecommendationType.CONTENT_BASED}

    def test_reasons_and_confidence(self, animation_profile, movie_animation) -> None:
        [result] = SentimentBasedStrategy().recommend(animation_profile, [movie_animation], 5)
        assert result.reasons == ["Fits your upbeat taste in films", "An emotionally powerful watch"]
        assert result.score == pytest.approx(0.53)
        assert result.confidence == pytest.approx(0.73)

    def test_uses_tone_source(self, animation_profile, movie_drama) -> None:
        source = MagicMock()
        source.describe_tone.return_value = ToneDescriptor(
            EmotionType.POSITIVE, 1.0, ("uplifting", "joyful")
        )
        [result] = SentimentBasedStrategy(source).recommend(animation_profile, [movie_drama], 5)
        source.describe_tone.assert_called_once_with(movie_drama)
        assert result.score == pytest.approx(0.6 * 2 / 5 + 0.3 + 0.2)

    def test_tone_source_failure_falls_back(self, animation_profile, sample_movies) -> None:
        source = MagicMock()
        source.describe_tone.side_effect = RuntimeError("model unavailable")
        out = SentimentBasedStrategy(source).recommend(animation_profile, sample_movies, 10)
        assert [r.movie_id for r in out] == ["m_anim", "m_comedy", "m_family"]

    def test_tone_source_none_reply_falls_back(self, animation_profile, movie_comedy) -> None:
        source = MagicMock()
        source.describe_tone.return_value = None
        [result] = SentimentBasedStrategy(source).recommend(animation_profile, [movie_comedy], 5)
        assert result.score == pytest.approx(0.53)
