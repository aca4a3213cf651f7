"""Tests for ContentBasedStrategy."""

from __future__ import annotations

import pytest

from movie_recommender.models import Movie, Preferences, RecommendationType, UserProfile
from movie_recommender.strategies.content_based import ContentBasedStrategy


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def strategy() -> ContentBasedStrategy:
    return ContentBasedStrategy()


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScore:
    def test_rating_only_contribution(self, strategy, new_profile) -> None:
        movie = Movie("m", "Plain", ["western"], director="Nobody", rating=5.0)
        assert strategy._score(movie, new_profile) == pytest.approx(0.025)

    def test_full_weighted_sum(self, strategy, drama_profile, movie_drama) -> None:
        # 0.4*0.9 + 0.2*0.7 + 0.2*0.8 + 0.15*0.6 + 0.05*0.75
        assert strategy._score(movie_drama, drama_profile) == pytest.approx(0.7875)

    def test_actor_uses_max_affinity(self, strategy) -> None:
        profile = UserProfile(
            "u", preferences=Preferences(actors={"Star": 1.0, "Extra": 0.2})
        )
        movie = Movie("m", "Cast", actors=["Extra", "Star", "Unknown"])
        assert strategy._score(movie, profile) == pytest.approx(0.2)

    def test_genre_uses_mean_affinity(self, strategy, drama_profile, movie_horror) -> None:
        score = strategy._score(movie_horror, drama_profile)
        # genres (0 + 0.6) / 2, director 0.7, actor max 0.8, rating 5.1
        assert score == pytest.approx(0.4 * 0.3 + 0.14 + 0.16 + 0.05 * 0.51)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class TestRecommend:
    def test_low_scores_dropped(self, strategy, new_profile, sample_movies) -> None:
        # Without preferences only the rating term contributes (<= 0.05).
        assert strategy.recommend(new_profile, sample_movies, 10) == []

    def test_results_ranked_and_typed(self, strategy, drama_profile, sample_movies) -> None:
        out = strategy.recommend(drama_profile, sample_movies, 10)
        assert [r.movie_id for r in out] == ["m_drama", "m_horror"]
        assert all(r.recommendation_type == RecommendationType.CONTENT_BASED for r in out)
        scores = [r.score for r in out]
        assert scores == sorted(scores, reverse=True)

    def test_respects_max_results(self, strategy, drama_profile, sample_movies) -> None:
        assert len(strategy.recommend(drama_profile, sample_movies, 1)) == 1

    def test_reasons(self, strategy, drama_profile, movie_drama) -> None:
        [result] = strategy.recommend(drama_profile, [movie_drama], 5)
        assert result.reasons == [
            "Matches your favourite genres: drama",
            "Directed by Piotr Nowak, a director you like",
            "Stars actors you like: Ada Laine",
        ]
        assert result.confidence == pytest.approx(1.0)

    def test_high_rating_reason(self, strategy, animation_profile, movie_animation) -> None:
        [result] = strategy.recommend(animation_profile, [movie_animation], 5)
        assert "Highly rated (9/10)" in result.reasons
        assert result.score == pytest.approx(0.445)
        assert result.confidence == pytest.approx(0.645)

    def test_fallback_reason(self, strategy) -> None:
        profile = UserProfile("u", preferences=Preferences(genres={"drama": 0.4}))
        movie = Movie("m", "Mild", ["drama"], rating=6.0)
        [result] = strategy.recommend(profile, [movie], 5)
        assert result.reasons == ["Matches your taste profile"]

    def test_does_not_mutate_profile(self, strategy, drama_profile, sample_movies) -> None:
        before = dict(drama_profile.preferences.genres)
        strategy.recommend(drama_profile, sample_movies, 10)
        assert drama_profile.preferences.genres == before
