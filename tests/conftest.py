"""Shared pytest fixtures for all recommender tests."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from movie_recommender.catalogue import MovieCatalogue
from movie_recommender.models import (
    Movie,
    Preferences,
    RecommendationResult,
    RecommendationType,
    SentimentHistory,
    UserProfile,
)
from movie_recommender.profile_store import ProfileStore


TS = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_result(
    movie: Movie,
    score: float,
    confidence: float = 0.5,
    reasons: list[str] | None = None,
    recommendation_type: RecommendationType = RecommendationType.CONTENT_BASED,
) -> RecommendationResult:
    return RecommendationResult(
        movie=movie,
        score=score,
        reasons=reasons if reasons is not None else ["because"],
        recommendation_type=recommendation_type,
        confidence=confidence,
    )


def make_catalogue(movies: list[Movie]) -> MovieCatalogue:
    catalogue = MovieCatalogue(stub=MagicMock())
    catalogue.load(movies)
    return catalogue


def make_store(*profiles: UserProfile) -> ProfileStore:
    store = ProfileStore(stub=MagicMock())
    for p in profiles:
        store.put_profile(p)
    return store


# ---------------------------------------------------------------------------
# Movie fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def movie_animation() -> Movie:
    return Movie(
        "m_anim",
        "Paper Lanterns",
        ["animation"],
        director="Hana Ito",
        actors=["Kai Mori"],
        year=2019,
        rating=9.0,
        keywords=["friendship"],
    )


@pytest.fixture
def movie_drama() -> Movie:
    return Movie(
        "m_drama",
        "Cold Harbour",
        ["drama"],
        director="Piotr Nowak",
        actors=["Ada Laine"],
        year=2015,
        rating=7.5,
        keywords=["grief"],
    )


@pytest.fixture
def movie_comedy() -> Movie:
    return Movie(
        "m_comedy",
        "Wrong Wedding",
        ["comedy"],
        director="Sam Ruiz",
        actors=["Lou Park"],
        year=2021,
        rating=7.2,
        keywords=["wedding"],
    )


@pytest.fixture
def movie_horror() -> Movie:
    return Movie(
        "m_horror",
        "The Hollow",
        ["horror", "thriller"],
        director="Piotr Nowak",
        actors=["Ada Laine", "Ben Cole"],
        year=2012,
        rating=5.1,
        keywords=["ghost"],
    )


@pytest.fixture
def sample_movies(movie_animation, movie_drama, movie_comedy, movie_horror) -> list[Movie]:
    """Eight-movie catalogue spanning light and heavy genres."""
    extra = [
        Movie("m_doc", "Deep Blue", ["documentary"], director="Ines Sol", rating=8.1),
        Movie("m_scifi", "Orbit Line", ["sci-fi"], director="Ravi Das", rating=6.4),
        Movie("m_family", "Pony Summer", ["family", "comedy"], director="Sam Ruiz", rating=6.8),
        Movie("m_old", "Dust Road", ["western"], director="Bill Hart", rating=3.2),
    ]
    return [movie_animation, movie_drama, movie_comedy, movie_horror] + extra


# ---------------------------------------------------------------------------
# User profile fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def new_profile() -> UserProfile:
    """A user with no preferences and no review history."""
    return UserProfile(user_id="u_new")


@pytest.fixture
def animation_profile() -> UserProfile:
    """A cheerful reviewer who only cares about animation."""
    return UserProfile(
        user_id="u_anim",
        preferences=Preferences(genres={"animation": 1.0}),
        sentiment_history=SentimentHistory(positive=5),
        review_count=5,
        average_rating=4.6,
    )


@pytest.fixture
def drama_profile() -> UserProfile:
    """A reviewer with strong drama tastes and a favourite director."""
    return UserProfile(
        user_id="u_drama",
        preferences=Preferences(
            genres={"drama": 0.9, "thriller": 0.6},
            actors={"Ada Laine": 0.8},
            directors={"Piotr Nowak": 0.7},
            keywords={"grief": 0.6},
        ),
        sentiment_history=SentimentHistory(positive=1, neutral=1, negative=3),
        review_count=5,
        average_rating=3.4,
        last_updated=TS,
    )
