"""Tests for confidence filtering and diversity-aware selection."""

from __future__ import annotations

import pytest

from movie_recommender.diversity import diversity_score, enhance_diversity, filter_by_confidence
from movie_recommender.models import Movie

from conftest import make_result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ranked_results():
    """Ten results, all below the auto-admit score, sorted by score."""
    rows = [
        ("m1", 0.69, ["drama"], "A"),
        ("m2", 0.68, ["drama"], "A"),
        ("m3", 0.67, ["drama"], "B"),
        ("m4", 0.66, ["drama"], "A"),
        ("m5", 0.65, ["drama", "comedy"], "A"),
        ("m6", 0.64, ["drama"], "C"),
        ("m7", 0.63, ["drama", "comedy"], "C"),
        ("m8", 0.62, ["drama", "horror"], "A"),
        ("m9", 0.61, ["drama", "horror", "romance"], "B"),
        ("m10", 0.60, ["drama", "romance"], "C"),
    ]
    return [
        make_result(Movie(mid, mid.upper(), genres, director=director), score)
        for mid, score, genres, director in rows
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestFilterByConfidence:
    def test_drops_low_confidence(self) -> None:
        keep = make_result(Movie("k", "K"), 0.5, confidence=0.3)
        drop = make_result(Movie("d", "D"), 0.9, confidence=0.29)
        assert filter_by_confidence([keep, drop], 0.3) == [keep]


class TestDiversityScore:
    def test_all_new(self) -> None:
        movie = Movie("x", "X", ["drama"], director="A")
        assert diversity_score(movie, set(), set(), 0) == pytest.approx(0.8)

    def test_nothing_new(self) -> None:
        movie = Movie("x", "X", ["drama"], director="A")
        assert diversity_score(movie, {"drama"}, {"A"}, 3) == pytest.approx(0.0)

    def test_position_scaling(self) -> None:
        movie = Movie("x", "X", ["drama", "comedy"], director="C")
        assert diversity_score(movie, {"drama"}, {"A", "B"}, 3) == pytest.approx(0.55 * 1.3)


class TestEnhanceDiversity:
    def test_exact_selection(self, ranked_results) -> None:
        out = enhance_diversity(ranked_results, 5)
        assert [r.movie_id for r in out] == ["m1", "m2", "m3", "m7", "m4"]

    def test_short_list_unchanged(self, ranked_results) -> None:
        out = enhance_diversity(ranked_results[:4], 5)
        assert [r.movie_id for r in out] == ["m1", "m2", "m3", "m4"]

    def test_high_scores_always_admitted(self) -> None:
        results = [
            make_result(Movie(f"h{i}", "", ["drama"], director="A"), 0.9 - i * 0.01)
            for i in range(6)
        ]
        out = enhance_diversity(results, 4)
        assert [r.movie_id for r in out] == ["h0", "h1", "h2", "h3"]

    def test_no_duplicates(self, ranked_results) -> None:
        out = enhance_diversity(ranked_results, 8)
        ids = [r.movie_id for r in out]
        assert len(ids) == len(set(ids)) == 8
