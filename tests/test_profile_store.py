"""Tests for movie_recommender.profile_store.ProfileStore."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from movie_recommender.models import (
    FeedbackEvent,
    FeedbackKind,
    Movie,
    PeerReview,
    UserProfile,
)
from movie_recommender.profile_store import (
    ProfileStore,
    feedback_to_message,
    profile_from_message,
)

from conftest import TS, make_result, make_store


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _event(movie_id: str = "m1", kind: FeedbackKind = FeedbackKind.LIKE) -> FeedbackEvent:
    return FeedbackEvent(user_id="u1", movie_id=movie_id, kind=kind, timestamp=TS)


def _profile_msg(user_id: str) -> dict:
    return {
        "user_id": user_id,
        "preferences": {
            "genres": {"drama": 0.9},
            "directors": {"Piotr Nowak": 0.7},
        },
        "sentiment_history": {"positive": 4.0, "neutral": 1.0, "negative": 0.0},
        "review_count": 5.0,
        "average_rating": 4.2,
        "last_updated": "2024-06-01T12:00:00Z",
    }


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoadAllFromServer:
    def test_loads_profiles_and_reviews(self) -> None:
        stub = MagicMock()
        stub.LoadProfiles.return_value = {
            "profiles": [_profile_msg("u1"), _profile_msg("u2")],
            "reviews": [
                {"user_id": "u1", "movie_id": "m1", "rating": 5.0, "review_text": "Loved it"},
                {"user_id": "u1", "movie_id": "m2", "rating": 2.0},
            ],
        }
        store = ProfileStore(stub=stub)
        store.load_all_from_server()

        profile = store.get_profile("u1")
        assert profile is not None
        assert profile.preferences.genres == {"drama": 0.9}
        assert profile.sentiment_history.positive == 4
        assert profile.review_count == 5
        assert profile.last_updated == TS
        assert store.get_reviewed_movie_ids("u1") == {"m1", "m2"}
        assert len(store.list_profiles()) == 2

    def test_load_does_not_raise_on_stub_error(self) -> None:
        stub = MagicMock()
        stub.LoadProfiles.side_effect = RuntimeError("unavailable")
        store = ProfileStore(stub=stub)
        store.put_profile(UserProfile("u_keep"))
        store.load_all_from_server()
        assert store.get_profile("u_keep") is not None

    def test_profile_without_optional_fields(self) -> None:
        profile = profile_from_message({"user_id": "u9"})
        assert profile.preferences.genres == {}
        assert profile.sentiment_history.total == 0
        assert profile.average_rating is None
        assert profile.last_updated is None


# ---------------------------------------------------------------------------
# Profiles and reviews
# ---------------------------------------------------------------------------


class TestProfiles:
    def test_unknown_user_is_none(self) -> None:
        assert make_store().get_profile("nobody") is None

    def test_list_profiles_limit(self) -> None:
        store = make_store(*(UserProfile(f"u{i}") for i in range(5)))
        assert [p.user_id for p in store.list_profiles(limit=3)] == ["u0", "u1", "u2"]


class TestReviews:
    def test_positive_reviews_filtered(self) -> None:
        store = make_store()
        store.add_review("u1", PeerReview("m1", 5))
        store.add_review("u1", PeerReview("m2", 2))
        store.add_review("u1", PeerReview("m3", 3))
        assert [r.movie_id for r in store.get_positive_reviews("u1")] == ["m1", "m3"]

    def test_positive_reviews_limit(self) -> None:
        store = make_store()
        for i in range(5):
            store.add_review("u1", PeerReview(f"m{i}", 4))
        assert len(store.get_positive_reviews("u1", limit=2)) == 2

    @pytest.mark.parametrize("rating", [0, 6])
    def test_invalid_rating_raises(self, rating) -> None:
        with pytest.raises(ValueError):
            make_store().add_review("u1", PeerReview("m1", rating))

    def test_unknown_user_has_no_reviews(self) -> None:
        store = make_store()
        assert store.get_positive_reviews("ghost") == []
        assert store.get_reviewed_movie_ids("ghost") == set()

    def test_counts(self) -> None:
        store = make_store(UserProfile("u1"), UserProfile("u2"))
        assert store.counts() == (2, 0)
        store.add_review("u1", PeerReview("m1", 5))
        store.add_review("u1", PeerReview("m2", 2))
        store.add_review("u3", PeerReview("m1", 4))
        assert store.counts() == (2, 3)


# ---------------------------------------------------------------------------
# Feedback and saved recommendations
# ---------------------------------------------------------------------------


class TestFeedback:
    def test_record_queues_event(self) -> None:
        store = make_store()
        store.record_feedback(_event())
        assert store.pending_feedback() == [_event()]

    def test_persist_sends_and_clears(self) -> None:
        store = make_store()
        store.record_feedback(_event("m1"))
        store.record_feedback(_event("m2", FeedbackKind.NOT_INTERESTED))
        store.persist_feedback_to_server()

        store._stub.SaveFeedback.assert_called_once()
        sent = store._stub.SaveFeedback.call_args[0][0]["events"]
        assert [e["movie_id"] for e in sent] == ["m1", "m2"]
        assert sent[1]["feedback"] == "not_interested"
        assert store.pending_feedback() == []

    def test_persist_failure_keeps_events(self) -> None:
        store = make_store()
        store._stub.SaveFeedback.side_effect = RuntimeError("db error")
        store.record_feedback(_event())
        store.persist_feedback_to_server()
        assert len(store.pending_feedback()) == 1

    def test_persist_nothing_pending(self) -> None:
        store = make_store()
        store.persist_feedback_to_server()
        store._stub.SaveFeedback.assert_not_called()

    def test_feedback_message(self) -> None:
        event = FeedbackEvent(
            user_id="u1",
            movie_id="m1",
            kind=FeedbackKind.BOOKMARK,
            timestamp=datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc),
            recommendation_id="r1",
        )
        msg = feedback_to_message(event)
        assert msg["feedback"] == "bookmark"
        assert msg["timestamp"] == "2024-06-01T12:00:00Z"
        assert msg["recommendation_id"] == "r1"
        assert msg["reason"] is None


class TestSavedRecommendations:
    def test_round_trip(self) -> None:
        store = make_store()
        results = [make_result(Movie(f"m{i}", ""), 0.5) for i in range(3)]
        store.save_recommendations("u1", results)
        assert store.get_saved_recommendations("u1") == results
        assert store.get_saved_recommendations("u1", limit=2) == results[:2]

    def test_latest_list_replaces_previous(self) -> None:
        store = make_store()
        store.save_recommendations("u1", [make_result(Movie("old", ""), 0.5)])
        store.save_recommendations("u1", [make_result(Movie("new", ""), 0.5)])
        assert [r.movie_id for r in store.get_saved_recommendations("u1")] == ["new"]

    def test_none_saved(self) -> None:
        assert make_store().get_saved_recommendations("u1") == []
