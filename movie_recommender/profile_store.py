"""Profile store: user profiles, peer reviews, feedback and saved results."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping

from movie_recommender.models import (
    FeedbackEvent,
    PeerReview,
    Preferences,
    RecommendationResult,
    SentimentHistory,
    UserProfile,
)
from movie_recommender.wire import datetime_to_wire, wire_to_datetime

logger = logging.getLogger(__name__)

_DEFAULT_PROFILE_LIMIT = 100
_DEFAULT_REVIEW_LIMIT = 50


class ProfileStore:
    """Thread-safe in-memory view of the preference-persistence service.

    Profiles and reviews are loaded from the profile service with
    :meth:`load_all_from_server` and then served locally to the engine and
    the collaborative strategy.  Building profiles from analysed reviews is
    the profile service's job; this store only reads them.

    Feedback events are write-only from the engine's point of view: they
    are queued here and flushed to the profile service by
    :meth:`persist_feedback_to_server`, either from the background loop or
    at shutdown.  Events stay queued if a flush fails.

    Args:
        stub: A ``ProfileService`` client stub from
            :func:`movie_recommender.wire.make_stub` (or compatible mock).
    """

    def __init__(self, stub: Any) -> None:
        self._stub = stub
        self._lock = threading.RLock()
        self._profiles: dict[str, UserProfile] = {}
        self._reviews: dict[str, list[PeerReview]] = {}
        self._saved: dict[str, list[RecommendationResult]] = {}
        self._pending_feedback: list[FeedbackEvent] = []
        self._persist_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_all_from_server(self) -> None:
        """Replace all profiles and reviews with the profile service's copy."""
        try:
            response = self._stub.LoadProfiles({})
            profiles = {}
            for msg in response.get("profiles", []):
                profile = profile_from_message(msg)
                profiles[profile.user_id] = profile
            reviews: dict[str, list[PeerReview]] = {}
            for msg in response.get("reviews", []):
                reviews.setdefault(str(msg["user_id"]), []).append(review_from_message(msg))
            with self._lock:
                self._profiles = profiles
                self._reviews = reviews
            logger.info(
                "Loaded %d profiles and %d reviews from server.",
                len(profiles),
                sum(len(r) for r in reviews.values()),
            )
        except Exception:
            logger.exception("Failed to load profiles from server.")

    def persist_feedback_to_server(self) -> None:
        """Send all queued feedback events to the profile service."""
        with self._lock:
            pending = list(self._pending_feedback)
        if not pending:
            return
        try:
            self._stub.SaveFeedback({"events": [feedback_to_message(e) for e in pending]})
        except Exception:
            logger.exception(
                "Failed to persist %d feedback events; will retry.", len(pending)
            )
            return
        with self._lock:
            del self._pending_feedback[: len(pending)]
        logger.info("Persisted %d feedback events to server.", len(pending))

    def start_persist_loop(self, interval_seconds: int = 60) -> None:
        """Start a background daemon thread that periodically flushes feedback.

        Safe to call multiple times; only one thread is started.

        Args:
            interval_seconds: Seconds between flushes.
        """
        if self._persist_thread is not None and self._persist_thread.is_alive():
            return
        self._persist_thread = threading.Thread(
            target=self._persist_loop,
            args=(interval_seconds,),
            name="feedback-persist",
            daemon=True,
        )
        self._persist_thread.start()
        logger.debug("Feedback persist loop started (interval=%ds).", interval_seconds)

    # ------------------------------------------------------------------
    # Profiles and reviews
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the profile for *user_id*, or ``None`` if there is none."""
        with self._lock:
            return self._profiles.get(user_id)

    def put_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        with self._lock:
            self._profiles[profile.user_id] = profile

    def list_profiles(self, limit: int = _DEFAULT_PROFILE_LIMIT) -> list[UserProfile]:
        """Return up to *limit* profiles in load order."""
        with self._lock:
            return list(self._profiles.values())[:limit]

    def add_review(self, user_id: str, review: PeerReview) -> None:
        """Record a review written by *user_id*.

        Raises:
            ValueError: If the rating is outside [1, 5].
        """
        if not 1 <= review.rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {review.rating!r}")
        with self._lock:
            self._reviews.setdefault(user_id, []).append(review)

    def get_positive_reviews(
        self,
        user_id: str,
        min_rating: float = 3,
        limit: int = _DEFAULT_REVIEW_LIMIT,
    ) -> list[PeerReview]:
        """Return up to *limit* of *user_id*'s reviews rated *min_rating* or higher."""
        with self._lock:
            reviews = list(self._reviews.get(user_id, ()))
        return [r for r in reviews if r.rating >= min_rating][:limit]

    def get_reviewed_movie_ids(self, user_id: str) -> set[str]:
        """Return the IDs of every movie *user_id* has reviewed."""
        with self._lock:
            return {r.movie_id for r in self._reviews.get(user_id, ())}

    # ------------------------------------------------------------------
    # Feedback and saved recommendations
    # ------------------------------------------------------------------

    def record_feedback(self, event: FeedbackEvent) -> None:
        """Queue a feedback event for the next flush."""
        with self._lock:
            self._pending_feedback.append(event)
        logger.info(
            "Feedback recorded: user=%r movie=%r kind=%s",
            event.user_id,
            event.movie_id,
            event.kind.value,
        )

    def pending_feedback(self) -> list[FeedbackEvent]:
        """Return a snapshot of feedback events not yet persisted."""
        with self._lock:
            return list(self._pending_feedback)

    def save_recommendations(self, user_id: str, results: list[RecommendationResult]) -> None:
        """Remember the latest recommendation list produced for *user_id*."""
        with self._lock:
            self._saved[user_id] = list(results)

    def get_saved_recommendations(
        self, user_id: str, limit: int = 50
    ) -> list[RecommendationResult]:
        """Return up to *limit* results from *user_id*'s latest list."""
        with self._lock:
            return list(self._saved.get(user_id, ()))[:limit]

    def counts(self) -> tuple[int, int]:
        """Return ``(profiles, reviews)`` currently held."""
        with self._lock:
            return len(self._profiles), sum(len(r) for r in self._reviews.values())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _persist_loop(self, interval_seconds: int) -> None:
        """Periodically flush feedback. Runs in a daemon thread."""
        while True:
            time.sleep(interval_seconds)
            self.persist_feedback_to_server()


# ---------------------------------------------------------------------------
# Message conversion
# ---------------------------------------------------------------------------


def profile_from_message(msg: Mapping[str, Any]) -> UserProfile:
    """Build a :class:`UserProfile` from a profile-service document."""
    prefs = msg.get("preferences", {})
    history = msg.get("sentiment_history", {})
    average = msg.get("average_rating")
    last_updated = msg.get("last_updated")
    return UserProfile(
        user_id=str(msg["user_id"]),
        preferences=Preferences(
            genres=_weights(prefs.get("genres")),
            themes=_weights(prefs.get("themes")),
            actors=_weights(prefs.get("actors")),
            directors=_weights(prefs.get("directors")),
            keywords=_weights(prefs.get("keywords")),
        ),
        sentiment_history=SentimentHistory(
            positive=int(history.get("positive", 0)),
            neutral=int(history.get("neutral", 0)),
            negative=int(history.get("negative", 0)),
        ),
        review_count=int(msg.get("review_count", 0)),
        average_rating=float(average) if average is not None else None,
        last_updated=wire_to_datetime(last_updated) if last_updated else None,
    )


def review_from_message(msg: Mapping[str, Any]) -> PeerReview:
    """Build a :class:`PeerReview` from a profile-service document."""
    return PeerReview(
        movie_id=str(msg["movie_id"]),
        rating=float(msg["rating"]),
        review_text=str(msg.get("review_text", "")),
    )


def feedback_to_message(event: FeedbackEvent) -> dict[str, Any]:
    """Serialise a :class:`FeedbackEvent` for ``SaveFeedback``."""
    return {
        "user_id": event.user_id,
        "movie_id": event.movie_id,
        "feedback": event.kind.value,
        "timestamp": datetime_to_wire(event.timestamp),
        "recommendation_id": event.recommendation_id,
        "reason": event.reason,
    }


def _weights(raw: Mapping[str, Any] | None) -> dict[str, float]:
    return {str(k): float(v) for k, v in (raw or {}).items()}
