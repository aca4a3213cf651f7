"""Core domain dataclasses shared across all recommender modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class RecommendationType(str, Enum):
    """How a recommendation was produced, as reported to callers."""

    CONTENT_BASED = "content_based"
    COLLABORATIVE = "collaborative"
    HYBRID = "hybrid"
    TRENDING = "trending"


class EmotionType(str, Enum):
    """Dominant emotional direction of a user or a movie."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    BALANCED = "balanced"


class FeedbackKind(str, Enum):
    """Post-hoc reactions a user can give to a recommended movie."""

    LIKE = "like"
    DISLIKE = "dislike"
    NOT_INTERESTED = "not_interested"
    WATCHED = "watched"
    BOOKMARK = "bookmark"


@dataclass
class Movie:
    """A single movie in the catalogue.

    Attributes:
        movie_id: Unique identifier for the movie.
        title: Human-readable title.
        genres: Genre labels (set-like; order only matters for display).
        director: The movie's single credited director.
        actors: Cast in billing order.
        year: Release year.
        rating: Catalogue rating on a 0–10 scale.
        plot: Free-text synopsis.
        keywords: Descriptive keywords.
    """

    movie_id: str
    title: str
    genres: list[str] = field(default_factory=list)
    director: str = ""
    actors: list[str] = field(default_factory=list)
    year: int = 0
    rating: float = 0.0
    plot: str = ""
    keywords: list[str] = field(default_factory=list)


@dataclass
class Preferences:
    """Accumulated label → affinity weights, one mapping per category."""

    genres: dict[str, float] = field(default_factory=dict)
    themes: dict[str, float] = field(default_factory=dict)
    actors: dict[str, float] = field(default_factory=dict)
    directors: dict[str, float] = field(default_factory=dict)
    keywords: dict[str, float] = field(default_factory=dict)


@dataclass
class SentimentHistory:
    """Counts of the sentiment labels assigned to a user's past reviews."""

    positive: int = 0
    neutral: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative

    def as_vector(self) -> dict[str, float]:
        """Return the counts as a sparse vector keyed by sentiment label."""
        return {
            "positive": float(self.positive),
            "neutral": float(self.neutral),
            "negative": float(self.negative),
        }


@dataclass
class UserProfile:
    """Read-only view of a user's taste, owned by the profile store.

    The engine never mutates a profile; it is rebuilt by the
    preference-persistence service as new reviews are analysed.

    Attributes:
        user_id: Unique identifier for the user.
        preferences: Per-category affinity weights.
        sentiment_history: Sentiment label counts over past reviews.
        review_count: Number of reviews the profile was built from.
        average_rating: Mean of the user's review ratings (1–5), if known.
        last_updated: When the profile was last rebuilt.
    """

    user_id: str
    preferences: Preferences = field(default_factory=Preferences)
    sentiment_history: SentimentHistory = field(default_factory=SentimentHistory)
    review_count: int = 0
    average_rating: float | None = None
    last_updated: datetime | None = None


@dataclass
class RecommendationResult:
    """A scored recommendation for a single movie.

    Attributes:
        movie: The recommended movie.
        score: Engine-internal relevance score (roughly 0–1).
        reasons: Human-readable explanations, de-duplicated, in order.
        recommendation_type: Which kind of recommendation this is.
        confidence: Confidence in the recommendation, in [0, 1].
    """

    movie: Movie
    score: float
    reasons: list[str]
    recommendation_type: RecommendationType
    confidence: float

    @property
    def movie_id(self) -> str:
        return self.movie.movie_id


@dataclass(frozen=True)
class EmotionalProfile:
    """Emotional preferences derived from a user's sentiment history."""

    dominant_emotion: EmotionType
    intensity: float
    preferred_tones: tuple[str, ...]
    avoided_tones: tuple[str, ...]


@dataclass(frozen=True)
class ToneDescriptor:
    """Emotional character of a movie (dominant emotion, intensity, tones)."""

    dominant_emotion: EmotionType
    intensity: float
    tones: tuple[str, ...]


@dataclass(frozen=True)
class StrategyResult:
    """One strategy's output for a single call, plus timing bookkeeping."""

    strategy: str
    weight: float
    results: tuple[RecommendationResult, ...]
    execution_ms: float


@dataclass(frozen=True)
class PeerReview:
    """A positive review written by another user.

    Attributes:
        movie_id: The reviewed movie.
        rating: Rating on the 1–5 review scale.
        review_text: Free-text body of the review.
    """

    movie_id: str
    rating: float
    review_text: str = ""


@dataclass(frozen=True)
class FeedbackEvent:
    """A user's reaction to a recommendation, forwarded to the profile store."""

    user_id: str
    movie_id: str
    kind: FeedbackKind
    timestamp: datetime
    recommendation_id: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class RecommendationConfig:
    """Caller-supplied options for a single recommendation request.

    Attributes:
        max_recommendations: Number of results to return.
        content_weight: Multiplier applied to the content-based strategy.
        collaborative_weight: Multiplier applied to the collaborative strategy.
        diversity_boost: Whether to run diversity-aware selection.
        min_confidence: Results below this confidence are discarded.
        exclude_watched: Whether movies the user already reviewed are
            removed from the candidate set.
        genre: Restrict candidates to this genre when set.
        min_rating: Catalogue rating floor (0 to 10) overriding the
            candidate defaults when set.
    """

    max_recommendations: int = 10
    content_weight: float = 0.7
    collaborative_weight: float = 0.3
    diversity_boost: bool = True
    min_confidence: float = 0.3
    exclude_watched: bool = True
    genre: str | None = None
    min_rating: float | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.max_recommendations <= 50:
            raise ValueError(
                f"max_recommendations must be between 1 and 50, got {self.max_recommendations!r}"
            )
        for name in ("content_weight", "collaborative_weight"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value!r}")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(
                f"min_confidence must be between 0 and 1, got {self.min_confidence!r}"
            )
        if self.min_rating is not None and not 0.0 <= self.min_rating <= 10.0:
            raise ValueError(f"min_rating must be between 0 and 10, got {self.min_rating!r}")
        if self.genre is not None and not self.genre:
            raise ValueError("genre must be non-empty when given")

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any] | None,
        defaults: RecommendationConfig | None = None,
    ) -> RecommendationConfig:
        """Build a config from a request payload, using defaults for missing keys.

        Raises:
            ValueError: If a value has the wrong type or is out of range.
        """
        data = data or {}
        defaults = defaults or cls()
        try:
            return cls(
                max_recommendations=int(
                    data.get("max_recommendations", defaults.max_recommendations)
                ),
                content_weight=float(data.get("content_weight", defaults.content_weight)),
                collaborative_weight=float(
                    data.get("collaborative_weight", defaults.collaborative_weight)
                ),
                diversity_boost=bool(data.get("diversity_boost", defaults.diversity_boost)),
                min_confidence=float(data.get("min_confidence", defaults.min_confidence)),
                exclude_watched=bool(data.get("exclude_watched", defaults.exclude_watched)),
                genre=_optional(data, "genre", defaults.genre, str),
                min_rating=_optional(data, "min_rating", defaults.min_rating, float),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid recommendation config: {exc}") from exc


def _optional(data: Mapping[str, Any], key: str, default: Any, convert: Any) -> Any:
    value = data.get(key, default)
    return None if value is None else convert(value)
