"""gRPC servicer: the entry point for all inbound recommendation calls."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

import grpc

from movie_recommender import wire
from movie_recommender.engine import ProfileNotFoundError, RecommendationEngine
from movie_recommender.models import RecommendationConfig, RecommendationResult

logger = logging.getLogger(__name__)

_RECOMMENDATION_WARN_THRESHOLD_MS = 2000

_DEFAULT_SAVED_LIMIT = 50
_DEFAULT_TRENDING_LIMIT = 20
_DEFAULT_SIMILAR_USER_LIMIT = 20
_DEFAULT_MIN_SIMILARITY = 0.3


class RecommenderServicer:
    """Implements the ``movierec.RecommenderService`` gRPC service.

    Every method takes and returns a plain ``dict``; conversion to and from
    ``google.protobuf.Struct`` happens in :mod:`movie_recommender.wire`.
    Register an instance with :func:`add_to_server`.

    Args:
        engine: The :class:`~movie_recommender.engine.RecommendationEngine`.
        default_config: Options used for keys a request leaves out.
    """

    def __init__(
        self,
        engine: RecommendationEngine,
        default_config: RecommendationConfig | None = None,
    ) -> None:
        self._engine = engine
        self._default_config = default_config or RecommendationConfig()

    # ------------------------------------------------------------------
    # Recommendation requests
    # ------------------------------------------------------------------

    def GetRecommendations(self, request: dict[str, Any], context: Any) -> dict[str, Any]:
        """Return ranked hybrid recommendations for a user.

        Args:
            request: ``{"user_id": str, "config": {...}}``; ``config`` keys
                follow :class:`~movie_recommender.models.RecommendationConfig`.
            context: gRPC service context.

        Returns:
            ``{"user_id", "recommendations": [...], "generated_at"}``, or an
            empty dict with an error status set.
        """
        user_id = str(request.get("user_id", ""))
        start_ms = time.monotonic() * 1000
        try:
            rec_config = RecommendationConfig.from_mapping(
                request.get("config"), defaults=self._default_config
            )
            results = self._engine.get_recommendations(user_id, rec_config)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return {}
        except ProfileNotFoundError as exc:
            context.set_code(grpc.StatusCode.NOT_FOUND)
            context.set_details(str(exc))
            return {}
        except Exception:
            logger.exception("Unexpected error generating recommendations for user=%r", user_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error generating recommendations.")
            return {}
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > _RECOMMENDATION_WARN_THRESHOLD_MS:
                logger.warning(
                    "GetRecommendations for user=%r took %.1fms",
                    user_id,
                    elapsed_ms,
                )
            else:
                logger.debug("GetRecommendations for user=%r took %.1fms", user_id, elapsed_ms)

        return {
            "user_id": user_id,
            "recommendations": [result_to_message(r) for r in results],
            "generated_at": wire.datetime_to_wire(datetime.now(timezone.utc)),
        }

    def GetSavedRecommendations(self, request: dict[str, Any], context: Any) -> dict[str, Any]:
        """Return the last recommendation list produced for a user."""
        user_id = str(request.get("user_id", ""))
        try:
            limit = int(request.get("limit") or _DEFAULT_SAVED_LIMIT)
            results = self._engine.get_saved_recommendations(user_id, limit=limit)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return {}
        except Exception:
            logger.exception("Error fetching saved recommendations for user=%r", user_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error fetching saved recommendations.")
            return {}
        return {"user_id": user_id, "recommendations": [result_to_message(r) for r in results]}

    def GetTrendingRecommendations(self, request: dict[str, Any], context: Any) -> dict[str, Any]:
        """Return the highest-rated catalogue titles."""
        try:
            limit = int(request.get("limit") or _DEFAULT_TRENDING_LIMIT)
            results = self._engine.get_trending(limit)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return {}
        except Exception:
            logger.exception("Error fetching trending recommendations")
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error fetching trending recommendations.")
            return {}
        return {"recommendations": [result_to_message(r) for r in results]}

    def GetSimilarUserRecommendations(
        self, request: dict[str, Any], context: Any
    ) -> dict[str, Any]:
        """Return movies saved for users whose taste resembles the caller's.

        Args:
            request: ``{"user_id", "limit"?, "min_similarity"?}``.
            context: gRPC service context.
        """
        user_id = str(request.get("user_id", ""))
        try:
            limit = int(request.get("limit") or _DEFAULT_SIMILAR_USER_LIMIT)
            min_similarity = request.get("min_similarity")
            min_similarity = (
                _DEFAULT_MIN_SIMILARITY if min_similarity is None else float(min_similarity)
            )
            results = self._engine.get_similar_user_recommendations(
                user_id, limit=limit, min_similarity=min_similarity
            )
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return {}
        except ProfileNotFoundError as exc:
            context.set_code(grpc.StatusCode.NOT_FOUND)
            context.set_details(str(exc))
            return {}
        except Exception:
            logger.exception("Error fetching similar-user recommendations for user=%r", user_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error fetching similar-user recommendations.")
            return {}
        return {"user_id": user_id, "recommendations": [result_to_message(r) for r in results]}

    def GetRecommendationStats(self, request: dict[str, Any], context: Any) -> dict[str, Any]:
        """Return catalogue and profile counts."""
        try:
            return self._engine.get_stats()
        except Exception:
            logger.exception("Error fetching recommendation stats")
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error fetching recommendation stats.")
            return {}

    def GetRecommendationExplanation(self, request: dict[str, Any], context: Any) -> dict[str, Any]:
        """Explain why a movie was recommended to a user."""
        user_id = str(request.get("user_id", ""))
        movie_id = str(request.get("movie_id", ""))
        try:
            explanation = self._engine.get_explanation(user_id, movie_id)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return {}
        except Exception:
            logger.exception(
                "Error explaining recommendation for user=%r movie=%r", user_id, movie_id
            )
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error explaining recommendation.")
            return {}
        return {"user_id": user_id, "movie_id": movie_id, "explanation": explanation}

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def RecordFeedback(self, request: dict[str, Any], context: Any) -> dict[str, Any]:
        """Record a user's reaction to a recommended movie.

        Args:
            request: ``{"user_id", "movie_id", "feedback", "recommendation_id"?,
                "reason"?}`` where ``feedback`` is one of ``like``,
                ``dislike``, ``not_interested``, ``watched``, ``bookmark``.
            context: gRPC service context.

        Returns:
            ``{"recorded": True}`` on success.
        """
        user_id = str(request.get("user_id", ""))
        movie_id = str(request.get("movie_id", ""))
        try:
            self._engine.record_feedback(
                user_id,
                movie_id,
                str(request.get("feedback", "")),
                recommendation_id=request.get("recommendation_id"),
                reason=request.get("reason"),
            )
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return {"recorded": False}
        except Exception:
            logger.exception("Error recording feedback for user=%r movie=%r", user_id, movie_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error recording feedback.")
            return {"recorded": False}
        return {"recorded": True}


def add_to_server(servicer: RecommenderServicer, server: grpc.Server) -> None:
    """Register *servicer* on *server* under ``movierec.RecommenderService``."""
    wire.add_servicer_to_server(
        servicer, server, wire.RECOMMENDER_SERVICE, wire.RECOMMENDER_METHODS
    )


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def result_to_message(result: RecommendationResult) -> dict[str, Any]:
    """Serialise a :class:`RecommendationResult` as a response document."""
    movie = result.movie
    return {
        "movie": {
            "id": movie.movie_id,
            "title": movie.title,
            "genres": list(movie.genres),
            "director": movie.director,
            "actors": list(movie.actors),
            "year": movie.year,
            "rating": movie.rating,
            "plot": movie.plot,
            "keywords": list(movie.keywords),
        },
        "score": result.score,
        "reasons": list(result.reasons),
        "recommendation_type": result.recommendation_type.value,
        "confidence": result.confidence,
    }
