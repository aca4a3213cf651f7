"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from movie_recommender import wire
from movie_recommender.catalogue import MovieCatalogue
from movie_recommender.engine import RecommendationEngine
from movie_recommender.generation import LanguageService
from movie_recommender.models import RecommendationConfig
from movie_recommender.profile_store import ProfileStore
from movie_recommender.service import RecommenderServicer, add_to_server
from movie_recommender.strategies.collaborative import CollaborativeStrategy
from movie_recommender.strategies.content_based import ContentBasedStrategy
from movie_recommender.strategies.sentiment import SentimentBasedStrategy

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_engine(
    catalogue: MovieCatalogue,
    profile_store: ProfileStore,
    language_service: LanguageService | None = None,
) -> RecommendationEngine:
    """Create the strategies and the engine that runs them.

    Args:
        catalogue: The loaded :class:`~movie_recommender.catalogue.MovieCatalogue`.
        profile_store: The loaded :class:`~movie_recommender.profile_store.ProfileStore`.
        language_service: Optional language model for tones and rationales.

    Returns:
        A ready :class:`~movie_recommender.engine.RecommendationEngine`.
    """
    strategies = [
        ContentBasedStrategy(weight=config.CONTENT_STRATEGY_WEIGHT),
        CollaborativeStrategy(profile_store, weight=config.COLLABORATIVE_STRATEGY_WEIGHT),
        SentimentBasedStrategy(language_service, weight=config.SENTIMENT_STRATEGY_WEIGHT),
    ]
    return RecommendationEngine(
        catalogue=catalogue,
        profile_store=profile_store,
        strategies=strategies,
        language_service=language_service,
        max_workers=config.STRATEGY_MAX_WORKERS,
    )


def build_server(engine: RecommendationEngine) -> grpc.Server:
    """Construct and configure the gRPC server around *engine*.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    servicer = RecommenderServicer(
        engine=engine,
        default_config=RecommendationConfig(
            max_recommendations=config.DEFAULT_MAX_RECOMMENDATIONS,
            min_confidence=config.DEFAULT_MIN_CONFIDENCE,
        ),
    )

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    add_to_server(servicer, server)
    server.add_insecure_port(
        f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server


def main() -> None:
    """Initialise all components and start the gRPC server.

    Startup sequence:
    1. Connect to the catalogue/profile backend as a gRPC client.
    2. Load the movie catalogue.
    3. Load profiles and peer reviews.
    4. Start background threads (catalogue refresh, feedback persistence).
    5. Build the engine, with the language model if an API key is set.
    6. Register ``SIGTERM``/``SIGINT`` shutdown handlers.
    7. Start the gRPC server.
    """
    logger.info("Connecting to backend at %s", config.BACKEND_ADDRESS)
    backend_channel = grpc.insecure_channel(config.BACKEND_ADDRESS)
    catalog_stub = wire.make_stub(backend_channel, wire.CATALOG_SERVICE, wire.CATALOG_METHODS)
    profile_stub = wire.make_stub(backend_channel, wire.PROFILE_SERVICE, wire.PROFILE_METHODS)

    logger.info("Loading movie catalogue…")
    catalogue = MovieCatalogue(
        stub=catalog_stub,
        refresh_interval_seconds=config.CATALOGUE_REFRESH_INTERVAL_SECONDS,
    )
    catalogue.refresh()
    logger.info("Catalogue loaded: %d movies.", len(catalogue.get_all_movies()))

    logger.info("Loading user profiles…")
    profile_store = ProfileStore(stub=profile_stub)
    profile_store.load_all_from_server()

    catalogue.start_refresh_loop()
    profile_store.start_persist_loop(config.FEEDBACK_PERSIST_INTERVAL_SECONDS)

    language_service = None
    if config.OPENAI_API_KEY:
        language_service = LanguageService.from_api_key(
            config.OPENAI_API_KEY,
            model=config.LANGUAGE_MODEL,
            timeout=config.LANGUAGE_TIMEOUT_SECONDS,
        )
        logger.info("Language model enabled: %s", config.LANGUAGE_MODEL)
    else:
        logger.info("OPENAI_API_KEY not set; using rule-based tones and reasons.")

    server = build_server(build_engine(catalogue, profile_store, language_service))

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, flushing feedback and shutting down…", sig_name)
        profile_store.persist_feedback_to_server()
        server.stop(grace=5)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "Recommender gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
