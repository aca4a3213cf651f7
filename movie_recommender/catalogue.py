"""Movie catalogue: fetches and caches movies from the catalogue service."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Iterable, Mapping

from movie_recommender.models import Movie, UserProfile
from movie_recommender.scoring import top_labels

logger = logging.getLogger(__name__)

_TOP_GENRES = 5
_PER_GENRE_LIMIT = 20
_GENRE_MIN_RATING = 6.0
_POPULAR_LIMIT = 50
_POPULAR_MIN_RATING = 7.0


class MovieCatalogue:
    """Fetches and caches the movie catalogue from the catalogue service.

    The catalogue is loaded synchronously on first call to :meth:`refresh`,
    then kept fresh by a background daemon thread that calls
    :meth:`refresh` every *refresh_interval_seconds*.

    All public methods are thread-safe.

    Args:
        stub: A ``CatalogService`` client stub from
            :func:`movie_recommender.wire.make_stub`.  In tests this can be
            any object with a ``GetMovieCatalogue`` callable attribute.
        refresh_interval_seconds: How often the background thread refreshes
            the catalogue. Defaults to 300 (5 minutes).
    """

    def __init__(self, stub: Any, refresh_interval_seconds: int = 300) -> None:
        self._stub = stub
        self._refresh_interval = refresh_interval_seconds
        self._lock = threading.RLock()
        self._movies: dict[str, Movie] = {}
        self._refresh_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Fetch the full catalogue and replace the cache.

        Blocks until the RPC completes. On failure, logs an error and
        preserves the existing cache so the service can continue running.
        """
        try:
            response = self._stub.GetMovieCatalogue({})
            new_movies = {
                movie.movie_id: movie
                for movie in (movie_from_message(msg) for msg in response.get("movies", []))
            }
            with self._lock:
                self._movies = new_movies
            logger.info("Movie catalogue refreshed: %d movies loaded.", len(new_movies))
        except Exception:
            logger.exception(
                "Failed to refresh movie catalogue; keeping existing %d movies.",
                len(self._movies),
            )

    def load(self, movies: Iterable[Movie]) -> None:
        """Replace the cache with *movies* directly (no RPC)."""
        with self._lock:
            self._movies = {m.movie_id: m for m in movies}

    def start_refresh_loop(self) -> None:
        """Start a background daemon thread that periodically calls :meth:`refresh`.

        Safe to call multiple times; only one refresh thread is started.
        """
        if self._refresh_thread is not None and self._refresh_thread.is_alive():
            return
        self._refresh_thread = threading.Thread(
            target=self._refresh_loop,
            name="catalogue-refresh",
            daemon=True,
        )
        self._refresh_thread.start()
        logger.debug("Catalogue refresh loop started (interval=%ds).", self._refresh_interval)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_movies(self) -> list[Movie]:
        """Return a snapshot list of all cached movies (empty if never loaded)."""
        with self._lock:
            return list(self._movies.values())

    def get_movie(self, movie_id: str) -> Movie | None:
        """Return a single movie by ID, or ``None`` if not found."""
        with self._lock:
            return self._movies.get(movie_id)

    def get_candidates(
        self,
        profile: UserProfile,
        exclude_ids: set[str] | frozenset[str] = frozenset(),
        genre: str | None = None,
        min_rating: float | None = None,
    ) -> list[Movie]:
        """Return the candidate set for a recommendation request.

        Without explicit criteria the set is built from the user's five
        favourite genres (up to 20 titles each rated 6.0+) followed by up to
        50 popular titles rated 7.0+, each group best-rated first and with
        duplicates removed.  Users without genre preferences get only the
        popular titles.

        Args:
            profile: The requesting user.
            exclude_ids: Movie IDs to leave out (e.g. already reviewed).
            genre: Restrict candidates to this genre instead.
            min_rating: Override the rating floor.

        Returns:
            Candidate movies in a deterministic order.
        """
        movies = self._by_rating(self.get_all_movies())

        if genre is not None:
            floor = min_rating if min_rating is not None else 0.0
            return [
                m for m in movies
                if genre in m.genres and m.rating >= floor and m.movie_id not in exclude_ids
            ]

        candidates: dict[str, Movie] = {}
        for top_genre in top_labels(profile.preferences.genres, _TOP_GENRES):
            floor = min_rating if min_rating is not None else _GENRE_MIN_RATING
            matches = [m for m in movies if top_genre in m.genres and m.rating >= floor]
            for movie in matches[:_PER_GENRE_LIMIT]:
                candidates.setdefault(movie.movie_id, movie)

        floor = min_rating if min_rating is not None else _POPULAR_MIN_RATING
        popular = [m for m in movies if m.rating >= floor]
        for movie in popular[:_POPULAR_LIMIT]:
            candidates.setdefault(movie.movie_id, movie)

        result = [m for m in candidates.values() if m.movie_id not in exclude_ids]
        logger.info(
            "Candidate movies for user %r: %d (%d excluded)",
            profile.user_id,
            len(result),
            len(candidates) - len(result),
        )
        return result

    def get_top_rated(self, limit: int = 20, min_rating: float = 0.0) -> list[Movie]:
        """Return up to *limit* of the highest-rated movies."""
        return [m for m in self._by_rating(self.get_all_movies()) if m.rating >= min_rating][:limit]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _by_rating(movies: list[Movie]) -> list[Movie]:
        """Sort by rating descending, then by ID so the order is stable."""
        return sorted(movies, key=lambda m: (-m.rating, m.movie_id))

    def _refresh_loop(self) -> None:
        """Periodically refresh the catalogue. Runs in a daemon thread."""
        while True:
            time.sleep(self._refresh_interval)
            self.refresh()


def movie_from_message(msg: Mapping[str, Any]) -> Movie:
    """Build a :class:`Movie` from a catalogue-service document."""
    return Movie(
        movie_id=str(msg["id"]),
        title=str(msg.get("title", "")),
        genres=[str(g) for g in msg.get("genres", [])],
        director=str(msg.get("director", "")),
        actors=[str(a) for a in msg.get("actors", [])],
        year=int(msg.get("year", 0) or 0),
        rating=float(msg.get("rating", 0.0) or 0.0),
        plot=str(msg.get("plot", "")),
        keywords=[str(k) for k in msg.get("keywords", [])],
    )
