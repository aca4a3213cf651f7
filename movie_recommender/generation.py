"""Language-model client for movie tone analysis and recommendation rationales."""

from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from typing import Any

from movie_recommender.models import EmotionType, Movie, ToneDescriptor, UserProfile
from movie_recommender.scoring import clamp, top_labels

logger = logging.getLogger(__name__)

_TONE_SYSTEM_PROMPT = (
    "You are a film critic. Describe the emotional character of the movie you are "
    "given. Respond with a single JSON object and no extra text."
)

_RATIONALE_SYSTEM_PROMPT = (
    "You write short, specific reasons why a movie suits a viewer. Refer to the "
    "viewer's stated tastes. Respond with a JSON array of strings and no extra text."
)

_RATIONALE_COUNT = 3
_TOP_PREFERENCES = 3
_TOP_DIRECTORS = 2
_MAX_CAST_IN_PROMPT = 3
_MAX_CACHED_TONES = 1000


class LanguageService:
    """Thin wrapper around an OpenAI chat-completions client.

    Both operations expect JSON back from the model and raise
    :class:`ValueError` when the reply cannot be parsed; callers decide on
    the fallback.  Tone descriptors are cached per movie ID for the life of
    the process, up to *max_cached_tones* entries; the least recently used is
    evicted first.

    Args:
        client: An ``openai.OpenAI`` instance (or compatible object exposing
            ``chat.completions.create``).
        model: Chat model name.
        temperature: Sampling temperature; keep low for stable JSON.
        max_cached_tones: Upper bound on cached tone descriptors.
    """

    def __init__(
        self,
        client: Any,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_cached_tones: int = _MAX_CACHED_TONES,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._lock = threading.Lock()
        self._max_cached_tones = max_cached_tones
        self._tone_cache: OrderedDict[str, ToneDescriptor] = OrderedDict()

    @classmethod
    def from_api_key(cls, api_key: str, model: str, timeout: float) -> LanguageService:
        """Build a service backed by a real ``openai.OpenAI`` client."""
        from openai import OpenAI

        return cls(OpenAI(api_key=api_key, timeout=timeout), model=model)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def describe_tone(self, movie: Movie) -> ToneDescriptor:
        """Return the emotional tone of *movie* as judged by the model.

        Raises:
            ValueError: If the reply is not a JSON object.
            openai.OpenAIError: If the API call fails.
        """
        with self._lock:
            cached = self._tone_cache.get(movie.movie_id)
            if cached is not None:
                self._tone_cache.move_to_end(movie.movie_id)
        if cached is not None:
            return cached

        prompt = (
            f"Title: {movie.title}\n"
            f"Genres: {', '.join(movie.genres)}\n"
            f"Director: {movie.director}\n"
            f"Plot: {movie.plot}\n\n"
            'Return {"dominantEmotion": "positive|negative|balanced", '
            '"intensity": 0.0-1.0, "tones": ["tone", ...]} where intensity runs '
            "from 0.0 (very calm) to 1.0 (very intense)."
        )
        data = self._complete_json(_TONE_SYSTEM_PROMPT, prompt, max_tokens=200)
        if not isinstance(data, dict):
            raise ValueError("tone analysis did not return a JSON object")

        descriptor = _parse_tone(data)
        with self._lock:
            self._tone_cache[movie.movie_id] = descriptor
            while len(self._tone_cache) > self._max_cached_tones:
                self._tone_cache.popitem(last=False)
        return descriptor

    def write_rationale(self, profile: UserProfile, movie: Movie) -> list[str]:
        """Return a few short sentences explaining why *movie* suits *profile*.

        Raises:
            ValueError: If the reply is not a non-empty list of strings.
            openai.OpenAIError: If the API call fails.
        """
        prefs = profile.preferences
        history = profile.sentiment_history
        prompt = (
            "Viewer tastes:\n"
            f"- Favourite genres: {', '.join(top_labels(prefs.genres, _TOP_PREFERENCES))}\n"
            f"- Favourite actors: {', '.join(top_labels(prefs.actors, _TOP_PREFERENCES))}\n"
            f"- Favourite directors: {', '.join(top_labels(prefs.directors, _TOP_DIRECTORS))}\n"
            f"- Review tone: {history.positive} positive, {history.negative} negative\n\n"
            "Movie:\n"
            f"- Title: {movie.title}\n"
            f"- Genres: {', '.join(movie.genres)}\n"
            f"- Director: {movie.director}\n"
            f"- Starring: {', '.join(movie.actors[:_MAX_CAST_IN_PROMPT])}\n"
            f"- Rating: {movie.rating:g}/10\n"
            f"- Plot: {movie.plot}\n\n"
            f"Give {_RATIONALE_COUNT} reasons as a JSON array of strings."
        )
        data = self._complete_json(_RATIONALE_SYSTEM_PROMPT, prompt, max_tokens=300)
        if not isinstance(data, list):
            raise ValueError("rationale generation did not return a JSON array")
        reasons = [str(item).strip() for item in data if str(item or "").strip()]
        if not reasons:
            raise ValueError("rationale generation returned no reasons")
        return reasons

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _complete_json(self, system_prompt: str, user_prompt: str, max_tokens: int) -> Any:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self._temperature,
            max_tokens=max_tokens,
        )
        content = (response.choices[0].message.content or "").strip()
        try:
            return json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as exc:
            raise ValueError(f"model reply is not valid JSON: {exc}") from exc


def _parse_tone(data: dict[str, Any]) -> ToneDescriptor:
    try:
        emotion = EmotionType(str(data.get("dominantEmotion", "balanced")).lower())
    except ValueError:
        emotion = EmotionType.BALANCED
    try:
        intensity = clamp(float(data.get("intensity", 0.5)))
    except (TypeError, ValueError):
        intensity = 0.5
    tones = data.get("tones")
    if not isinstance(tones, list):
        tones = []
    return ToneDescriptor(
        dominant_emotion=emotion,
        intensity=intensity,
        tones=tuple(str(t).strip().lower() for t in tones if str(t).strip()),
    )


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, which models often add."""
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()
