"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

# ---------------------------------------------------------------------------
# Recommender gRPC server (API clients connect to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50051"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# ---------------------------------------------------------------------------
# Catalogue / profile backend (we connect to it as a gRPC client)
# ---------------------------------------------------------------------------

BACKEND_ADDRESS: str = os.getenv("BACKEND_ADDRESS", "localhost:50052")

# ---------------------------------------------------------------------------
# Recommendation engine
# ---------------------------------------------------------------------------

CONTENT_STRATEGY_WEIGHT: float = float(os.getenv("CONTENT_STRATEGY_WEIGHT", "0.5"))
COLLABORATIVE_STRATEGY_WEIGHT: float = float(os.getenv("COLLABORATIVE_STRATEGY_WEIGHT", "0.3"))
SENTIMENT_STRATEGY_WEIGHT: float = float(os.getenv("SENTIMENT_STRATEGY_WEIGHT", "0.2"))

# Worker threads used to run the strategies of one request in parallel.
STRATEGY_MAX_WORKERS: int = int(os.getenv("STRATEGY_MAX_WORKERS", "3"))

# Defaults for requests that do not send their own configuration.
DEFAULT_MAX_RECOMMENDATIONS: int = int(os.getenv("DEFAULT_MAX_RECOMMENDATIONS", "10"))
DEFAULT_MIN_CONFIDENCE: float = float(os.getenv("DEFAULT_MIN_CONFIDENCE", "0.3"))

# ---------------------------------------------------------------------------
# Language model (tone analysis and rationales; disabled without a key)
# ---------------------------------------------------------------------------

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
LANGUAGE_MODEL: str = os.getenv("LANGUAGE_MODEL", "gpt-4o-mini")
LANGUAGE_TIMEOUT_SECONDS: float = float(os.getenv("LANGUAGE_TIMEOUT_SECONDS", "10"))

# ---------------------------------------------------------------------------
# Movie catalogue cache
# ---------------------------------------------------------------------------

# How often (seconds) to refresh the movie catalogue from the backend.
CATALOGUE_REFRESH_INTERVAL_SECONDS: int = int(
    os.getenv("CATALOGUE_REFRESH_INTERVAL_SECONDS", "300")
)

# ---------------------------------------------------------------------------
# Feedback persistence
# ---------------------------------------------------------------------------

# How often (seconds) to flush queued feedback events to the backend.
FEEDBACK_PERSIST_INTERVAL_SECONDS: int = int(
    os.getenv("FEEDBACK_PERSIST_INTERVAL_SECONDS", "60")
)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
